"""
Tests for the SQLAlchemy product repository (in-memory SQLite).
"""

import asyncio
from datetime import datetime

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from klick.db.models import Base
from klick.db.sql_repository import SqlProductRepository
from klick.errors import ProductNotFound
from klick.models.product import AIValidationStatus, HumanStatus, ProductListing


def run(coro):
    return asyncio.run(coro)


@pytest.fixture
def sql_repository():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    session_factory = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    yield SqlProductRepository(session_factory)
    engine.dispose()


def listing(**overrides):
    data = {
        "seller_id": "seller-1",
        "title": "Lampe de bureau",
        "category": "Maison",
        "images": ["https://cdn.test/a.jpg", "https://cdn.test/b.jpg"],
    }
    data.update(overrides)
    return ProductListing(**data)


def test_create_and_get(sql_repository):
    product = listing()

    run(sql_repository.create(product))
    stored = run(sql_repository.get(product.id))

    assert stored.id == product.id
    assert stored.images == product.images
    assert stored.human_status == HumanStatus.PENDING
    assert stored.ai_validation_status == AIValidationStatus.PENDING


def test_get_missing(sql_repository):
    with pytest.raises(ProductNotFound):
        run(sql_repository.get("missing"))


def test_update_ai_fields(sql_repository):
    product = run(sql_repository.create(listing()))

    updated = run(
        sql_repository.update_ai_fields(
            product.id,
            {
                "ai_validation_status": AIValidationStatus.REJECTED,
                "ai_validation_confidence": 0.1,
                "ai_flagged_categories": ["violent"],
                "ai_validation_reason": "Forbidden keywords detected (violent: tuer)",
                "ai_validated_at": datetime.utcnow(),
            },
        )
    )

    assert updated.ai_validation_status == AIValidationStatus.REJECTED
    assert updated.ai_flagged_categories == ["violent"]
    assert run(sql_repository.get(product.id)).ai_validation_confidence == pytest.approx(0.1)


def test_update_ai_fields_rejects_human_fields(sql_repository):
    product = run(sql_repository.create(listing()))

    with pytest.raises(ValueError):
        run(sql_repository.update_ai_fields(product.id, {"human_status": HumanStatus.APPROVED}))


def test_transition_is_compare_and_set(sql_repository):
    product = run(sql_repository.create(listing()))
    changes = {
        "human_status": HumanStatus.REJECTED,
        "rejection_reason": "Photo floue",
        "validated_by": "admin-1",
        "validated_at": datetime.utcnow(),
    }

    first = run(sql_repository.transition(product.id, HumanStatus.PENDING, changes))
    second = run(sql_repository.transition(product.id, HumanStatus.PENDING, changes))

    assert first.human_status == HumanStatus.REJECTED
    assert first.rejection_reason == "Photo floue"
    assert second is None


def test_list_by_status(sql_repository):
    a = run(sql_repository.create(listing()))
    b = run(sql_repository.create(listing(title="Canapé")))
    run(
        sql_repository.transition(
            b.id,
            HumanStatus.PENDING,
            {"human_status": HumanStatus.APPROVED, "validated_by": "admin-1"},
        )
    )

    pending = run(sql_repository.list_by_status(HumanStatus.PENDING))
    approved = run(sql_repository.list_by_status(HumanStatus.APPROVED))

    assert [p.id for p in pending] == [a.id]
    assert [p.id for p in approved] == [b.id]
