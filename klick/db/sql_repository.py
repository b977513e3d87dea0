"""
SQL Product Repository
SQLAlchemy implementation of the product repository.

Session work is blocking, so each operation runs in a worker thread via
asyncio.to_thread. The compare-and-set is a single conditional UPDATE.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from ..errors import ProductNotFound
from ..models.product import HumanStatus, ProductListing
from .models import ProductRecord
from .repository import ProductRepository, check_ai_changes

logger = logging.getLogger(__name__)

COLUMNS = [column.name for column in ProductRecord.__table__.columns]


def _to_row(values: Dict[str, Any]) -> Dict[str, Any]:
    return {
        key: (value.value if isinstance(value, Enum) else value)
        for key, value in values.items()
        if key in COLUMNS
    }


def _to_listing(record: ProductRecord) -> ProductListing:
    return ProductListing.model_validate(
        {column: getattr(record, column) for column in COLUMNS}
    )


class SqlProductRepository(ProductRepository):
    """Product repository backed by the products table."""

    def __init__(self, session_factory: sessionmaker):
        """
        Args:
            session_factory: SQLAlchemy session factory
        """
        self.session_factory = session_factory

    async def create(self, product: ProductListing) -> ProductListing:
        return await asyncio.to_thread(self._create, product)

    async def get(self, product_id: str) -> ProductListing:
        return await asyncio.to_thread(self._get, product_id)

    async def update_ai_fields(self, product_id: str, changes: Dict[str, Any]) -> ProductListing:
        check_ai_changes(changes)
        return await asyncio.to_thread(self._update_ai_fields, product_id, changes)

    async def transition(
        self, product_id: str, expected_status: HumanStatus, changes: Dict[str, Any]
    ) -> Optional[ProductListing]:
        return await asyncio.to_thread(self._transition, product_id, expected_status, changes)

    async def list_by_status(self, status: HumanStatus) -> List[ProductListing]:
        return await asyncio.to_thread(self._list_by_status, status)

    # Blocking implementations

    def _create(self, product: ProductListing) -> ProductListing:
        with self.session_factory() as db:
            record = ProductRecord(**_to_row(product.model_dump()))
            db.add(record)
            db.commit()
            db.refresh(record)
            logger.debug(f"Product stored: {product.id}")
            return _to_listing(record)

    def _load(self, db: Session, product_id: str) -> ProductRecord:
        record = db.get(ProductRecord, product_id)
        if record is None:
            raise ProductNotFound(product_id)
        return record

    def _get(self, product_id: str) -> ProductListing:
        with self.session_factory() as db:
            return _to_listing(self._load(db, product_id))

    def _update_ai_fields(self, product_id: str, changes: Dict[str, Any]) -> ProductListing:
        with self.session_factory() as db:
            current = _to_listing(self._load(db, product_id))
            updated = current.with_changes(**changes)
            db.execute(
                update(ProductRecord)
                .where(ProductRecord.id == product_id)
                .values(**_to_row({**changes, "updated_at": updated.updated_at}))
            )
            db.commit()
            db.expire_all()
            return _to_listing(self._load(db, product_id))

    def _transition(
        self, product_id: str, expected_status: HumanStatus, changes: Dict[str, Any]
    ) -> Optional[ProductListing]:
        with self.session_factory() as db:
            current = _to_listing(self._load(db, product_id))
            # Validate the target state before touching the row
            updated = current.with_changes(**changes)
            result = db.execute(
                update(ProductRecord)
                .where(ProductRecord.id == product_id)
                .where(ProductRecord.human_status == expected_status.value)
                .values(**_to_row({**changes, "updated_at": updated.updated_at}))
            )
            if result.rowcount != 1:
                db.rollback()
                logger.debug(
                    f"Compare-and-set failed for {product_id}: expected {expected_status.value}"
                )
                return None
            db.commit()
            db.expire_all()
            return _to_listing(self._load(db, product_id))

    def _list_by_status(self, status: HumanStatus) -> List[ProductListing]:
        with self.session_factory() as db:
            records = (
                db.execute(select(ProductRecord).where(ProductRecord.human_status == status.value))
                .scalars()
                .all()
            )
            return [_to_listing(record) for record in records]
