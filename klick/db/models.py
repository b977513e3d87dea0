"""
SQLAlchemy ORM Models
Table definition for product listings (moderation fields).
"""

from __future__ import annotations

from sqlalchemy import JSON, TIMESTAMP, Boolean, Column, Float, Index, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class ProductRecord(Base):
    """
    Product listing row.

    Only the columns the moderation workflow reads or writes.
    """

    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    seller_id = Column(String(64), nullable=False, index=True, comment="Submitting seller")
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=False, server_default="")
    category = Column(String(100), nullable=True)
    images = Column(JSON, nullable=False, comment="1 to 3 image references, main image first")

    # Human review (authoritative)
    human_status = Column(String(16), nullable=False, server_default="pending")
    rejection_reason = Column(Text, nullable=True)
    validated_by = Column(String(64), nullable=True, comment="Admin who made the decision")
    validated_at = Column(TIMESTAMP, nullable=True)
    review_note = Column(Text, nullable=True)
    approved_with_override = Column(Boolean, nullable=False, server_default="false")

    # Automatic validation (advisory)
    ai_validation_status = Column(String(16), nullable=True, server_default="pending")
    ai_validation_confidence = Column(Float, nullable=True)
    ai_flagged_categories = Column(JSON, nullable=False, default=list)
    ai_validation_reason = Column(Text, nullable=True)
    ai_validated_at = Column(TIMESTAMP, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_products_human_status", "human_status"),
        Index("idx_products_ai_status", "ai_validation_status"),
    )

    def __repr__(self):
        return f"<ProductRecord(id={self.id}, human_status={self.human_status})>"
