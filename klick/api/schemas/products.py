"""
Product API Schemas
Request and response models for seller and admin endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ...models.product import AIValidationStatus, HumanStatus, ProductListing


class ProductResponse(BaseModel):
    """Product listing as returned by the API."""

    id: str
    seller_id: str
    title: str
    description: str
    category: Optional[str] = None
    images: List[str]

    human_status: HumanStatus
    rejection_reason: Optional[str] = None
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None
    review_note: Optional[str] = None
    approved_with_override: bool = False

    ai_validation_status: Optional[AIValidationStatus] = None
    ai_validation_confidence: Optional[float] = None
    ai_flagged_categories: List[str] = Field(default_factory=list)
    ai_validation_reason: Optional[str] = None
    ai_validated_at: Optional[datetime] = None
    ai_confidence_label: str = ""

    is_visible: bool
    needs_admin_attention: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_listing(cls, product: ProductListing) -> "ProductResponse":
        return cls(
            **product.model_dump(),
            ai_confidence_label=product.ai_confidence_label,
            is_visible=product.is_visible,
            needs_admin_attention=product.needs_admin_attention,
        )


class ProductQueueResponse(BaseModel):
    products: List[ProductResponse]
    total: int


class ApproveRequest(BaseModel):
    admin_id: str = Field(..., min_length=1, description="Reviewing administrator")
    override: bool = Field(default=False, description="Approve despite a negative AI verdict")


class RejectRequest(BaseModel):
    admin_id: str = Field(..., min_length=1, description="Reviewing administrator")
    reason: str = Field(..., description="Reason sent to the seller")


class ReopenRequest(BaseModel):
    admin_id: str = Field(..., min_length=1, description="Reviewing administrator")
    note: Optional[str] = Field(None, description="Review note shown in the queue")


class TransitionResponse(BaseModel):
    product: ProductResponse
    changed: bool = Field(..., description="Whether the human status changed")
    note: Optional[str] = None
