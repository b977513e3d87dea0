"""
Product listing models.
Moderation-relevant fields of a seller's product and its submission payload.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MAX_IMAGES = 3


class HumanStatus(str, Enum):
    """Admin-authoritative publication state."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AIValidationStatus(str, Enum):
    """Advisory verdict of the automatic validation."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    ERROR = "error"


def _validate_images(images: List[str]) -> List[str]:
    images = [img.strip() for img in images if img and img.strip()]
    if not images:
        raise ValueError("At least one image is required")
    if len(images) > MAX_IMAGES:
        raise ValueError(f"At most {MAX_IMAGES} images are allowed, got {len(images)}")
    return images


class ProductSubmission(BaseModel):
    """
    Product as submitted by a seller.

    The first image is the main image and the one sent to image moderation.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    seller_id: str
    title: str = Field(..., min_length=1)
    description: str = ""
    category: Optional[str] = None
    images: List[str] = Field(..., description="1 to 3 image references, main image first")

    @field_validator("images")
    @classmethod
    def check_images(cls, v: List[str]) -> List[str]:
        return _validate_images(v)

    @property
    def image_ref(self) -> Optional[str]:
        return self.images[0] if self.images else None


class ProductListing(BaseModel):
    """
    Stored product listing (moderation subset).

    human_status is the field of record; the ai_* fields only prioritize the
    admin queue.
    """

    model_config = ConfigDict(use_enum_values=False)

    id: str = Field(default_factory=lambda: uuid4().hex)
    seller_id: str
    title: str
    description: str = ""
    category: Optional[str] = None
    images: List[str] = Field(default_factory=list)

    # Human review
    human_status: HumanStatus = HumanStatus.PENDING
    rejection_reason: Optional[str] = None
    validated_by: Optional[str] = None
    validated_at: Optional[datetime] = None
    review_note: Optional[str] = None
    approved_with_override: bool = False

    # Automatic validation
    ai_validation_status: Optional[AIValidationStatus] = AIValidationStatus.PENDING
    ai_validation_confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    ai_flagged_categories: List[str] = Field(default_factory=list)
    ai_validation_reason: Optional[str] = None
    ai_validated_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("images")
    @classmethod
    def check_images(cls, v: List[str]) -> List[str]:
        return _validate_images(v)

    @field_validator("ai_flagged_categories")
    @classmethod
    def normalize_categories(cls, v: List[str]) -> List[str]:
        return sorted({c.strip().lower() for c in v if c and c.strip()})

    @model_validator(mode="after")
    def check_rejection_reason(self) -> "ProductListing":
        if self.human_status == HumanStatus.REJECTED and not (
            self.rejection_reason and self.rejection_reason.strip()
        ):
            raise ValueError("A rejected product requires a rejection reason")
        return self

    @classmethod
    def from_submission(cls, submission: ProductSubmission) -> "ProductListing":
        return cls(
            seller_id=submission.seller_id,
            title=submission.title,
            description=submission.description,
            category=submission.category,
            images=submission.images,
        )

    @property
    def image_ref(self) -> Optional[str]:
        return self.images[0] if self.images else None

    @property
    def is_visible(self) -> bool:
        """Buyers only see approved listings."""
        return self.human_status == HumanStatus.APPROVED

    @property
    def needs_admin_attention(self) -> bool:
        """AI rejected it, errored, or never analyzed it."""
        return self.ai_validation_status in (
            None,
            AIValidationStatus.REJECTED,
            AIValidationStatus.ERROR,
        )

    @property
    def ai_confidence_label(self) -> str:
        """Human-readable confidence, only when the AI reached a verdict."""
        if self.ai_validation_status not in (
            AIValidationStatus.APPROVED,
            AIValidationStatus.REJECTED,
        ):
            return ""
        if self.ai_validation_confidence is None:
            return ""
        return f"{round(self.ai_validation_confidence * 100)}% confidence"

    def with_changes(self, **changes) -> "ProductListing":
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        data["updated_at"] = changes.get("updated_at") or datetime.utcnow()
        return ProductListing.model_validate(data)
