"""
AI validation state.
Maps an orchestrator result onto the advisory ai_* fields of a product.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..models.moderation import ModerationResult
from ..models.product import AIValidationStatus, ProductListing


@dataclass(frozen=True)
class AIValidationFields:
    """Recomputed AI fields for one validation pass."""

    status: AIValidationStatus
    confidence: float
    flagged_categories: List[str] = field(default_factory=list)
    reason: Optional[str] = None

    def as_changes(self) -> Dict[str, Any]:
        """Repository update payload."""
        return {
            "ai_validation_status": self.status,
            "ai_validation_confidence": self.confidence,
            "ai_flagged_categories": list(self.flagged_categories),
            "ai_validation_reason": self.reason,
        }


def apply(product: ProductListing, result: ModerationResult) -> AIValidationFields:
    """
    Compute the AI fields for a product from a moderation result.

    Pure: the fields are recomputed from the result alone, never merged with
    the product's previous AI state. The product argument is accepted so that
    callers pass the listing the result belongs to.
    """
    if result.technical_error:
        status = AIValidationStatus.ERROR
    elif result.is_valid:
        status = AIValidationStatus.APPROVED
    else:
        status = AIValidationStatus.REJECTED

    return AIValidationFields(
        status=status,
        confidence=min(1.0, max(0.0, result.confidence)),
        flagged_categories=result.flagged_categories,
        reason="; ".join(result.reasons) if result.reasons else None,
    )
