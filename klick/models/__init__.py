"""
Product and moderation models.
"""

from .moderation import (
    CoherenceCheck,
    ImageAnalysis,
    KeywordEvaluation,
    KeywordMatch,
    ModerationDetails,
    ModerationRequest,
    ModerationResult,
    ProviderVerdict,
    TextAnalysis,
)
from .product import (
    AIValidationStatus,
    HumanStatus,
    ProductListing,
    ProductSubmission,
)

__all__ = [
    "AIValidationStatus",
    "CoherenceCheck",
    "HumanStatus",
    "ImageAnalysis",
    "KeywordEvaluation",
    "KeywordMatch",
    "ModerationDetails",
    "ModerationRequest",
    "ModerationResult",
    "ProductListing",
    "ProductSubmission",
    "ProviderVerdict",
    "TextAnalysis",
]
