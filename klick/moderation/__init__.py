"""
Product content moderation.
"""

from . import ai_state
from .ai_state import AIValidationFields
from .coherence import CoherenceChecker
from .keywords import KeywordPolicy
from .orchestrator import ModerationOrchestrator
from .providers import (
    HuggingFaceImageProvider,
    HuggingFaceTextProvider,
    MistralModerationProvider,
    ModerationProviderClient,
    OpenAIModerationProvider,
    build_image_providers,
    build_text_providers,
)

__all__ = [
    "ai_state",
    "AIValidationFields",
    "CoherenceChecker",
    "KeywordPolicy",
    "ModerationOrchestrator",
    "ModerationProviderClient",
    "MistralModerationProvider",
    "OpenAIModerationProvider",
    "HuggingFaceTextProvider",
    "HuggingFaceImageProvider",
    "build_text_providers",
    "build_image_providers",
]
