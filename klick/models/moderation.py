"""
Moderation result types.
Per-facet analyses and the merged verdict returned by the orchestrator.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ModerationRequest:
    """Content sent to a moderation provider."""

    title: Optional[str] = None
    description: Optional[str] = None
    image_ref: Optional[str] = None

    @property
    def text(self) -> str:
        return f"{self.title or ''} {self.description or ''}".strip()


@dataclass(frozen=True)
class ProviderVerdict:
    """Normalized answer of a moderation provider."""

    provider: str
    flagged: bool
    confidence: float
    categories: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class KeywordMatch:
    """Forbidden terms found for one category."""

    category: str
    matched_terms: List[str]
    severity: int


@dataclass(frozen=True)
class KeywordEvaluation:
    """Result of the local keyword policy."""

    flagged: bool
    categories: List[KeywordMatch] = field(default_factory=list)
    confidence: float = 1.0

    @property
    def category_names(self) -> List[str]:
        return [match.category for match in self.categories]


@dataclass
class ImageAnalysis:
    is_appropriate: bool
    confidence: float
    provider: Optional[str] = None
    categories: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class TextAnalysis:
    is_appropriate: bool
    confidence: float
    keyword: KeywordEvaluation
    provider: Optional[str] = None
    provider_flagged: bool = False
    provider_categories: List[str] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class CoherenceCheck:
    is_coherent: bool
    confidence: float
    detected_categories: List[str] = field(default_factory=list)
    declared_category: Optional[str] = None
    note: Optional[str] = None


@dataclass
class ModerationDetails:
    text_analysis: Optional[TextAnalysis] = None
    image_analysis: Optional[ImageAnalysis] = None
    coherence_check: Optional[CoherenceCheck] = None


@dataclass
class ModerationResult:
    """
    Merged moderation verdict.

    technical_error marks a best-effort default produced when validation
    itself failed; AIValidationState maps it to the error status.
    """

    is_valid: bool
    confidence: float
    reasons: List[str] = field(default_factory=list)
    details: ModerationDetails = field(default_factory=ModerationDetails)
    technical_error: bool = False

    @property
    def flagged_categories(self) -> List[str]:
        """Union of category tags reported by every facet."""
        tags = set()
        text = self.details.text_analysis
        if text is not None:
            tags.update(text.keyword.category_names)
            if text.provider_flagged:
                tags.update(text.provider_categories)
        image = self.details.image_analysis
        if image is not None and not image.is_appropriate:
            tags.update(image.categories)
        return sorted(tag.lower() for tag in tags)
