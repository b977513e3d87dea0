"""
Moderation Orchestrator
Combines the keyword policy, remote providers and the coherence check into
one verdict for a product listing.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import httpx

from ..config import ModerationSettings
from ..errors import ProviderUnavailable
from ..models.moderation import (
    CoherenceCheck,
    ImageAnalysis,
    ModerationDetails,
    ModerationRequest,
    ModerationResult,
    ProviderVerdict,
    TextAnalysis,
)
from .coherence import CoherenceChecker
from .keywords import KeywordPolicy
from .providers import ModerationProviderClient, build_image_providers, build_text_providers

logger = logging.getLogger(__name__)

TECHNICAL_ERROR_REASON = "Technical error during validation"
TECHNICAL_ERROR_CONFIDENCE = 0.5
IMAGE_FALLBACK_CONFIDENCE = 0.8
COHERENCE_FALLBACK_CONFIDENCE = 0.5
INCOHERENCE_PENALTY = 0.8
VALID_CONFIDENCE_CAP = 0.95


class ModerationOrchestrator:
    """
    Validates product listings.

    Facets (image, text, coherence) run concurrently. Provider failures fall
    back along the configured provider order, then to a local default, so a
    validation always terminates with a result:
    - image: first image provider that answers, else pass-through (0.8)
    - text: keyword policy plus first text provider that answers, else keywords only
    - coherence: never invalidates, only lowers confidence
    """

    def __init__(
        self,
        keyword_policy: Optional[KeywordPolicy] = None,
        text_providers: Optional[Sequence[ModerationProviderClient]] = None,
        image_providers: Optional[Sequence[ModerationProviderClient]] = None,
        coherence_checker: Optional[CoherenceChecker] = None,
        provider_timeout: float = 10.0,
    ):
        """
        Initialize orchestrator.

        Args:
            keyword_policy: Local forbidden-terms filter
            text_providers: Text providers in order of preference
            image_providers: Image providers in order of preference
            coherence_checker: Category/text coherence checker
            provider_timeout: Upper bound for a single provider call (seconds)
        """
        self.keyword_policy = keyword_policy or KeywordPolicy()
        self.text_providers = list(text_providers or [])
        self.image_providers = list(image_providers or [])
        self.coherence_checker = coherence_checker or CoherenceChecker()
        self.provider_timeout = provider_timeout

        logger.info(
            "Moderation orchestrator initialized: "
            f"text_providers={[p.name for p in self.text_providers]}, "
            f"image_providers={[p.name for p in self.image_providers]}"
        )

    @classmethod
    def from_settings(
        cls, settings: ModerationSettings, client: httpx.AsyncClient
    ) -> "ModerationOrchestrator":
        return cls(
            text_providers=build_text_providers(settings, client),
            image_providers=build_image_providers(settings, client),
            provider_timeout=settings.provider_timeout_seconds,
        )

    async def validate_product(self, product: Any) -> ModerationResult:
        """
        Validate a product listing.

        Accepts anything with title/description/image_ref/category attributes
        (ProductSubmission, ProductListing). Never raises: a failure of the
        validation itself yields a default-valid result flagged as a
        technical error, so that submissions are not blocked.
        """
        request = ModerationRequest(
            title=getattr(product, "title", None),
            description=getattr(product, "description", None),
            image_ref=getattr(product, "image_ref", None),
        )
        category = getattr(product, "category", None)

        try:
            result = await self._validate(request, category)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Product validation failed: {e}", exc_info=True)
            return self._technical_error_result()

        logger.info(
            f"Moderation decision: valid={result.is_valid}, "
            f"confidence={result.confidence:.2f}, reasons={result.reasons}"
        )
        return result

    async def _validate(self, request: ModerationRequest, category: Optional[str]) -> ModerationResult:
        text = request.text

        jobs: Dict[str, Any] = {}
        if request.image_ref and self.image_providers:
            jobs["image"] = self.analyze_image(request.image_ref)
        if text:
            jobs["text"] = self.analyze_text(request)
            jobs["coherence"] = self.check_coherence(text, category)

        if not jobs:
            return ModerationResult(is_valid=True, confidence=1.0)

        outcomes = await asyncio.gather(*jobs.values(), return_exceptions=True)
        results = dict(zip(jobs.keys(), outcomes))

        for outcome in outcomes:
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome

        failed = [name for name, outcome in results.items() if isinstance(outcome, Exception)]
        for name in failed:
            logger.error(
                f"Moderation facet '{name}' failed: {results[name]!r}",
                exc_info=results[name],
            )
        if failed and len(failed) == len(results):
            return self._technical_error_result()

        details = ModerationDetails()
        if "image" in results:
            image = results["image"]
            details.image_analysis = (
                image
                if not isinstance(image, Exception)
                else ImageAnalysis(
                    is_appropriate=True,
                    confidence=IMAGE_FALLBACK_CONFIDENCE,
                    error="Image analysis failed",
                )
            )
        if "text" in results:
            text_analysis = results["text"]
            details.text_analysis = (
                text_analysis
                if not isinstance(text_analysis, Exception)
                else self._keyword_only(request.text, error="Text analysis failed")
            )
        if "coherence" in results:
            coherence = results["coherence"]
            details.coherence_check = (
                coherence
                if not isinstance(coherence, Exception)
                else CoherenceCheck(
                    is_coherent=True,
                    confidence=COHERENCE_FALLBACK_CONFIDENCE,
                    declared_category=category,
                    note="Coherence check unavailable",
                )
            )

        return self.make_decision(details)

    async def analyze_image(self, image_ref: str) -> ImageAnalysis:
        """Classify the main image; degrade to pass-through when no provider answers."""
        verdict, errors = await self._first_verdict(
            self.image_providers, ModerationRequest(image_ref=image_ref)
        )
        if verdict is None:
            return ImageAnalysis(
                is_appropriate=True,
                confidence=IMAGE_FALLBACK_CONFIDENCE,
                error="Image moderation unavailable: " + "; ".join(errors),
            )
        return ImageAnalysis(
            is_appropriate=not verdict.flagged,
            confidence=verdict.confidence,
            provider=verdict.provider,
            categories=list(verdict.categories),
        )

    async def analyze_text(self, request: ModerationRequest) -> TextAnalysis:
        """Keyword policy plus the first text provider that answers."""
        text_request = ModerationRequest(title=request.title, description=request.description)
        verdict, errors = await self._first_verdict(self.text_providers, text_request)
        if verdict is None:
            return self._keyword_only(request.text, error="; ".join(errors) or None)

        keyword = self.keyword_policy.evaluate(request.text)
        return TextAnalysis(
            is_appropriate=not keyword.flagged and not verdict.flagged,
            confidence=min(keyword.confidence, verdict.confidence),
            keyword=keyword,
            provider=verdict.provider,
            provider_flagged=verdict.flagged,
            provider_categories=list(verdict.categories),
        )

    async def check_coherence(self, text: str, category: Optional[str]) -> CoherenceCheck:
        return self.coherence_checker.check(text, category)

    def make_decision(self, details: ModerationDetails) -> ModerationResult:
        """
        Merge facet analyses.

        Valid only if every analyzed facet is appropriate. Confidence is the
        product of the facet confidences; a valid result backed by a remote
        provider is capped at 0.95.
        """
        reasons: List[str] = []
        confidence = 1.0
        is_valid = True
        remote_verdict = False

        image = details.image_analysis
        if image is not None:
            confidence *= image.confidence
            remote_verdict = remote_verdict or image.provider is not None
            if not image.is_appropriate:
                is_valid = False
                labels = f" ({', '.join(image.categories)})" if image.categories else ""
                reasons.append(f"Inappropriate image detected by {image.provider}{labels}")

        text = details.text_analysis
        if text is not None:
            confidence *= text.confidence
            remote_verdict = remote_verdict or text.provider is not None
            if not text.is_appropriate:
                is_valid = False
            for match in text.keyword.categories:
                reasons.append(
                    f"Forbidden keywords detected ({match.category}: {', '.join(match.matched_terms)})"
                )
            if text.provider_flagged:
                labels = ", ".join(text.provider_categories) or "unspecified"
                reasons.append(f"Inappropriate content detected by {text.provider} ({labels})")

        coherence = details.coherence_check
        if coherence is not None and not coherence.is_coherent:
            confidence *= INCOHERENCE_PENALTY
            reasons.append(coherence.note or "Description does not match the declared category")

        if is_valid and remote_verdict:
            confidence = min(confidence, VALID_CONFIDENCE_CAP)

        return ModerationResult(
            is_valid=is_valid,
            confidence=round(max(0.0, min(1.0, confidence)), 4),
            reasons=reasons,
            details=details,
        )

    async def _first_verdict(
        self, providers: Sequence[ModerationProviderClient], request: ModerationRequest
    ) -> Tuple[Optional[ProviderVerdict], List[str]]:
        errors: List[str] = []
        for provider in providers:
            try:
                return await self._call_provider(provider, request), errors
            except ProviderUnavailable as e:
                logger.warning(f"Moderation provider unavailable, trying next: {e.message}")
                errors.append(e.message)
        return None, errors

    async def _call_provider(
        self, provider: ModerationProviderClient, request: ModerationRequest
    ) -> ProviderVerdict:
        try:
            return await asyncio.wait_for(provider.moderate(request), timeout=self.provider_timeout)
        except asyncio.TimeoutError as e:
            raise ProviderUnavailable(
                provider.name, f"no answer within {self.provider_timeout}s"
            ) from e

    def _keyword_only(self, text: str, error: Optional[str] = None) -> TextAnalysis:
        keyword = self.keyword_policy.evaluate(text)
        return TextAnalysis(
            is_appropriate=not keyword.flagged,
            confidence=keyword.confidence,
            keyword=keyword,
            error=error,
        )

    @staticmethod
    def _technical_error_result() -> ModerationResult:
        return ModerationResult(
            is_valid=True,
            confidence=TECHNICAL_ERROR_CONFIDENCE,
            reasons=[TECHNICAL_ERROR_REASON],
            technical_error=True,
        )
