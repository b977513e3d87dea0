"""
Moderation Providers
Clients for remote moderation APIs behind one interface.

Each provider speaks its own wire format and returns a normalized
ProviderVerdict. Any failure (network, timeout, error status, malformed
payload) raises ProviderUnavailable; retries and fallback belong to the
orchestrator.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Type

import httpx

from ..config import ModerationSettings
from ..errors import ProviderUnavailable
from ..models.moderation import ModerationRequest, ProviderVerdict

logger = logging.getLogger(__name__)


class ModerationProviderClient(ABC):
    """Base class for remote moderation providers."""

    name: str = "provider"
    supports_text: bool = True
    supports_images: bool = False

    def __init__(self, api_key: str, client: httpx.AsyncClient, timeout: float = 10.0):
        """
        Initialize provider.

        Args:
            api_key: Bearer credential for the provider
            client: Shared async HTTP client
            timeout: Per-request timeout in seconds
        """
        self.api_key = api_key
        self.client = client
        self.timeout = timeout

    @classmethod
    @abstractmethod
    def from_settings(
        cls, settings: ModerationSettings, client: httpx.AsyncClient
    ) -> Optional["ModerationProviderClient"]:
        """Build the provider, or return None when its credential is absent."""

    @abstractmethod
    async def moderate(self, request: ModerationRequest) -> ProviderVerdict:
        """Classify the request content."""

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}"}

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            response = await self.client.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response
        except httpx.TimeoutException as e:
            raise ProviderUnavailable(self.name, "request timed out") from e
        except httpx.HTTPStatusError as e:
            raise ProviderUnavailable(
                self.name,
                f"HTTP {e.response.status_code}",
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise ProviderUnavailable(self.name, f"request failed: {e}") from e
        except httpx.InvalidURL as e:
            raise ProviderUnavailable(self.name, f"invalid URL: {e}") from e

    async def _post_json(self, url: str, headers: Optional[Dict[str, str]] = None, **kwargs) -> Any:
        headers = {**self._headers(), **(headers or {})}
        response = await self._send("POST", url, headers=headers, **kwargs)
        try:
            return response.json()
        except ValueError as e:
            raise ProviderUnavailable(self.name, "response is not valid JSON") from e

    def _malformed(self, error: Exception) -> ProviderUnavailable:
        return ProviderUnavailable(self.name, f"malformed payload: {error!r}")

    @staticmethod
    def _text_input(request: ModerationRequest) -> str:
        parts = []
        if request.title:
            parts.append(f"Title: {request.title}")
        if request.description:
            parts.append(f"Description: {request.description}")
        return "\n".join(parts)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


def _flagged_categories(categories: Dict[str, Any]) -> List[str]:
    return sorted(key.lower() for key, value in categories.items() if value)


def _confidence_from_scores(scores: Dict[str, Any], default: float = 0.8) -> float:
    """Confidence that the content is fine: 1 - highest category score."""
    if not scores:
        return default
    highest = max(float(score) for score in scores.values())
    return min(1.0, max(0.0, 1.0 - highest))


class MistralModerationProvider(ModerationProviderClient):
    """Mistral moderation endpoint (text)."""

    name = "mistral"

    def __init__(self, api_key: str, client: httpx.AsyncClient, url: str, model: str, timeout: float = 10.0):
        super().__init__(api_key, client, timeout)
        self.url = url
        self.model = model

    @classmethod
    def from_settings(cls, settings, client):
        if not settings.mistral_api_key:
            return None
        return cls(
            settings.mistral_api_key,
            client,
            url=settings.mistral_api_url,
            model=settings.mistral_model,
            timeout=settings.provider_timeout_seconds,
        )

    async def moderate(self, request: ModerationRequest) -> ProviderVerdict:
        payload = await self._post_json(
            self.url, json={"model": self.model, "input": [self._text_input(request)]}
        )
        try:
            result = payload["results"][0]
            categories = _flagged_categories(result.get("categories") or {})
            return ProviderVerdict(
                provider=self.name,
                flagged=bool(categories),
                confidence=_confidence_from_scores(result.get("category_scores") or {}),
                categories=categories,
            )
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise self._malformed(e) from e


class OpenAIModerationProvider(ModerationProviderClient):
    """OpenAI moderation endpoint (text and image URLs)."""

    name = "openai"
    supports_images = True

    def __init__(self, api_key: str, client: httpx.AsyncClient, url: str, model: str, timeout: float = 10.0):
        super().__init__(api_key, client, timeout)
        self.url = url
        self.model = model

    @classmethod
    def from_settings(cls, settings, client):
        if not settings.openai_api_key:
            return None
        return cls(
            settings.openai_api_key,
            client,
            url=settings.openai_api_url,
            model=settings.openai_model,
            timeout=settings.provider_timeout_seconds,
        )

    def _build_input(self, request: ModerationRequest) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        text = self._text_input(request)
        if text:
            items.append({"type": "text", "text": text})
        if request.image_ref:
            items.append({"type": "image_url", "image_url": {"url": request.image_ref}})
        return items

    async def moderate(self, request: ModerationRequest) -> ProviderVerdict:
        payload = await self._post_json(
            self.url, json={"model": self.model, "input": self._build_input(request)}
        )
        try:
            result = payload["results"][0]
            return ProviderVerdict(
                provider=self.name,
                flagged=bool(result["flagged"]),
                confidence=_confidence_from_scores(result.get("category_scores") or {}),
                categories=_flagged_categories(result.get("categories") or {}),
            )
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise self._malformed(e) from e


class HuggingFaceTextProvider(ModerationProviderClient):
    """Toxic comment classifier on the Hugging Face Inference API."""

    name = "huggingface"

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        base_url: str,
        model: str,
        threshold: float = 0.8,
        timeout: float = 10.0,
    ):
        super().__init__(api_key, client, timeout)
        self.url = f"{base_url.rstrip('/')}/{model}"
        self.threshold = threshold

    @classmethod
    def from_settings(cls, settings, client):
        if not settings.huggingface_api_key:
            return None
        return cls(
            settings.huggingface_api_key,
            client,
            base_url=settings.huggingface_api_url,
            model=settings.huggingface_text_model,
            threshold=settings.toxicity_threshold,
            timeout=settings.provider_timeout_seconds,
        )

    async def moderate(self, request: ModerationRequest) -> ProviderVerdict:
        payload = await self._post_json(
            self.url,
            json={"inputs": request.text, "options": {"wait_for_model": True}},
        )
        try:
            # [[{"label": "toxic", "score": ...}, ...]] or a flat list
            labels = payload[0] if isinstance(payload[0], list) else payload
            scores = {item["label"].lower(): float(item["score"]) for item in labels}
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as e:
            raise self._malformed(e) from e

        toxic_score = scores.get("toxic", 0.0)
        flagged = toxic_score > self.threshold
        return ProviderVerdict(
            provider=self.name,
            flagged=flagged,
            confidence=1.0 - toxic_score,
            categories=["toxic"] if flagged else [],
        )


class HuggingFaceImageProvider(ModerationProviderClient):
    """NSFW image classifier on the Hugging Face Inference API."""

    name = "huggingface"
    supports_text = False
    supports_images = True

    def __init__(
        self,
        api_key: str,
        client: httpx.AsyncClient,
        base_url: str,
        model: str,
        threshold: float = 0.7,
        timeout: float = 10.0,
    ):
        super().__init__(api_key, client, timeout)
        self.url = f"{base_url.rstrip('/')}/{model}"
        self.threshold = threshold

    @classmethod
    def from_settings(cls, settings, client):
        if not settings.huggingface_api_key:
            return None
        return cls(
            settings.huggingface_api_key,
            client,
            base_url=settings.huggingface_api_url,
            model=settings.huggingface_image_model,
            threshold=settings.nsfw_threshold,
            timeout=settings.provider_timeout_seconds,
        )

    async def moderate(self, request: ModerationRequest) -> ProviderVerdict:
        if not request.image_ref:
            raise ProviderUnavailable(self.name, "no image to analyze")

        image = await self._send("GET", request.image_ref)
        payload = await self._post_json(
            self.url,
            content=image.content,
            headers={"Content-Type": "application/octet-stream"},
        )
        try:
            scores = {item["label"].lower(): float(item["score"]) for item in payload}
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise self._malformed(e) from e

        nsfw_score = scores.get("nsfw", 0.0)
        flagged = nsfw_score > self.threshold
        return ProviderVerdict(
            provider=self.name,
            flagged=flagged,
            confidence=1.0 - nsfw_score,
            categories=["nsfw"] if flagged else [],
        )


TEXT_PROVIDERS: Dict[str, Type[ModerationProviderClient]] = {
    "mistral": MistralModerationProvider,
    "openai": OpenAIModerationProvider,
    "huggingface": HuggingFaceTextProvider,
}

IMAGE_PROVIDERS: Dict[str, Type[ModerationProviderClient]] = {
    "huggingface": HuggingFaceImageProvider,
    "openai": OpenAIModerationProvider,
}


def _build(
    order: List[str],
    registry: Dict[str, Type[ModerationProviderClient]],
    settings: ModerationSettings,
    client: httpx.AsyncClient,
    capability: str,
) -> List[ModerationProviderClient]:
    providers = []
    for name in order:
        provider_cls = registry.get(name)
        if provider_cls is None:
            logger.warning(f"Unknown moderation provider in configuration: {name}")
            continue
        provider = provider_cls.from_settings(settings, client)
        if provider is None:
            logger.info(f"Moderation provider {name} skipped: no credential configured")
            continue
        if not getattr(provider, capability):
            logger.warning(f"Moderation provider {name} does not support {capability}, skipped")
            continue
        providers.append(provider)
    return providers


def build_text_providers(
    settings: ModerationSettings, client: httpx.AsyncClient
) -> List[ModerationProviderClient]:
    """Ordered text providers with a configured credential."""
    return _build(settings.text_provider_order, TEXT_PROVIDERS, settings, client, "supports_text")


def build_image_providers(
    settings: ModerationSettings, client: httpx.AsyncClient
) -> List[ModerationProviderClient]:
    """Ordered image providers with a configured credential."""
    return _build(settings.image_provider_order, IMAGE_PROVIDERS, settings, client, "supports_images")
