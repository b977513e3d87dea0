"""
Pytest configuration and shared fixtures
"""

import asyncio
import sys
from pathlib import Path
from typing import List, Optional, Union

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from klick.config import ModerationSettings, reset_settings
from klick.db.repository import InMemoryProductRepository
from klick.errors import ProviderUnavailable
from klick.models.moderation import ModerationRequest, ProviderVerdict
from klick.models.product import ProductSubmission
from klick.moderation.orchestrator import ModerationOrchestrator
from klick.moderation.providers import ModerationProviderClient
from klick.workflow import InMemoryNotificationSink, ProductWorkflow


class FakeProvider(ModerationProviderClient):
    """Scripted provider: returns a fixed verdict or raises."""

    def __init__(
        self,
        name: str = "fake",
        verdict: Optional[Union[ProviderVerdict, Exception]] = None,
        delay: float = 0.0,
        supports_images: bool = False,
    ):
        super().__init__(api_key="test-key", client=None)
        self.name = name
        self.supports_images = supports_images
        self.verdict = verdict or ProviderVerdict(provider=name, flagged=False, confidence=0.99)
        self.delay = delay
        self.calls: List[ModerationRequest] = []

    @classmethod
    def from_settings(cls, settings, client):
        return None

    async def moderate(self, request: ModerationRequest) -> ProviderVerdict:
        self.calls.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.verdict, Exception):
            raise self.verdict
        return self.verdict


@pytest.fixture
def fake_provider():
    """Factory for scripted providers."""
    return FakeProvider


@pytest.fixture
def failing_provider():
    """Factory for providers that always answer HTTP 503."""

    def make(name: str = "down") -> FakeProvider:
        return FakeProvider(name=name, verdict=ProviderUnavailable(name, "HTTP 503"))

    return make


@pytest.fixture(autouse=True)
def clean_settings():
    """Each test reads settings fresh."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> ModerationSettings:
    return ModerationSettings(
        validation_mode="inline",
        repository_backend="memory",
        admin_recipients=["admin-1"],
        mistral_api_key=None,
        openai_api_key=None,
        huggingface_api_key=None,
    )


@pytest.fixture
def repository() -> InMemoryProductRepository:
    return InMemoryProductRepository()


@pytest.fixture
def notifier() -> InMemoryNotificationSink:
    return InMemoryNotificationSink()


@pytest.fixture
def orchestrator() -> ModerationOrchestrator:
    """Keyword-only orchestrator (no remote provider configured)."""
    return ModerationOrchestrator(provider_timeout=0.5)


@pytest.fixture
def workflow(repository, orchestrator, notifier, settings) -> ProductWorkflow:
    return ProductWorkflow(repository, orchestrator, notifier, settings=settings)


@pytest.fixture
def clean_submission() -> ProductSubmission:
    return ProductSubmission(
        seller_id="seller-1",
        title="iPhone 15 Pro Max 256GB",
        description="Le smartphone le plus avancé, comme neuf",
        category="Électronique",
        images=["https://cdn.example.com/iphone.jpg"],
    )


@pytest.fixture
def violent_submission() -> ProductSubmission:
    return ProductSubmission(
        seller_id="seller-2",
        title="T-shirt",
        description="T-shirt normal... contient tuer et sang",
        category="Vetements",
        images=["https://cdn.example.com/tshirt.jpg"],
    )
