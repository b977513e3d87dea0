"""
Tests for the remote moderation provider clients (httpx.MockTransport).
"""

import asyncio
import json

import httpx
import pytest

from klick.config import ModerationSettings
from klick.errors import ProviderUnavailable
from klick.models.moderation import ModerationRequest
from klick.moderation.providers import (
    HuggingFaceImageProvider,
    HuggingFaceTextProvider,
    MistralModerationProvider,
    ModerationProviderClient,
    OpenAIModerationProvider,
    build_image_providers,
    build_text_providers,
)

REQUEST = ModerationRequest(title="Veste en cuir", description="Taille M, très bon état")


def run(coro):
    return asyncio.run(coro)


async def _moderate(provider_factory, handler, request=REQUEST):
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        return await provider_factory(client).moderate(request)


def mistral(client):
    return MistralModerationProvider(
        "mistral-key", client, url="https://mistral.test/v1/moderations", model="mistral-moderation-latest"
    )


def openai(client):
    return OpenAIModerationProvider(
        "openai-key", client, url="https://openai.test/v1/moderations", model="omni-moderation-latest"
    )


class TestMistralProvider:
    def test_clean_verdict(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "categories": {"sexual": False, "violence_and_threats": False},
                            "category_scores": {"sexual": 0.02, "violence_and_threats": 0.1},
                        }
                    ]
                },
            )

        verdict = run(_moderate(mistral, handler))

        assert verdict.provider == "mistral"
        assert verdict.flagged is False
        assert verdict.confidence == pytest.approx(0.9)
        assert seen["auth"] == "Bearer mistral-key"
        assert seen["body"]["model"] == "mistral-moderation-latest"
        assert seen["body"]["input"] == ["Title: Veste en cuir\nDescription: Taille M, très bon état"]

    def test_flagged_categories(self):
        def handler(request):
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "categories": {"Sexual": True, "hate_and_discrimination": False},
                            "category_scores": {"Sexual": 0.97},
                        }
                    ]
                },
            )

        verdict = run(_moderate(mistral, handler))

        assert verdict.flagged is True
        assert verdict.categories == ["sexual"]
        assert verdict.confidence == pytest.approx(0.03)

    def test_error_status_is_unavailable(self):
        def handler(request):
            return httpx.Response(503, json={"error": "overloaded"})

        with pytest.raises(ProviderUnavailable) as exc_info:
            run(_moderate(mistral, handler))

        assert exc_info.value.provider == "mistral"
        assert exc_info.value.details["status_code"] == 503

    def test_malformed_payload_is_unavailable(self):
        def handler(request):
            return httpx.Response(200, json={"unexpected": []})

        with pytest.raises(ProviderUnavailable, match="malformed payload"):
            run(_moderate(mistral, handler))

    def test_invalid_json_is_unavailable(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>gateway</html>")

        with pytest.raises(ProviderUnavailable, match="not valid JSON"):
            run(_moderate(mistral, handler))

    def test_timeout_is_unavailable(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(ProviderUnavailable, match="timed out"):
            run(_moderate(mistral, handler))


class TestOpenAIProvider:
    def test_sends_text_and_image(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "results": [
                        {
                            "flagged": True,
                            "categories": {"violence": True, "sexual": False},
                            "category_scores": {"violence": 0.88, "sexual": 0.01},
                        }
                    ]
                },
            )

        request = ModerationRequest(title="Couteau", image_ref="https://cdn.test/a.jpg")
        verdict = run(_moderate(openai, handler, request))

        assert verdict.flagged is True
        assert verdict.categories == ["violence"]
        assert verdict.confidence == pytest.approx(0.12)
        assert seen["body"]["input"] == [
            {"type": "text", "text": "Title: Couteau"},
            {"type": "image_url", "image_url": {"url": "https://cdn.test/a.jpg"}},
        ]


class TestHuggingFaceProviders:
    def test_toxic_text_above_threshold(self):
        def handler(request):
            assert request.url.path == "/models/martin-ha/toxic-comment-model"
            return httpx.Response(
                200, json=[[{"label": "toxic", "score": 0.92}, {"label": "non-toxic", "score": 0.08}]]
            )

        def factory(client):
            return HuggingFaceTextProvider(
                "hf-key",
                client,
                base_url="https://hf.test/models/",
                model="martin-ha/toxic-comment-model",
                threshold=0.8,
            )

        verdict = run(_moderate(factory, handler))

        assert verdict.flagged is True
        assert verdict.categories == ["toxic"]
        assert verdict.confidence == pytest.approx(0.08)

    def test_nsfw_image_below_threshold(self):
        seen = {}

        def handler(request):
            if request.method == "GET":
                return httpx.Response(200, content=b"\x89PNG-bytes")
            seen["content"] = request.content
            seen["content_type"] = request.headers["Content-Type"]
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json=[{"label": "normal", "score": 0.9}, {"label": "nsfw", "score": 0.1}])

        def factory(client):
            return HuggingFaceImageProvider(
                "hf-key",
                client,
                base_url="https://hf.test/models",
                model="Falconsai/nsfw_image_detection",
                threshold=0.7,
            )

        verdict = run(_moderate(factory, handler, ModerationRequest(image_ref="https://cdn.test/a.png")))

        assert verdict.flagged is False
        assert verdict.confidence == pytest.approx(0.9)
        assert seen["content"] == b"\x89PNG-bytes"
        assert seen["content_type"] == "application/octet-stream"
        assert seen["auth"] == "Bearer hf-key"

    def test_unreachable_image_is_unavailable(self):
        def handler(request):
            return httpx.Response(404)

        def factory(client):
            return HuggingFaceImageProvider("hf-key", client, base_url="https://hf.test", model="m")

        with pytest.raises(ProviderUnavailable, match="HTTP 404"):
            run(_moderate(factory, handler, ModerationRequest(image_ref="https://cdn.test/missing.png")))

    def test_malformed_image_url_is_unavailable(self):
        def handler(request):
            return httpx.Response(200, content=b"never fetched")

        def factory(client):
            return HuggingFaceImageProvider("hf-key", client, base_url="https://hf.test", model="m")

        with pytest.raises(ProviderUnavailable, match="invalid URL"):
            run(_moderate(factory, handler, ModerationRequest(image_ref="http://[::1/x.jpg")))


def test_registry_skips_missing_credentials_and_keeps_order():
    settings = ModerationSettings(
        mistral_api_key=None,
        openai_api_key="openai-key",
        huggingface_api_key="hf-key",
        text_provider_order=["mistral", "huggingface", "openai", "unknown"],
        image_provider_order=["openai", "huggingface"],
    )

    async def build():
        async with httpx.AsyncClient() as client:
            return build_text_providers(settings, client), build_image_providers(settings, client)

    text, image = run(build())

    assert [type(p) for p in text] == [HuggingFaceTextProvider, OpenAIModerationProvider]
    assert [type(p) for p in image] == [OpenAIModerationProvider, HuggingFaceImageProvider]


def test_no_credentials_means_no_providers():
    settings = ModerationSettings(mistral_api_key=None, openai_api_key=None, huggingface_api_key=None)

    async def build():
        async with httpx.AsyncClient() as client:
            return build_text_providers(settings, client)

    assert run(build()) == []


def test_provider_without_settings_builder_is_abstract():
    class TextOnly(ModerationProviderClient):
        async def moderate(self, request):
            raise NotImplementedError

    with pytest.raises(TypeError, match="from_settings"):
        TextOnly("key", client=None)
