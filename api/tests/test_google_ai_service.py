"""
Tests for the Gemini client wrapper.

The genai client is replaced by a MagicMock, so no request leaves the process.
Responses are built from SimpleNamespace objects shaped like the SDK's.
"""
import base64
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from google.genai import types
from services.google_ai_service import GoogleAIStudioService, ModelResponse, ResponsePart, normalize_response

from conftest import make_image
from core.config import Settings
from core.exceptions import DescriptionUnavailable, ModelCallFailed, ModelNotConfigured


def _text_response(text):
    return SimpleNamespace(parts=[SimpleNamespace(text=text, inline_data=None)])


def _image_response(data, mime_type="image/png", nested=False):
    part = SimpleNamespace(text=None, inline_data=SimpleNamespace(data=data, mime_type=mime_type))
    if nested:
        return SimpleNamespace(parts=None, candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])
    return SimpleNamespace(parts=[part])


@pytest.fixture
def genai_client():
    client = MagicMock()
    client.models.generate_content = MagicMock(return_value=_text_response("the oak floor"))
    return client


@pytest.fixture
def service(test_settings, genai_client):
    return GoogleAIStudioService(test_settings, client=genai_client)


class TestNormalizeResponse:
    @pytest.mark.unit
    def test_flat_parts(self):
        png = make_image(8, 8, format="PNG")

        response = normalize_response(_image_response(png.data))

        assert response.first_image().size == (8, 8)

    @pytest.mark.unit
    def test_nested_candidate_parts(self):
        png = make_image(8, 8, format="PNG")

        response = normalize_response(_image_response(png.data, nested=True))

        assert response.first_image().mime_type == "image/png"

    @pytest.mark.unit
    def test_base64_inline_data_is_decoded(self):
        jpeg = make_image(12, 6)

        response = normalize_response(_image_response(base64.b64encode(jpeg.data), mime_type="image/jpeg"))

        assert response.parts[0].data == jpeg.data
        assert response.first_image().size == (12, 6)

    @pytest.mark.unit
    def test_text_only_has_no_image(self):
        response = normalize_response(_text_response("I cannot edit this image."))

        assert response.first_image() is None
        assert response.text == "I cannot edit this image."

    @pytest.mark.unit
    def test_empty_response(self):
        assert normalize_response(SimpleNamespace(parts=None, candidates=None)).parts == []

    @pytest.mark.unit
    def test_first_image_skips_text_parts(self):
        png = make_image(4, 4, format="PNG")
        response = ModelResponse(parts=[ResponsePart(text="Sure!"), ResponsePart(mime_type="image/png", data=png.data)])

        assert response.first_image().data == png.data


class TestDescribeSurface:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_returns_text(self, service, genai_client):
        image = make_image(64, 64)

        description = await service.describe_surface("Describe the surface.", image)

        assert description == "the oak floor"
        kwargs = genai_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash"
        assert kwargs["contents"][0] == "Describe the surface."
        assert isinstance(kwargs["contents"][1], types.Part)
        assert kwargs["contents"][1].inline_data.data == image.data

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_text_is_unavailable(self, service, genai_client):
        genai_client.models.generate_content.return_value = _text_response("   ")

        with pytest.raises(DescriptionUnavailable):
            await service.describe_surface("Describe the surface.", make_image(8, 8))

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_errors_become_unavailable(self, service, genai_client):
        genai_client.models.generate_content.side_effect = RuntimeError("503 UNAVAILABLE")

        with pytest.raises(DescriptionUnavailable, match="503 UNAVAILABLE"):
            await service.describe_surface("Describe the surface.", make_image(8, 8))

        assert service.usage_stats["failed_requests"] == 1


class TestComposeImages:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_sends_both_images_then_instruction(self, service, genai_client):
        product, scene = make_image(32, 32), make_image(64, 64, format="PNG")
        generated = make_image(64, 64, format="PNG")
        genai_client.models.generate_content.return_value = _image_response(generated.data)

        response = await service.compose_images(product, scene, "Apply the tile.")

        assert response.first_image().data == generated.data
        kwargs = genai_client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.5-flash-image-preview"
        assert kwargs["contents"][0].inline_data.data == product.data
        assert kwargs["contents"][1].inline_data.data == scene.data
        assert kwargs["contents"][1].inline_data.mime_type == "image/png"
        assert kwargs["contents"][2] == "Apply the tile."
        assert "IMAGE" in kwargs["config"].response_modalities

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_errors_become_model_call_failed(self, service, genai_client):
        genai_client.models.generate_content.side_effect = RuntimeError("quota exceeded")

        with pytest.raises(ModelCallFailed) as exc_info:
            await service.compose_images(make_image(8, 8), make_image(8, 8), "x")

        assert exc_info.value.retryable is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_timeout_becomes_model_call_failed(self, genai_client):
        genai_client.models.generate_content.side_effect = lambda **kwargs: time.sleep(0.5)
        service = GoogleAIStudioService(
            Settings(google_ai_api_key="test-key", model_timeout_seconds=0.05), client=genai_client
        )

        with pytest.raises(ModelCallFailed, match="timed out"):
            await service.compose_images(make_image(8, 8), make_image(8, 8), "x")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        service = GoogleAIStudioService(Settings(google_ai_api_key=""))

        with pytest.raises(ModelNotConfigured) as exc_info:
            await service.compose_images(make_image(8, 8), make_image(8, 8), "x")

        assert exc_info.value.category == "config"


class TestUsageAndHealth:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_usage_statistics(self, service):
        await service.describe_surface("Describe the surface.", make_image(8, 8))

        stats = await service.get_usage_statistics()

        assert stats["total_requests"] == 1
        assert stats["successful_requests"] == 1
        assert stats["success_rate"] == 100

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_health_check_unconfigured(self):
        health = await GoogleAIStudioService(Settings(google_ai_api_key="")).health_check()

        assert health["status"] == "unconfigured"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_health_check_healthy(self, service):
        health = await service.health_check()

        assert health["status"] == "healthy"
        assert health["usage_stats"]["total_requests"] == 1
