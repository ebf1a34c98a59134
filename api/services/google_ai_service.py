"""
Google AI Studio service: surface description and image composition via Gemini
"""
import asyncio
import base64
import binascii
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types

from core.config import Settings, settings as default_settings
from core.exceptions import DescriptionUnavailable, ModelCallFailed, ModelNotConfigured
from services.raster_image import RasterImage

logger = logging.getLogger(__name__)

# Raw image signatures; anything else in inline_data is treated as base64 text
_IMAGE_MAGIC = (b"\x89PNG", b"\xff\xd8\xff", b"RIFF", b"GIF8", b"BM")


@dataclass
class ResponsePart:
    """One part of a model response: text, an inline image, or both"""

    text: Optional[str] = None
    mime_type: Optional[str] = None
    data: Optional[bytes] = None

    @property
    def has_image(self) -> bool:
        return bool(self.data)


@dataclass
class ModelResponse:
    """Normalized generate_content response"""

    parts: List[ResponsePart] = field(default_factory=list)

    @property
    def text(self) -> str:
        return "".join(part.text for part in self.parts if part.text)

    def first_image(self) -> Optional[RasterImage]:
        """First image-bearing part as a RasterImage, or None if there is none."""
        for part in self.parts:
            if part.has_image:
                return RasterImage.from_bytes(part.data, mime_type=part.mime_type)
        return None


def _decode_inline_data(data: Any) -> Optional[bytes]:
    """The SDK returns raw bytes, but some versions hand back base64 text instead."""
    if data is None:
        return None
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not isinstance(data, (bytes, bytearray)):
        logger.error(f"Unexpected image data type: {type(data)}")
        return None

    data = bytes(data)
    if data.startswith(_IMAGE_MAGIC):
        return data

    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        logger.warning(f"Inline data is neither a known image signature nor base64 (first bytes: {data[:4].hex()})")
        return data


def _extract_parts(response: Any) -> List[Any]:
    """Handle both response.parts and response.candidates[0].content.parts"""
    if getattr(response, "parts", None):
        return list(response.parts)

    candidates = getattr(response, "candidates", None)
    if candidates:
        content = getattr(candidates[0], "content", None)
        if content is not None and getattr(content, "parts", None):
            return list(content.parts)
    return []


def normalize_response(response: Any) -> ModelResponse:
    """Convert an SDK GenerateContentResponse into a ModelResponse."""
    parts = []
    for part in _extract_parts(response):
        text = getattr(part, "text", None)
        inline_data = getattr(part, "inline_data", None)
        data = None
        mime_type = None
        if inline_data is not None:
            data = _decode_inline_data(getattr(inline_data, "data", None))
            mime_type = getattr(inline_data, "mime_type", None) or "image/png"
        parts.append(ResponsePart(text=text, mime_type=mime_type, data=data))
    return ModelResponse(parts=parts)


class GoogleAIStudioService:
    """Service for Google AI Studio integration"""

    def __init__(self, app_settings: Optional[Settings] = None, client: Optional[Any] = None):
        """
        Initialize Google AI Studio service

        Args:
            app_settings: Settings to read the API key, models and timeout from
            client: Pre-built genai client (tests inject a double here)
        """
        self.settings = app_settings or default_settings
        self.api_key = self.settings.google_ai_api_key
        self.usage_stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "total_processing_time": 0.0,
            "last_reset": datetime.now(),
        }

        if client is not None:
            self.genai_client = client
            self.genai_configured = True
        elif self.api_key:
            self.genai_client = genai.Client(api_key=self.api_key)
            self.genai_configured = True

            if len(self.api_key) > 12:
                masked_key = f"{self.api_key[:8]}...{self.api_key[-4:]}"
                logger.info(f"Google AI API Key loaded: {masked_key}")
        else:
            self.genai_configured = False
            self.genai_client = None
            logger.warning("Google AI API key not configured - composition will not be available")

        logger.info(
            f"Google AI Studio service initialized (description={self.settings.description_model}, "
            f"composition={self.settings.composition_model})"
        )

    @staticmethod
    def _image_part(image: RasterImage) -> types.Part:
        return types.Part(inline_data=types.Blob(mime_type=image.mime_type, data=image.data))

    async def _generate(self, model: str, contents: List[Any], config: types.GenerateContentConfig) -> ModelResponse:
        """Run the blocking generate_content call in a worker thread with a timeout."""
        if not self.genai_configured:
            raise ModelNotConfigured()

        def _run_generate():
            response = self.genai_client.models.generate_content(model=model, contents=contents, config=config)
            return normalize_response(response)

        self.usage_stats["total_requests"] += 1
        start_time = time.time()
        try:
            loop = asyncio.get_event_loop()
            result = await asyncio.wait_for(
                loop.run_in_executor(None, _run_generate), timeout=self.settings.model_timeout_seconds
            )
        except Exception:
            self.usage_stats["failed_requests"] += 1
            raise

        processing_time = time.time() - start_time
        self.usage_stats["successful_requests"] += 1
        self.usage_stats["total_processing_time"] += processing_time
        logger.info(f"{model} responded in {processing_time:.2f}s with {len(result.parts)} part(s)")
        return result

    async def describe_surface(self, instruction: str, image: RasterImage) -> str:
        """
        Ask the description model what surface lies under the marker.

        Args:
            instruction: Surface description request text
            image: Marked, padded scene

        Returns:
            The model's text, stripped

        Raises:
            DescriptionUnavailable: if the call fails or returns no text
        """
        logger.info(f"[GoogleAIStudioService] Describing surface on {image.width}x{image.height} scene")
        try:
            response = await self._generate(
                self.settings.description_model,
                [instruction, self._image_part(image)],
                types.GenerateContentConfig(temperature=self.settings.model_temperature),
            )
        except asyncio.TimeoutError as e:
            raise DescriptionUnavailable(
                f"Surface description timed out after {self.settings.model_timeout_seconds}s"
            ) from e
        except ModelNotConfigured:
            raise
        except Exception as e:
            raise DescriptionUnavailable(f"Surface description failed: {e}") from e

        text = response.text.strip()
        if not text:
            raise DescriptionUnavailable("Surface description came back empty")
        return text

    async def compose_images(self, image_a: RasterImage, image_b: RasterImage, instruction: str) -> ModelResponse:
        """
        Ask the image model to composite image_a (product) into image_b (scene).

        Raises:
            ModelNotConfigured: if no API key is configured
            ModelCallFailed: if the call errors or times out
        """
        logger.info(
            f"[GoogleAIStudioService] Composing {image_a.width}x{image_a.height} product into "
            f"{image_b.width}x{image_b.height} scene with {self.settings.composition_model}"
        )
        try:
            return await self._generate(
                self.settings.composition_model,
                [self._image_part(image_a), self._image_part(image_b), instruction],
                types.GenerateContentConfig(
                    response_modalities=["IMAGE", "TEXT"],
                    temperature=self.settings.model_temperature,
                ),
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Composition timed out after {self.settings.model_timeout_seconds} seconds")
            raise ModelCallFailed(
                f"Composition model timed out after {self.settings.model_timeout_seconds}s",
                details={"model": self.settings.composition_model},
            ) from e
        except ModelNotConfigured:
            raise
        except Exception as e:
            logger.error(f"Composition call failed: {e}")
            raise ModelCallFailed(f"Composition model call failed: {e}", details={"model": self.settings.composition_model}) from e

    async def get_usage_statistics(self) -> Dict[str, Any]:
        """Get API usage statistics"""
        return {
            **self.usage_stats,
            "success_rate": (self.usage_stats["successful_requests"] / max(self.usage_stats["total_requests"], 1) * 100),
            "average_processing_time": (
                self.usage_stats["total_processing_time"] / max(self.usage_stats["successful_requests"], 1)
            ),
        }

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check"""
        if not self.genai_configured:
            return {"status": "unconfigured", "api_key_valid": False}

        try:
            start_time = time.time()
            await self._generate(
                self.settings.description_model,
                ["Test connection. Respond with 'OK'."],
                types.GenerateContentConfig(max_output_tokens=10),
            )
            response_time = time.time() - start_time

            return {
                "status": "healthy",
                "response_time": response_time,
                "api_key_valid": True,
                "usage_stats": await self.get_usage_statistics(),
            }

        except Exception as e:
            return {"status": "unhealthy", "error": str(e), "api_key_valid": bool(self.api_key)}


# Global service instance
google_ai_service = GoogleAIStudioService()
