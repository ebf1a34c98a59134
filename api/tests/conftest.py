"""
Pytest configuration and fixtures for Roomdrop API tests.
"""
import io
import struct
import zlib
from unittest.mock import AsyncMock

import pytest
from PIL import Image

from core.config import Settings
from services.google_ai_service import ModelResponse, ResponsePart
from services.raster_image import RasterImage


def make_image(width, height, color="beige", format="JPEG", mode="RGB") -> RasterImage:
    """Build an in-memory RasterImage of a single color."""
    img = Image.new(mode, (width, height), color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=format)
    return RasterImage.from_bytes(buffer.getvalue())


def png_header_only(width, height) -> bytes:
    """PNG bytes whose header declares width x height, with a token pixel payload."""

    def chunk(kind, payload):
        return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", zlib.crc32(kind + payload))

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(b"\x00" * 4))
        + chunk(b"IEND", b"")
    )


def image_response(image: RasterImage) -> ModelResponse:
    """Composition response carrying one inline image."""
    return ModelResponse(parts=[ResponsePart(text="Here is the edited room.", mime_type=image.mime_type, data=image.data)])


@pytest.fixture
def test_settings():
    """Settings with a dummy key and the default processing format."""
    return Settings(google_ai_api_key="test-key-0123456789", target_dimension=1024, jpeg_quality=95)


@pytest.fixture
def landscape_scene():
    """1600x900 room photo."""
    return make_image(1600, 900, color=(180, 150, 120))


@pytest.fixture
def portrait_scene():
    """900x1600 room photo."""
    return make_image(900, 1600, color=(120, 150, 180))


@pytest.fixture
def product_image():
    """Square product swatch."""
    return make_image(300, 300, color=(139, 69, 19), format="PNG")


@pytest.fixture
def generated_square():
    """What the image model returns: a 1024 square, green everywhere."""
    return make_image(1024, 1024, color=(0, 200, 0), format="PNG")


@pytest.fixture
def fake_model(generated_square):
    """Model client double: a successful description and one image part."""
    model = AsyncMock()
    model.describe_surface = AsyncMock(return_value="the light oak hardwood floor covering the whole room")
    model.compose_images = AsyncMock(return_value=image_response(generated_square))
    return model
