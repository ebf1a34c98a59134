"""
In-memory image values passed between pipeline steps.

A RasterImage is immutable: encoded bytes plus MIME type plus intrinsic pixel
size. Decoding from and encoding back to bytes/base64/data URIs never
recompresses; only the pipeline transforms (pad, annotate, unpad) produce new
encodings.
"""
import base64
import binascii
import io
from dataclasses import dataclass
from typing import Optional, Tuple

from PIL import Image, ImageOps, UnidentifiedImageError

from core.exceptions import UnreadableImage

DEFAULT_MIME_TYPE = "image/jpeg"

MIME_TO_FORMAT = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
    "image/gif": "GIF",
    "image/bmp": "BMP",
}
FORMAT_TO_MIME = {format_name: mime for mime, format_name in MIME_TO_FORMAT.items()}


@dataclass(frozen=True)
class RasterImage:
    """Encoded image payload with its intrinsic (orientation-corrected) pixel size"""

    data: bytes
    mime_type: str
    width: int
    height: int

    def __repr__(self) -> str:
        return f"RasterImage({self.mime_type}, {self.width}x{self.height}, {len(self.data)} bytes)"

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: Optional[str] = None) -> "RasterImage":
        """
        Read an uploaded or generated image.

        The MIME type is taken from the decoded format when Pillow knows it,
        falling back to the caller's hint.

        Raises:
            UnreadableImage: if the bytes are empty or not a decodable image
        """
        if not data:
            raise UnreadableImage("Image data is empty")

        try:
            with Image.open(io.BytesIO(data)) as pil_image:
                detected_mime = Image.MIME.get(pil_image.format or "")
                # EXIF orientation decides the intrinsic size (smartphone photos)
                pil_image = ImageOps.exif_transpose(pil_image)
                width, height = pil_image.size
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise UnreadableImage(f"Could not decode image: {e}", details={"bytes": len(data)}) from e

        return cls(
            data=bytes(data),
            mime_type=detected_mime or mime_type or DEFAULT_MIME_TYPE,
            width=width,
            height=height,
        )

    @classmethod
    def from_base64(cls, value: str) -> "RasterImage":
        """Read raw base64 or a data URI (data:image/png;base64,...)."""
        mime_hint = None
        if value.startswith("data:"):
            header, _, value = value.partition(",")
            mime_hint = header[5:].split(";")[0] or None

        try:
            data = base64.b64decode(value, validate=False)
        except (binascii.Error, ValueError) as e:
            raise UnreadableImage(f"Invalid base64 image data: {e}") from e

        return cls.from_bytes(data, mime_type=mime_hint)

    @classmethod
    def from_pil(cls, image: Image.Image, format: str = "JPEG", quality: int = 95) -> "RasterImage":
        """Encode a Pillow image. JPEG output drops any alpha channel."""
        if format.upper() in ("JPEG", "JPG") and image.mode != "RGB":
            image = image.convert("RGB")

        buffer = io.BytesIO()
        if format.upper() in ("JPEG", "JPG"):
            image.save(buffer, format="JPEG", quality=quality)
            mime_type = "image/jpeg"
        else:
            image.save(buffer, format=format)
            mime_type = FORMAT_TO_MIME.get(format.upper(), f"image/{format.lower()}")

        return cls(data=buffer.getvalue(), mime_type=mime_type, width=image.width, height=image.height)

    def to_pil(self) -> Image.Image:
        """Decode to a fully loaded Pillow image, orientation-corrected."""
        try:
            pil_image = Image.open(io.BytesIO(self.data))
            pil_image = ImageOps.exif_transpose(pil_image)
            pil_image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise UnreadableImage(f"Could not decode image: {e}") from e
        return pil_image

    @property
    def format(self) -> str:
        """Pillow format name matching the MIME type (JPEG, PNG, ...)."""
        return MIME_TO_FORMAT.get(self.mime_type, "JPEG")

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("utf-8")

    def to_data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"
