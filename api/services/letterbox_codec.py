"""
Letterbox codec: pad arbitrary images into the model's square format and crop
model output back to the original framing.
"""
import logging

from PIL import Image

from core.exceptions import MalformedModelOutput
from services.raster_geometry import compute_aspect_geometry, square_to_content_rect, to_pixels
from services.raster_image import RasterImage

logger = logging.getLogger(__name__)

BACKGROUND_COLOR = (0, 0, 0)  # Opaque black padding
DEFAULT_JPEG_QUALITY = 95


def _flatten(image: Image.Image) -> Image.Image:
    """Composite any transparency onto the padding color and return RGB."""
    has_alpha = image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info)
    if not has_alpha:
        return image.convert("RGB") if image.mode != "RGB" else image

    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, BACKGROUND_COLOR + (255,))
    return Image.alpha_composite(background, rgba).convert("RGB")


def pad(image: RasterImage, target_dimension: int, quality: int = DEFAULT_JPEG_QUALITY) -> RasterImage:
    """
    Letterbox an image into a target_dimension x target_dimension square.

    The image is scaled uniformly so its longer side fills the square, centered
    on an opaque black canvas, and encoded as JPEG at a fixed quality regardless
    of the source format.

    Args:
        image: Source image of any size and format
        target_dimension: Side of the output square in pixels
        quality: JPEG quality of the output

    Returns:
        New square RasterImage (image/jpeg)
    """
    geometry = compute_aspect_geometry(image.width, image.height, target_dimension)
    content = square_to_content_rect(geometry)

    source = _flatten(image.to_pil())
    scaled = source.resize(content.pixel_size, Image.Resampling.LANCZOS)

    canvas = Image.new("RGB", (target_dimension, target_dimension), BACKGROUND_COLOR)
    canvas.paste(scaled, (to_pixels(content.x), to_pixels(content.y)))

    logger.debug(
        f"[Letterbox] Padded {image.width}x{image.height} -> {target_dimension}x{target_dimension} "
        f"(content {scaled.width}x{scaled.height} at {to_pixels(content.x)},{to_pixels(content.y)})"
    )
    return RasterImage.from_pil(canvas, format="JPEG", quality=quality)


def unpad(
    square_image: RasterImage,
    original_width: int,
    original_height: int,
    target_dimension: int,
    quality: int = DEFAULT_JPEG_QUALITY,
    rescale_oversized: bool = True,
) -> RasterImage:
    """
    Crop a padded square back to the content rectangle of the original image.

    The geometry is recomputed from the ORIGINAL dimensions; the square image
    itself carries no aspect information. The crop is pixel-for-pixel, so the
    result is round(content_width) x round(content_height).

    Args:
        square_image: Model output, expected target_dimension square
        original_width, original_height: Dimensions of the image before padding
        target_dimension: Side of the square the original was padded into
        quality: JPEG quality of the output
        rescale_oversized: Resample output larger than the square down to
            target_dimension before cropping. When False the crop runs on the
            image as returned.

    Raises:
        MalformedModelOutput: if the square image is smaller than target_dimension
    """
    if square_image.width < target_dimension or square_image.height < target_dimension:
        raise MalformedModelOutput(
            f"Model returned a {square_image.width}x{square_image.height} image, "
            f"expected at least {target_dimension}x{target_dimension}",
            details={
                "width": square_image.width,
                "height": square_image.height,
                "target_dimension": target_dimension,
            },
        )

    geometry = compute_aspect_geometry(original_width, original_height, target_dimension)
    content = square_to_content_rect(geometry)

    source = square_image.to_pil()
    if source.size != (target_dimension, target_dimension) and rescale_oversized:
        logger.warning(
            f"[Letterbox] Model returned {source.width}x{source.height}, "
            f"resampling to {target_dimension}x{target_dimension} before cropping"
        )
        source = source.resize((target_dimension, target_dimension), Image.Resampling.LANCZOS)

    cropped = _flatten(source.crop(content.to_box()))

    logger.debug(
        f"[Letterbox] Cropped {source.width}x{source.height} -> {cropped.width}x{cropped.height} "
        f"for original {original_width}x{original_height}"
    )
    return RasterImage.from_pil(cropped, format="JPEG", quality=quality)
