"""
Burns the drop-point marker into a padded scene image for the description call.
"""
import logging
from typing import Tuple

from PIL import ImageDraw

from services.raster_geometry import RelativePosition, compute_aspect_geometry, content_percent_to_square_pixel
from services.raster_image import RasterImage

logger = logging.getLogger(__name__)

MIN_MARKER_RADIUS = 5
MARKER_RADIUS_RATIO = 0.015
MARKER_OUTLINE_RATIO = 0.2
MARKER_FILL = "red"
MARKER_OUTLINE = "white"


def marker_radius(width: int, height: int) -> float:
    """Marker radius in pixels for an image of the given size."""
    return max(MIN_MARKER_RADIUS, min(width, height) * MARKER_RADIUS_RATIO)


def marker_bounds(
    padded_width: int,
    padded_height: int,
    position: RelativePosition,
    original_width: int,
    original_height: int,
) -> Tuple[float, float, float, float]:
    """
    Bounding box (left, upper, right, lower) of the marker on the padded image.

    The outline is drawn inside the ellipse, so pixels outside this box are
    never touched by annotate().
    """
    geometry = compute_aspect_geometry(original_width, original_height, padded_width)
    center_x, center_y = content_percent_to_square_pixel(position, geometry)
    radius = marker_radius(padded_width, padded_height)
    return (center_x - radius, center_y - radius, center_x + radius, center_y + radius)


def annotate(
    padded_image: RasterImage,
    position: RelativePosition,
    original_width: int,
    original_height: int,
    quality: int = 95,
) -> RasterImage:
    """
    Draw a red, white-outlined circle at a content-relative position.

    The geometry is derived from the ORIGINAL dimensions and the padded image's
    width, so the marker lands on the same spot the user tapped even though the
    padded image has a different aspect ratio.

    Args:
        padded_image: Square letterboxed scene
        position: Drop point as percentages of the content rectangle
        original_width, original_height: Scene size before padding
        quality: JPEG quality when the input is JPEG

    Returns:
        New RasterImage in the same format as the input; the input is untouched
    """
    box = marker_bounds(padded_image.width, padded_image.height, position, original_width, original_height)
    radius = marker_radius(padded_image.width, padded_image.height)

    canvas = padded_image.to_pil().convert("RGB")
    draw = ImageDraw.Draw(canvas)
    draw.ellipse(
        box,
        fill=MARKER_FILL,
        outline=MARKER_OUTLINE,
        width=max(1, int(round(radius * MARKER_OUTLINE_RATIO))),
    )

    logger.debug(
        f"[Marker] Drew r={radius:.1f} marker at ({(box[0] + box[2]) / 2:.1f}, {(box[1] + box[3]) / 2:.1f}) "
        f"for {position.x_percent:.1f}%,{position.y_percent:.1f}%"
    )

    if padded_image.format == "JPEG":
        return RasterImage.from_pil(canvas, format="JPEG", quality=quality)
    return RasterImage.from_pil(canvas, format=padded_image.format)
