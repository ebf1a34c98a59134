"""
Coordinate math for letterboxing an image into a fixed-size square.

Every consumer that pads, marks or crops goes through compute_aspect_geometry
so that a given (original_width, original_height, target_dimension) triple
always yields the same content rectangle.
"""
from dataclasses import dataclass
from typing import Tuple

from core.exceptions import InvalidImageDimensions, InvalidPosition


@dataclass(frozen=True)
class AspectGeometry:
    """Placement of the scaled original inside the square canvas"""

    content_width: float
    content_height: float
    offset_x: float
    offset_y: float
    target_dimension: int


@dataclass(frozen=True)
class RelativePosition:
    """Position as percentages (0-100) of the content rectangle, not the padded square"""

    x_percent: float
    y_percent: float

    def validate(self) -> "RelativePosition":
        for axis, value in (("x_percent", self.x_percent), ("y_percent", self.y_percent)):
            if not 0 <= value <= 100:
                raise InvalidPosition(
                    f"{axis}={value} is outside the content rectangle (expected 0-100)",
                    details={"x_percent": self.x_percent, "y_percent": self.y_percent},
                )
        return self


@dataclass(frozen=True)
class ContentRect:
    """Sub-rectangle of the square canvas holding the scaled original"""

    x: float
    y: float
    width: float
    height: float

    def to_box(self) -> Tuple[int, int, int, int]:
        """Integer (left, upper, right, lower) box for PIL crop/paste."""
        left = to_pixels(self.x)
        upper = to_pixels(self.y)
        width, height = self.pixel_size
        return (left, upper, left + width, upper + height)

    @property
    def pixel_size(self) -> Tuple[int, int]:
        # A sliver image still keeps one pixel on its short side
        return (max(1, to_pixels(self.width)), max(1, to_pixels(self.height)))


def to_pixels(value: float) -> int:
    """Round a fractional canvas coordinate to a whole pixel."""
    return int(round(value))


def compute_aspect_geometry(original_width: float, original_height: float, target_dimension: int) -> AspectGeometry:
    """
    Fit an original_width x original_height image inside a target_dimension square.

    The longer axis touches the square's edge; the shorter axis is centered
    with equal padding on both sides.

    Raises:
        InvalidImageDimensions: if any dimension is zero or negative
    """
    if original_width <= 0 or original_height <= 0:
        raise InvalidImageDimensions(original_width, original_height)
    if target_dimension <= 0:
        raise InvalidImageDimensions(target_dimension, target_dimension, details={"target_dimension": target_dimension})

    aspect_ratio = original_width / original_height

    if aspect_ratio > 1:  # Landscape
        content_width = float(target_dimension)
        content_height = target_dimension / aspect_ratio
    else:  # Portrait or square
        content_height = float(target_dimension)
        content_width = target_dimension * aspect_ratio

    return AspectGeometry(
        content_width=content_width,
        content_height=content_height,
        offset_x=(target_dimension - content_width) / 2,
        offset_y=(target_dimension - content_height) / 2,
        target_dimension=target_dimension,
    )


def content_percent_to_square_pixel(position: RelativePosition, geometry: AspectGeometry) -> Tuple[float, float]:
    """Map a content-relative position to absolute pixel coordinates on the square canvas."""
    position.validate()
    x = geometry.offset_x + (position.x_percent / 100) * geometry.content_width
    y = geometry.offset_y + (position.y_percent / 100) * geometry.content_height
    return x, y


def square_pixel_to_content_percent(x: float, y: float, geometry: AspectGeometry) -> RelativePosition:
    """
    Inverse of content_percent_to_square_pixel.

    Not validated: points in the padding map outside 0-100.
    """
    x_percent = (x - geometry.offset_x) / geometry.content_width * 100
    y_percent = (y - geometry.offset_y) / geometry.content_height * 100
    return RelativePosition(x_percent=x_percent, y_percent=y_percent)


def square_to_content_rect(geometry: AspectGeometry) -> ContentRect:
    return ContentRect(
        x=geometry.offset_x,
        y=geometry.offset_y,
        width=geometry.content_width,
        height=geometry.content_height,
    )


def viewport_point_to_content_percent(
    point_x: float,
    point_y: float,
    viewport_width: float,
    viewport_height: float,
    natural_width: float,
    natural_height: float,
) -> RelativePosition:
    """
    Translate a click on an image shown "contain"-fitted in a viewport.

    The image is scaled to fit the viewport and centered, so clicks can land on
    the letterbox bars around it; those are rejected.

    Args:
        point_x, point_y: Click position relative to the viewport's top-left corner
        viewport_width, viewport_height: Size of the element displaying the image
        natural_width, natural_height: Intrinsic size of the displayed image

    Returns:
        RelativePosition inside the displayed image

    Raises:
        InvalidImageDimensions: if either size is not positive
        InvalidPosition: if the point falls outside the rendered image
    """
    if viewport_width <= 0 or viewport_height <= 0:
        raise InvalidImageDimensions(viewport_width, viewport_height, details={"viewport": True})
    if natural_width <= 0 or natural_height <= 0:
        raise InvalidImageDimensions(natural_width, natural_height)

    image_ratio = natural_width / natural_height
    viewport_ratio = viewport_width / viewport_height

    if image_ratio > viewport_ratio:
        rendered_width = viewport_width
        rendered_height = viewport_width / image_ratio
    else:
        rendered_height = viewport_height
        rendered_width = viewport_height * image_ratio

    image_x = point_x - (viewport_width - rendered_width) / 2
    image_y = point_y - (viewport_height - rendered_height) / 2

    if image_x < 0 or image_x > rendered_width or image_y < 0 or image_y > rendered_height:
        raise InvalidPosition(
            "Point is outside the image boundaries",
            details={"point_x": point_x, "point_y": point_y},
        )

    return RelativePosition(
        x_percent=image_x / rendered_width * 100,
        y_percent=image_y / rendered_height * 100,
    )
