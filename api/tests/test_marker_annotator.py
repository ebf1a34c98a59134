"""
Tests for the drop-point marker.
"""
import math

import pytest
from PIL import ImageChops
from services.marker_annotator import MIN_MARKER_RADIUS, annotate, marker_bounds, marker_radius
from services.raster_geometry import RelativePosition

from conftest import make_image
from core.exceptions import InvalidPosition


@pytest.fixture
def padded_png():
    """Lossless padded scene so untouched pixels compare exactly."""
    return make_image(1024, 1024, color=(90, 90, 90), format="PNG")


def _changed_box(before, after):
    return ImageChops.difference(before.to_pil().convert("RGB"), after.to_pil().convert("RGB")).getbbox()


class TestMarkerRadius:
    def test_scales_with_short_side(self):
        assert marker_radius(1024, 1024) == pytest.approx(15.36)
        assert marker_radius(2000, 1000) == pytest.approx(15)

    def test_has_a_floor(self):
        assert marker_radius(100, 100) == MIN_MARKER_RADIUS


class TestAnnotate:
    """Tests for annotate."""

    def test_input_is_not_mutated(self, padded_png):
        before = padded_png.data

        marked = annotate(padded_png, RelativePosition(50, 50), 1600, 900)

        assert padded_png.data == before
        assert marked.data != padded_png.data
        assert marked.size == padded_png.size

    def test_center_is_red(self, padded_png):
        marked = annotate(padded_png, RelativePosition(50, 50), 1600, 900)

        assert marked.to_pil().getpixel((512, 512)) == (255, 0, 0)

    def test_outline_is_white(self, padded_png):
        marked = annotate(padded_png, RelativePosition(50, 50), 1600, 900)

        left, upper, right, lower = marker_bounds(1024, 1024, RelativePosition(50, 50), 1600, 900)
        region = marked.to_pil().crop((math.floor(left), math.floor(upper), math.ceil(right), math.ceil(lower)))
        assert (255, 255, 255) in [color for _, color in region.getcolors(maxcolors=4096)]

    def test_changes_stay_inside_marker_bounds(self, padded_png):
        position = RelativePosition(30, 70)

        marked = annotate(padded_png, position, 1600, 900)

        left, upper, right, lower = marker_bounds(1024, 1024, position, 1600, 900)
        changed = _changed_box(padded_png, marked)
        assert changed is not None
        assert changed[0] >= math.floor(left) - 1
        assert changed[1] >= math.floor(upper) - 1
        assert changed[2] <= math.ceil(right) + 1
        assert changed[3] <= math.ceil(lower) + 1

    def test_marker_follows_original_aspect_ratio(self, padded_png):
        # Top edge of a 1600x900 photo sits at y=224 on the padded square, not y=0
        marked = annotate(padded_png, RelativePosition(50, 0), 1600, 900)

        changed = _changed_box(padded_png, marked)
        assert changed[1] >= 224 - math.ceil(marker_radius(1024, 1024)) - 1
        assert changed[3] <= 224 + math.ceil(marker_radius(1024, 1024)) + 1

    def test_portrait_marker_is_offset_horizontally(self, padded_png):
        marked = annotate(padded_png, RelativePosition(0, 50), 900, 1600)

        assert marked.to_pil().getpixel((226, 512)) != (90, 90, 90)
        assert marked.to_pil().getpixel((5, 512)) == (90, 90, 90)

    def test_keeps_png_encoding(self, padded_png):
        assert annotate(padded_png, RelativePosition(50, 50), 1000, 1000).mime_type == "image/png"

    def test_keeps_jpeg_encoding(self):
        padded = make_image(1024, 1024, format="JPEG")

        assert annotate(padded, RelativePosition(50, 50), 1000, 1000).mime_type == "image/jpeg"

    def test_rejects_position_outside_content(self, padded_png):
        with pytest.raises(InvalidPosition):
            annotate(padded_png, RelativePosition(50, 120), 1600, 900)
