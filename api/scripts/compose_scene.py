"""
Compose Scene Script - run one composition from files on disk.

Usage:
    python scripts/compose_scene.py product.jpg room.jpg "oak parquet" --x 50 --y 80
    python scripts/compose_scene.py lamp.png room.jpg "brass floor lamp" --x 30 --y 70 --mode single
    python scripts/compose_scene.py tile.jpg room.jpg "white marble" --x 50 --y 90 --dry-run
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

# Add api directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.config import settings  # noqa: E402
from core.exceptions import RoomdropError  # noqa: E402
from services.composition_service import CompositionOrchestrator  # noqa: E402
from services.google_ai_service import GoogleAIStudioService  # noqa: E402
from services.letterbox_codec import pad  # noqa: E402
from services.marker_annotator import annotate  # noqa: E402
from services.prompt_assembler import PlacementMode  # noqa: E402
from services.raster_geometry import RelativePosition  # noqa: E402
from services.raster_image import RasterImage  # noqa: E402

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Place a product onto a surface in a room photo")
    parser.add_argument("product", type=Path, help="Product or texture image")
    parser.add_argument("scene", type=Path, help="Room photo")
    parser.add_argument("description", help="Short product description used in the prompt")
    parser.add_argument("--x", type=float, required=True, help="Drop point, percent of scene width (0-100)")
    parser.add_argument("--y", type=float, required=True, help="Drop point, percent of scene height (0-100)")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in PlacementMode],
        default=PlacementMode.TILE.value,
        help="tile covers the surface, single places one object (default: tile)",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("."),
        help="Where to write <scene>_composed.jpg and <scene>_marked.jpg (default: current directory)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only pad and mark the scene; skip both model calls",
    )
    return parser


def _write(image: RasterImage, path: Path) -> None:
    path.write_bytes(image.data)
    logger.info(f"Wrote {path} ({image.width}x{image.height}, {len(image.data)} bytes)")


async def main(argv=None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    position = RelativePosition(x_percent=args.x, y_percent=args.y)
    mode = PlacementMode.parse(args.mode)
    args.output_dir.mkdir(parents=True, exist_ok=True)
    stem = args.scene.stem

    try:
        product_image = RasterImage.from_bytes(args.product.read_bytes())
        scene_image = RasterImage.from_bytes(args.scene.read_bytes())
        logger.info(f"Product: {product_image!r}")
        logger.info(f"Scene: {scene_image!r}")

        if args.dry_run:
            padded_scene = pad(scene_image, settings.target_dimension, settings.jpeg_quality)
            marked = annotate(padded_scene, position, scene_image.width, scene_image.height, settings.jpeg_quality)
            _write(marked, args.output_dir / f"{stem}_marked.jpg")
            return 0

        orchestrator = CompositionOrchestrator(GoogleAIStudioService(settings), settings)
        result = await orchestrator.compose(product_image, args.description, scene_image, position, mode)

    except RoomdropError as e:
        logger.error(f"Composition failed [{e.code}, {e.category}]: {e}")
        return 1

    _write(result.final_image, args.output_dir / f"{stem}_composed.jpg")
    _write(result.debug_image, args.output_dir / f"{stem}_marked.jpg")

    logger.info("=" * 60)
    logger.info("COMPOSITION COMPLETE")
    logger.info(f"Surface: {result.surface_description} (fallback: {result.description_fallback_used})")
    logger.info(f"Processing time: {result.processing_time:.2f}s")
    return 0


def run():
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
