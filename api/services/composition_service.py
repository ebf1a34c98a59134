"""
Composition orchestrator: drop a product onto a surface in a room photo.

One compose() call runs the whole pipeline:

    START -> DIMENSIONS_READ -> RESIZED -> MARKED -> DESCRIBED -> COMPOSED -> CROPPED -> DONE

The surface description is best effort: if it fails, a generic description is
used and the pipeline continues. Every other failure moves the invocation to
FAILED and propagates to the caller.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from core.config import Settings, settings as default_settings
from core.exceptions import MalformedModelOutput, NoImageReturned, UnreadableImage
from services.letterbox_codec import pad, unpad
from services.marker_annotator import annotate
from services.prompt_assembler import (
    FALLBACK_SURFACE_DESCRIPTION,
    PlacementMode,
    build_composition_prompt,
    build_surface_description_request,
    normalize_surface_description,
)
from services.raster_geometry import RelativePosition
from services.raster_image import RasterImage

logger = logging.getLogger(__name__)


class CompositionStage(str, Enum):
    START = "start"
    DIMENSIONS_READ = "dimensions_read"
    RESIZED = "resized"
    MARKED = "marked"
    DESCRIBED = "described"
    COMPOSED = "composed"
    CROPPED = "cropped"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class CompositionResult:
    """Output of a successful composition"""

    final_image: RasterImage
    debug_image: RasterImage  # Padded scene with the marker, as sent to the description model
    prompt_used: str
    surface_description: str
    description_fallback_used: bool
    original_width: int
    original_height: int
    processing_time: float
    stages: Tuple[CompositionStage, ...] = field(default_factory=tuple)


class CompositionOrchestrator:
    """Runs the pad / mark / describe / compose / crop pipeline against a model client"""

    def __init__(self, model, app_settings: Optional[Settings] = None):
        """
        Args:
            model: Object providing describe_surface(instruction, image) and
                compose_images(image_a, image_b, instruction)
            app_settings: Target dimension, JPEG quality and rescale policy
        """
        self.model = model
        self.settings = app_settings or default_settings

    async def compose(
        self,
        product_image: RasterImage,
        product_description: str,
        scene_image: RasterImage,
        drop_position: RelativePosition,
        mode: PlacementMode = PlacementMode.TILE,
    ) -> CompositionResult:
        """
        Place a product onto the surface under drop_position.

        Args:
            product_image: Product photo or texture swatch
            product_description: Short product name used in the prompt
            scene_image: Room photograph
            drop_position: Percentages of the scene's width/height
            mode: TILE to cover the whole surface, SINGLE for one object

        Returns:
            CompositionResult whose final_image has the scene's aspect ratio

        Raises:
            UnreadableImage, InvalidImageDimensions, InvalidPosition: bad inputs
            ModelNotConfigured: no model credentials
            ModelCallFailed, NoImageReturned, MalformedModelOutput: model failures
        """
        start_time = time.time()
        target = self.settings.target_dimension
        quality = self.settings.jpeg_quality
        mode = PlacementMode.parse(mode)
        stages = [CompositionStage.START]

        def advance(stage: CompositionStage) -> None:
            stages.append(stage)
            logger.debug(f"[Composition] -> {stage.value}")

        try:
            # Intrinsic size, orientation-corrected, decides the crop-back geometry
            scene_width, scene_height = scene_image.width, scene_image.height
            if scene_width <= 0 or scene_height <= 0:
                raise UnreadableImage(f"Scene image has no usable size ({scene_width}x{scene_height})")
            advance(CompositionStage.DIMENSIONS_READ)

            # Range check before any padding or model call
            drop_position.validate()

            resized_product, resized_scene = await asyncio.gather(
                asyncio.to_thread(pad, product_image, target, quality),
                asyncio.to_thread(pad, scene_image, target, quality),
            )
            advance(CompositionStage.RESIZED)

            marked_scene = await asyncio.to_thread(
                annotate, resized_scene, drop_position, scene_width, scene_height, quality
            )
            advance(CompositionStage.MARKED)

            surface_description, fallback_used = await self._describe_surface(marked_scene)
            advance(CompositionStage.DESCRIBED)

            prompt = build_composition_prompt(product_description, surface_description, mode)
            # The unmarked scene goes to the image model; the marker must not leak into the result
            response = await self.model.compose_images(resized_product, resized_scene, prompt)

            try:
                generated = response.first_image()
            except UnreadableImage as e:
                raise MalformedModelOutput(f"Model returned an undecodable image: {e}") from e
            if generated is None:
                text = getattr(response, "text", "") or ""
                raise NoImageReturned(details={"model_text": text[:500]} if text else None)
            advance(CompositionStage.COMPOSED)

            final_image = await asyncio.to_thread(
                unpad,
                generated,
                scene_width,
                scene_height,
                target,
                quality,
                self.settings.rescale_oversized_output,
            )
            advance(CompositionStage.CROPPED)

        except Exception as e:
            stages.append(CompositionStage.FAILED)
            logger.error(
                f"[Composition] Failed after stage {stages[-2].value}: {type(e).__name__}: {e}"
            )
            raise

        advance(CompositionStage.DONE)
        processing_time = time.time() - start_time
        logger.info(
            f"[Composition] Done in {processing_time:.2f}s: {scene_width}x{scene_height} scene, "
            f"mode={mode.value}, fallback={fallback_used}"
        )

        return CompositionResult(
            final_image=final_image,
            debug_image=marked_scene,
            prompt_used=prompt,
            surface_description=surface_description,
            description_fallback_used=fallback_used,
            original_width=scene_width,
            original_height=scene_height,
            processing_time=processing_time,
            stages=tuple(stages),
        )

    async def _describe_surface(self, marked_scene: RasterImage) -> Tuple[str, bool]:
        """Returns (description, fallback_used). Never raises except on cancellation."""
        try:
            raw = await self.model.describe_surface(build_surface_description_request(), marked_scene)
            description = normalize_surface_description(raw)
            if description:
                logger.info(f"[Composition] Surface: {description}")
                return description, False
            logger.warning("[Composition] DescriptionUnavailable: empty surface description, using fallback")
        except Exception as e:
            logger.warning(f"[Composition] DescriptionUnavailable: {e}. Using fallback description")
        return FALLBACK_SURFACE_DESCRIPTION, True
