"""
Composition API routes: drop a product onto a surface in a room photo
"""
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from middleware.logging_middleware import get_logger
from schemas.composition import ComposeRequest, ComposeResponse, ErrorResponse, LocateRequest, LocateResponse
from services.composition_service import CompositionOrchestrator, CompositionResult
from services.google_ai_service import google_ai_service
from services.prompt_assembler import PlacementMode
from services.raster_geometry import RelativePosition, viewport_point_to_content_percent
from services.raster_image import RasterImage

from core.config import settings
from core.exceptions import CONFIG, INPUT, MODEL, RoomdropError

logger = get_logger(__name__)
router = APIRouter(prefix="/composition", tags=["composition"])

STATUS_BY_CATEGORY = {
    INPUT: 422,
    MODEL: 502,
    CONFIG: 503,
}

ERROR_RESPONSES = {status: {"model": ErrorResponse} for status in STATUS_BY_CATEGORY.values()}


def get_orchestrator() -> CompositionOrchestrator:
    """Orchestrator bound to the shared Gemini client"""
    return CompositionOrchestrator(google_ai_service, settings)


def _error_to_http(error: RoomdropError) -> HTTPException:
    return HTTPException(status_code=STATUS_BY_CATEGORY.get(error.category, 500), detail=error.to_dict())


def _check_size(image: RasterImage, field_name: str) -> None:
    if len(image.data) > settings.max_file_size:
        raise HTTPException(
            status_code=413,
            detail=f"{field_name} is {len(image.data)} bytes; the limit is {settings.max_file_size} bytes",
        )


def _to_response(result: CompositionResult, mode: PlacementMode) -> ComposeResponse:
    return ComposeResponse(
        final_image=result.final_image.to_data_uri(),
        debug_image=result.debug_image.to_data_uri(),
        prompt_used=result.prompt_used,
        surface_description=result.surface_description,
        description_fallback_used=result.description_fallback_used,
        original_width=result.original_width,
        original_height=result.original_height,
        final_width=result.final_image.width,
        final_height=result.final_image.height,
        mode=mode,
        processing_time=result.processing_time,
        stages=[stage.value for stage in result.stages],
    )


async def _run_composition(
    orchestrator: CompositionOrchestrator,
    product_image: RasterImage,
    product_description: str,
    scene_image: RasterImage,
    position: RelativePosition,
    mode: PlacementMode,
) -> ComposeResponse:
    try:
        result = await orchestrator.compose(product_image, product_description, scene_image, position, mode)
    except RoomdropError as e:
        logger.error(f"Composition failed [{e.code}]: {e}")
        raise _error_to_http(e)
    except Exception as e:
        logger.error(f"Unexpected error during composition: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Composition failed: {str(e)}")

    return _to_response(result, mode)


@router.post("/compose", response_model=ComposeResponse, responses=ERROR_RESPONSES)
async def compose(request: ComposeRequest, orchestrator: CompositionOrchestrator = Depends(get_orchestrator)):
    """
    Compose a product into a room photo at a drop position.

    The response carries the final image at the scene's original aspect ratio,
    plus the marked debug image and the prompt sent to the image model.
    """
    logger.info(
        f"Compose request: '{request.product_description}' at "
        f"({request.drop_position.x_percent:.1f}%, {request.drop_position.y_percent:.1f}%), mode={request.mode.value}"
    )

    try:
        product_image = RasterImage.from_base64(request.product_image)
        scene_image = RasterImage.from_base64(request.scene_image)
    except RoomdropError as e:
        raise _error_to_http(e)

    _check_size(product_image, "product_image")
    _check_size(scene_image, "scene_image")

    position = RelativePosition(x_percent=request.drop_position.x_percent, y_percent=request.drop_position.y_percent)
    return await _run_composition(
        orchestrator, product_image, request.product_description, scene_image, position, request.mode
    )


@router.post("/compose-upload", response_model=ComposeResponse, responses=ERROR_RESPONSES)
async def compose_upload(
    product_file: UploadFile = File(...),
    scene_file: UploadFile = File(...),
    product_description: str = Form(...),
    x_percent: float = Form(...),
    y_percent: float = Form(...),
    mode: Optional[str] = Form(None),
    orchestrator: CompositionOrchestrator = Depends(get_orchestrator),
):
    """Multipart variant of /compose for direct file uploads"""
    try:
        placement_mode = PlacementMode.parse(mode)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    images = []
    for upload in (product_file, scene_file):
        if upload.content_type and upload.content_type not in settings.allowed_image_types:
            raise HTTPException(
                status_code=400,
                detail=f"{upload.filename}: unsupported type {upload.content_type}. "
                f"Allowed: {', '.join(settings.allowed_image_types)}",
            )

        contents = await upload.read()
        if len(contents) > settings.max_file_size:
            raise HTTPException(
                status_code=413,
                detail=f"{upload.filename} is {len(contents)} bytes; the limit is {settings.max_file_size} bytes",
            )

        try:
            images.append(RasterImage.from_bytes(contents, mime_type=upload.content_type))
        except RoomdropError as e:
            raise _error_to_http(e)

    product_image, scene_image = images
    position = RelativePosition(x_percent=x_percent, y_percent=y_percent)
    logger.info(
        f"Compose upload: '{product_description}' into {scene_file.filename} "
        f"({scene_image.width}x{scene_image.height}) at ({x_percent:.1f}%, {y_percent:.1f}%)"
    )
    return await _run_composition(orchestrator, product_image, product_description, scene_image, position, placement_mode)


@router.post("/locate", response_model=LocateResponse, responses={422: {"model": ErrorResponse}})
async def locate(request: LocateRequest):
    """Convert a click on a displayed image into a drop position"""
    try:
        position = viewport_point_to_content_percent(
            request.point_x,
            request.point_y,
            request.viewport_width,
            request.viewport_height,
            request.natural_width,
            request.natural_height,
        )
    except RoomdropError as e:
        raise _error_to_http(e)

    return LocateResponse(x_percent=position.x_percent, y_percent=position.y_percent)


@router.get("/health")
async def composition_health():
    """Model client health and usage statistics"""
    health = await google_ai_service.health_check()
    return {
        "service": "composition",
        "target_dimension": settings.target_dimension,
        "description_model": settings.description_model,
        "composition_model": settings.composition_model,
        "model": health,
    }
