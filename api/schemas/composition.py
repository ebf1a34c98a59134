"""
Pydantic schemas for the composition API endpoints.

Images travel as base64 strings or data URIs. Drop positions are percentages
of the scene photo itself (not of any padded or displayed version of it).
"""
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from services.prompt_assembler import PlacementMode


class DropPositionSchema(BaseModel):
    """Content-relative drop point. Range (0-100) is checked by the pipeline."""

    x_percent: float = Field(..., description="Horizontal position, 0 = left edge, 100 = right edge")
    y_percent: float = Field(..., description="Vertical position, 0 = top edge, 100 = bottom edge")


class ComposeRequest(BaseModel):
    """Request body for /composition/compose"""

    product_image: str = Field(..., description="Base64 or data URI of the product/texture image")
    product_description: str = Field(..., min_length=1, max_length=500, description="e.g. 'oak herringbone parquet'")
    scene_image: str = Field(..., description="Base64 or data URI of the room photo")
    drop_position: DropPositionSchema
    mode: PlacementMode = Field(PlacementMode.TILE, description="'tile' covers the surface, 'single' places one object")

    @field_validator("mode", mode="before")
    @classmethod
    def parse_mode(cls, v):
        return PlacementMode.parse(v)


class ComposeResponse(BaseModel):
    """Result of a composition"""

    final_image: str = Field(..., description="Data URI of the composed scene at the original aspect ratio")
    debug_image: str = Field(..., description="Data URI of the padded, marked scene sent for surface description")
    prompt_used: str
    surface_description: str
    description_fallback_used: bool
    original_width: int
    original_height: int
    final_width: int
    final_height: int
    mode: PlacementMode
    processing_time: float
    stages: List[str] = []


class LocateRequest(BaseModel):
    """A click on an image displayed 'contain'-fitted inside a viewport"""

    point_x: float
    point_y: float
    viewport_width: float = Field(..., gt=0)
    viewport_height: float = Field(..., gt=0)
    natural_width: float = Field(..., gt=0)
    natural_height: float = Field(..., gt=0)


class LocateResponse(BaseModel):
    x_percent: float
    y_percent: float


class ErrorDetail(BaseModel):
    """Pipeline error as reported to clients"""

    code: str
    message: str
    category: str = Field(..., description="input: send new images; model: retrying may help; config: server setup")
    retryable: bool
    details: Optional[Dict[str, Any]] = None


class ErrorResponse(BaseModel):
    detail: ErrorDetail
