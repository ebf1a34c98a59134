"""
Prompt builders for the two model calls. Pure functions, no I/O.
"""
from enum import Enum
from typing import Optional, Union

FALLBACK_SURFACE_DESCRIPTION = "at the specified location on the most prominent surface"

_QUOTE_CHARS = "\"'`“”‘’"


class PlacementMode(str, Enum):
    """How the product is applied to the target surface"""

    TILE = "tile"
    SINGLE = "single"

    @classmethod
    def parse(cls, value: Optional[Union[str, "PlacementMode"]]) -> "PlacementMode":
        """Accept None (default TILE), a member, or a case-insensitive name/value."""
        if value is None:
            return cls.TILE
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        for mode in cls:
            if normalized in (mode.value, mode.name.lower()):
                return mode
        raise ValueError(f"Unknown placement mode '{value}'. Expected one of: {', '.join(m.value for m in cls)}")


def build_surface_description_request() -> str:
    """Instruction for the description call. Identical on every call."""
    return """You are analyzing a photograph of a room for an interior visualization tool.

A red circle with a white outline has been drawn on the image. It marks the spot the user tapped.

Describe the surface directly under the red marker in ONE concise sentence. Name:
- the type of surface (floor, wall, countertop, backsplash, ...)
- its current material or finish
- how far it extends in the scene

Examples:
- "the light oak hardwood floor covering the whole living room"
- "the white painted wall behind the sofa, from floor to ceiling"
- "the grey granite kitchen countertop running along the back wall"

Do not mention the marker itself. Return only the sentence, with no preamble."""


def build_composition_prompt(
    product_description: str,
    surface_description: str,
    mode: PlacementMode = PlacementMode.TILE,
) -> str:
    """
    Assemble the composition instruction.

    The surface description is embedded verbatim, so the caller decides whether
    it is the model's description or FALLBACK_SURFACE_DESCRIPTION.
    """
    mode = PlacementMode.parse(mode)

    if mode == PlacementMode.SINGLE:
        placement = (
            f"Place a single {product_description} as one discrete object, centered on the target location. "
            "It must sit naturally on the surface with a realistic scale relative to the room and its furniture."
        )
    else:
        placement = (
            f"Apply the {product_description} as a repeating texture across the ENTIRE continuous surface, "
            "not only around the target location. Tiles or planks must follow the surface's perspective "
            "and vanishing lines, with consistent scale and seams."
        )

    return f"""You are a photorealistic interior visualization engine.

PRODUCT (first image):
The first image shows the product: {product_description}. Ignore the black padding around it; it is not part of the product.

SCENE (second image):
The second image is a photograph of a room. Ignore the black padding around it; it is not part of the room.

PLACEMENT:
Target surface: {surface_description}
{placement}

OUTPUT REQUIREMENTS:
1. Match the scene's lighting, shadows, reflections and camera perspective so the result looks like an unedited photograph.
2. You MUST preserve every existing object that rests on or stands in front of the target surface (furniture, rugs, people, decor). Do not remove, move or restyle them.
3. Keep everything outside the target surface unchanged, including the framing of the scene.
4. Return only the edited scene image."""


def normalize_surface_description(text: Optional[str]) -> str:
    """Strip whitespace and wrapping quotes. Blank input yields an empty string."""
    if not text:
        return ""
    cleaned = text.strip()
    while len(cleaned) >= 2 and cleaned[0] in _QUOTE_CHARS and cleaned[-1] in _QUOTE_CHARS:
        cleaned = cleaned[1:-1].strip()
    return cleaned
