"""
Exception taxonomy for the composition pipeline.

Every fatal error carries a category so callers can tell a bad input image
(ask the user for new inputs) from a model failure (retrying the same inputs
may help).
"""
from typing import Any, Dict, Optional

INPUT = "input"
MODEL = "model"
CONFIG = "config"


class RoomdropError(Exception):
    """Base exception class for Roomdrop errors"""

    category = INPUT

    def __init__(self, message: str, code: str = "UNKNOWN_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}

    @property
    def retryable(self) -> bool:
        return self.category == MODEL

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to standard error format"""
        return {
            "code": self.code,
            "message": str(self),
            "category": self.category,
            "retryable": self.retryable,
            "details": self.details,
        }


class InvalidImageDimensions(RoomdropError):
    """Raised when an image (or target square) has a zero or negative dimension"""

    def __init__(self, width: float, height: float, details: Optional[Dict[str, Any]] = None):
        message = f"Invalid image dimensions {width}x{height}: both sides must be positive"
        super().__init__(message, code="INVALID_IMAGE_DIMENSIONS", details={"width": width, "height": height, **(details or {})})


class InvalidPosition(RoomdropError):
    """Raised when a drop position falls outside the content rectangle"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_POSITION", details=details)


class UnreadableImage(RoomdropError):
    """Raised when image bytes cannot be decoded"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="UNREADABLE_IMAGE", details=details)


class MalformedModelOutput(RoomdropError):
    """Raised when the model returns an image smaller than the requested square"""

    category = MODEL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="MALFORMED_MODEL_OUTPUT", details=details)


class NoImageReturned(RoomdropError):
    """Raised when the composition response carries no image part"""

    category = MODEL

    def __init__(self, message: str = "The AI model did not return an image. Please try again.", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="NO_IMAGE_RETURNED", details=details)


class ModelCallFailed(RoomdropError):
    """Raised when the composition call itself errors or times out"""

    category = MODEL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="MODEL_CALL_FAILED", details=details)


class ModelNotConfigured(RoomdropError):
    """Raised when no API key is configured for the model client"""

    category = CONFIG

    def __init__(self, message: str = "Google AI API key not configured", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="MODEL_NOT_CONFIGURED", details=details)


class DescriptionUnavailable(RoomdropError):
    """Surface description failed or came back empty. Recoverable: never surfaced to callers."""

    category = MODEL

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="DESCRIPTION_UNAVAILABLE", details=details)
