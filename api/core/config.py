"""
Configuration settings for the FastAPI application
"""
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Roomdrop API"
    version: str = "1.0.0"
    environment: str = "development"
    debug: bool = True

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:8000",
        "http://127.0.0.1:8000",
    ]

    # Google AI Studio
    google_ai_api_key: str = ""
    description_model: str = "gemini-2.5-flash"
    composition_model: str = "gemini-2.5-flash-image-preview"
    model_temperature: float = 0.4
    model_timeout_seconds: float = 120.0

    # Square processing format handed to the model
    target_dimension: int = 1024
    jpeg_quality: int = 95
    # Resample model output that is larger than the requested square before cropping
    rescale_oversized_output: bool = True

    # File upload
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    allowed_image_types: List[str] = ["image/jpeg", "image/png", "image/webp"]

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env


# Global settings instance
settings = Settings()
