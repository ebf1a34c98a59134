"""
FastAPI main application for Roomdrop
"""
import logging
import os
import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

# Add api directory to path for imports when started as `python main.py`
api_dir = os.path.dirname(os.path.abspath(__file__))
if api_dir not in sys.path:
    sys.path.insert(0, api_dir)

from core.config import settings  # noqa: E402
from core.logging import setup_logging  # noqa: E402
from middleware import RequestLoggingMiddleware  # noqa: E402
from routers import composition  # noqa: E402

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})...")

    google_key = settings.google_ai_api_key
    if google_key:
        key_preview = f"{google_key[:7]}...{google_key[-4:]}" if len(google_key) > 11 else "***"
        logger.info(f"✅ GOOGLE_AI_API_KEY is set: {key_preview}")
    else:
        logger.error("❌ GOOGLE_AI_API_KEY is NOT set - composition will not work!")

    logger.info(
        f"Models: description={settings.description_model}, composition={settings.composition_model}, "
        f"target={settings.target_dimension}px"
    )

    yield

    logger.info(f"Shutting down {settings.app_name}...")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    description="Place products onto surfaces in room photos",
    version=settings.version,
    lifespan=lifespan,
    docs_url="/docs" if settings.environment == "development" else None,
    redoc_url="/redoc" if settings.environment == "development" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.version,
        "model_configured": bool(settings.google_ai_api_key),
    }


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "description": "Place products onto surfaces in room photos",
        "docs": "/docs" if settings.environment == "development" else None,
        "endpoints": {
            "compose": "/api/composition/compose",
            "compose_upload": "/api/composition/compose-upload",
            "locate": "/api/composition/locate",
            "health": "/api/composition/health",
        },
    }


app.include_router(composition.router, prefix="/api", tags=["composition"])

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.environment == "development",
        log_config=None,  # Use our custom logging
        access_log=False,  # We handle this in middleware
    )
