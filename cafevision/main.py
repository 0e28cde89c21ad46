"""
FastAPI main application for CafeVision
"""
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from cafevision.core.config import settings
from cafevision.core.logging import setup_logging
from cafevision.middleware import RequestLoggingMiddleware
from cafevision.routers import sessions
from cafevision.services.generation_client import generation_client
from cafevision.services.session_store import session_store

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")

    if generation_client.configured:
        logger.info(f"✅ Google AI configured: analysis={settings.analysis_model}, images={settings.image_model}")
    else:
        logger.error("❌ GOOGLE_AI_API_KEY is NOT set - analysis and visualization will fail!")

    yield

    logger.info(f"Shutting down {settings.app_name} ({len(session_store)} sessions discarded)")


app = FastAPI(
    title=settings.app_name,
    description="Cafe interior design concepts and visualizations from a photo of a raw space",
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
# Visualizations travel as base64 data URLs inside session snapshots
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(RequestLoggingMiddleware)


@app.get("/health")
async def health_check():
    """Health check endpoint for load balancers"""
    return {
        "status": "healthy",
        "timestamp": time.time(),
        "version": settings.version,
        "google_ai_configured": generation_client.configured,
        "active_sessions": len(session_store),
        "usage": {k: v for k, v in generation_client.usage_stats.items() if k != "last_reset"},
    }


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "docs": "/docs" if settings.environment == "development" else None,
        "endpoints": {
            "sessions": "/api/sessions",
        },
    }


app.include_router(sessions.router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("cafevision.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
