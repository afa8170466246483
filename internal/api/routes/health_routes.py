"""
Health Check API Routes.
"""

from datetime import datetime

from fastapi import APIRouter

from core.config import get_settings
from core.container import get_speech_model
from models.schemas import HealthResponse


def create_health_routes(app) -> APIRouter:
    """
    Factory function to create health routes.

    Args:
        app: FastAPI application instance

    Returns:
        APIRouter: Configured router with health endpoints
    """
    router = APIRouter(tags=["Health"])

    @router.get(
        "/",
        summary="Root Endpoint",
        description="Get basic API information",
        operation_id="get_root",
    )
    async def root():
        settings = get_settings()
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "status": "running",
        }

    @router.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Liveness plus speech model status",
        operation_id="health_check",
    )
    async def health_check():
        """
        Health check endpoint.

        The gateway stays up without a speech model (notes, search and
        enhancement still work), so a missing model reports "degraded"
        rather than failing the check.
        """
        settings = get_settings()

        handle = get_speech_model() or getattr(app.state, "speech_model", None)
        if handle is not None:
            speech_model = handle.describe()
        else:
            speech_model = {"loaded": False, "size": settings.whisper_model_size}

        return HealthResponse(
            status="healthy" if speech_model.get("loaded") else "degraded",
            timestamp=datetime.now().isoformat(),
            service=settings.app_name,
            version=settings.app_version,
            speech_model=speech_model,
        )

    return router
