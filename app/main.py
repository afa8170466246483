"""
FastAPI Service - Main entry point for the Luna knowledge gateway.
Voice and text capture into a note store, with optional LLM enhancement.
"""

import warnings
from contextlib import asynccontextmanager

# Suppress expected warnings at startup
warnings.filterwarnings("ignore", message=".*protected namespace.*", category=UserWarning)
warnings.filterwarnings("ignore", message=".*PySoundFile failed.*", category=UserWarning)
warnings.filterwarnings("ignore", message=".*audioread.*", category=FutureWarning)

from fastapi import FastAPI, Request, status as http_status  # type: ignore
from fastapi.exceptions import RequestValidationError  # type: ignore
from fastapi.middleware.cors import CORSMiddleware  # type: ignore
from fastapi.responses import JSONResponse  # type: ignore
from starlette.exceptions import HTTPException as StarletteHTTPException  # type: ignore

from core.config import get_settings
from core.dependencies import validate_dependencies
from core.errors import GatewayError, InputError
from core.logger import logger
from internal.api.routes.enhance_routes import router as enhance_router
from internal.api.routes.health_routes import create_health_routes
from internal.api.routes.note_routes import router as note_router
from internal.api.routes.transcribe_routes import router as transcribe_router
from internal.api.utils import error_response, gateway_error_response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifespan - startup and shutdown.

    The speech model is loaded eagerly here, once per process. A failed
    load does not stop the service: transcription endpoints answer
    "model not available" and everything else keeps working.
    """
    from core.container import bootstrap_container, shutdown_container
    from infrastructure.whisper import load_speech_model

    settings = get_settings()
    logger.info(
        f"========== Starting {settings.app_name} v{settings.app_version} =========="
    )
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"API: {settings.api_host}:{settings.api_port}")
    logger.info(f"Note store: {settings.trilium_url}")
    logger.info(f"LLM backend: {settings.ollama_url} (model={settings.ollama_model})")

    try:
        settings.validate_timeouts()
    except ValueError as e:
        logger.warning(f"Timeout configuration warning: {e}")

    try:
        validate_dependencies(settings)
    except OSError as e:
        logger.warning(f"Dependency validation warning: {e}")

    speech_model = load_speech_model(settings)
    app.state.speech_model = speech_model

    bootstrap_container(settings, speech_model)
    logger.info("DI Container initialized")

    logger.info(f"========== {settings.app_name} started successfully ==========")

    try:
        yield
    finally:
        logger.info("========== Shutting down gateway ==========")
        await shutdown_container()
        logger.info("========== Gateway stopped successfully ==========")


def create_app() -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    try:
        settings = get_settings()

        description = """
## Luna Knowledge Gateway

Capture voice and text into a Trilium note store, with optional rewriting
by a local Ollama model.

### Endpoints

* **/voice-to-text** - transcribe an uploaded clip
* **/enhance-text**, **/trilium-ai** - rewrite text (improve, summarize, rephrase, expand)
* **/create-note** - store a note, optionally enhanced
* **/quick-note** - voice or text capture with a generated title
* **/search** - search stored notes
* **/ollama-chat** - free-form question to the LLM

### Failure policy

Enhancement is best-effort: when the LLM fails the original text is used.
Transcription and note-store failures are always reported, with the
failing pipeline stage.
        """

        tags_metadata = [
            {"name": "Transcription", "description": "Speech-to-text without persistence."},
            {"name": "Enhancement", "description": "LLM text rewriting and chat."},
            {"name": "Notes", "description": "Note creation, quick capture and search."},
            {"name": "Health", "description": "Health check endpoints for monitoring API status."},
        ]

        app = FastAPI(
            title=settings.app_name,
            version=settings.app_version,
            description=description,
            lifespan=lifespan,
            openapi_tags=tags_metadata,
            docs_url="/docs",
            redoc_url="/redoc",
            openapi_url="/openapi.json",
        )

        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origin_list,
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

        app.include_router(transcribe_router)  # /voice-to-text
        app.include_router(enhance_router)  # /enhance-text, /trilium-ai, /ollama-chat
        app.include_router(note_router)  # /create-note, /quick-note, /search
        app.include_router(create_health_routes(app))  # / and /health

        @app.exception_handler(GatewayError)
        async def gateway_exception_handler(request: Request, exc: GatewayError):
            """Render pipeline and input errors in the flat error format."""
            if isinstance(exc, InputError):
                logger.warning(f"Rejected {request.url.path}: {exc.message}")
            else:
                logger.error(
                    f"{request.url.path} failed: {exc.error_code} at stage '{exc.stage}': "
                    f"{exc.detail or exc.message}"
                )
            return gateway_error_response(exc)

        @app.exception_handler(RequestValidationError)
        async def validation_exception_handler(request: Request, exc: RequestValidationError):
            """Handle validation errors - return 400 with a flat error message."""
            messages = []
            for e in exc.errors():
                field = e["loc"][-1] if e["loc"] else "unknown"
                messages.append(f"{field}: {e['msg']}")
            error_msg = "; ".join(messages) or "Invalid request"
            logger.warning(f"Validation error: {error_msg}")

            return JSONResponse(
                status_code=http_status.HTTP_400_BAD_REQUEST,
                content=error_response(error_msg),
            )

        @app.exception_handler(StarletteHTTPException)
        async def http_exception_handler(request: Request, exc: StarletteHTTPException):
            logger.warning(f"HTTP error {exc.status_code}: {exc.detail}")
            return JSONResponse(
                status_code=exc.status_code,
                content=error_response(str(exc.detail)),
            )

        @app.exception_handler(Exception)
        async def general_exception_handler(request: Request, exc: Exception):
            logger.error(f"Unhandled exception: {str(exc)}")
            logger.exception("Exception details:")
            return JSONResponse(
                status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=error_response("Internal server error"),
            )

        return app

    except Exception as e:
        logger.error(f"Failed to create FastAPI application: {e}")
        logger.exception("Application creation error details:")
        raise


# Create application instance
app = create_app()


# Run with: uvicorn app.main:app --host 0.0.0.0 --port 5000
if __name__ == "__main__":
    import os
    import sys

    import uvicorn  # type: ignore

    settings = get_settings()

    logger.info("========== Starting Uvicorn Server ==========")
    logger.info(f"Host: {settings.api_host}")
    logger.info(f"Port: {settings.api_port}")
    logger.info(f"Reload: {settings.api_reload}")

    # uvicorn's reload subprocess re-imports by module path
    project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if project_root not in sys.path:
        sys.path.insert(0, project_root)
    current_pythonpath = os.environ.get("PYTHONPATH", "")
    if project_root not in current_pythonpath:
        os.environ["PYTHONPATH"] = (
            f"{project_root}:{current_pythonpath}" if current_pythonpath else project_root
        )

    if settings.api_reload:
        uvicorn.run(
            "app.main:app",
            host=settings.api_host,
            port=settings.api_port,
            reload=True,
            log_level="info" if settings.debug else "warning",
        )
    else:
        uvicorn.run(
            app,
            host=settings.api_host,
            port=settings.api_port,
            workers=1,
            log_level="info" if settings.debug else "warning",
        )
