"""
System dependencies validation and FastAPI dependency injection.

This module provides:
- System dependency validation (ffmpeg for compressed audio decoding)
- FastAPI dependency injection functions for routes
"""

import shutil
from pathlib import Path
from typing import Optional, Tuple

from core.config import Settings, get_settings
from core.logger import logger


def check_ffmpeg() -> Tuple[bool, Optional[str]]:
    """
    Check if ffmpeg or ffprobe is installed and accessible.

    Returns:
        Tuple of (is_available, path)
    """
    ffmpeg_path = shutil.which("ffmpeg")
    if ffmpeg_path:
        return True, ffmpeg_path

    ffprobe_path = shutil.which("ffprobe")
    if ffprobe_path:
        return True, ffprobe_path

    return False, None


def validate_dependencies(settings: Optional[Settings] = None) -> None:
    """
    Check the system pieces transcription relies on.

    Nothing here is fatal: WAV and FLAC decode without ffmpeg, so a missing
    binary only narrows the accepted formats and is logged as a warning.

    Raises:
        OSError: If the temp directory cannot be created
    """
    settings = settings or get_settings()
    logger.info("Validating system dependencies...")

    ffmpeg_available, ffmpeg_path = check_ffmpeg()
    if ffmpeg_available:
        logger.info(f"ffmpeg found: {ffmpeg_path}")
    else:
        logger.warning(
            "ffmpeg/ffprobe not found in PATH. Compressed uploads (mp3, m4a, webm) "
            "may fail to decode. Install with: brew install ffmpeg (macOS) "
            "or apt-get install ffmpeg (Linux)"
        )

    temp_dir = Path(settings.temp_dir)
    temp_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Temp directory ready: {temp_dir}")

    logger.info("System dependencies check passed")


# =============================================================================
# FastAPI Dependency Injection
# =============================================================================


def get_pipeline_service_dependency():
    """
    FastAPI dependency for NotePipelineService.

    Usage in routes:
        @router.post("/create-note")
        async def create_note(
            service: NotePipelineService = Depends(get_pipeline_service_dependency)
        ):
            ...
    """
    from core.container import get_pipeline_service

    return get_pipeline_service()


def get_settings_dependency() -> Settings:
    """FastAPI dependency for the frozen settings value."""
    return get_settings()
