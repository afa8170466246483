"""
Speech model loading.

The model is a process-wide resource: loaded once at startup, shared
read-only by every request, released at shutdown. A failed load is not
fatal for the gateway; it is recorded on the handle and every
transcription then fails with ModelUnavailableError.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from faster_whisper import WhisperModel  # type: ignore

from core.config import Settings
from core.errors import ModelInitError
from core.logger import logger
from core.messages import LogMessages


@dataclass
class SpeechModelHandle:
    """Owned reference to the loaded speech model (or the reason it is missing)."""

    model_size: str
    device: str = "cpu"
    compute_type: str = "int8"
    model: Optional[Any] = field(default=None, repr=False)
    error: Optional[str] = None
    loaded_at: Optional[float] = None
    load_duration: float = 0.0

    @property
    def is_loaded(self) -> bool:
        return self.model is not None

    def describe(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "loaded": self.is_loaded,
            "size": self.model_size,
            "device": self.device,
            "compute_type": self.compute_type,
        }
        if self.is_loaded and self.loaded_at:
            info["uptime_seconds"] = round(time.time() - self.loaded_at, 2)
            info["load_duration_seconds"] = round(self.load_duration, 2)
        if self.error:
            info["error"] = self.error
        return info

    def release(self) -> None:
        if self.model is not None:
            self.model = None
            logger.info(LogMessages.MODEL_RELEASED.format(model=self.model_size))


def _create_model(settings: Settings) -> Any:
    kwargs: Dict[str, Any] = {
        "device": settings.whisper_device,
        "compute_type": settings.whisper_compute_type,
    }
    if settings.whisper_cpu_threads > 0:
        kwargs["cpu_threads"] = settings.whisper_cpu_threads

    try:
        return WhisperModel(settings.whisper_model_size, **kwargs)
    except Exception as e:
        raise ModelInitError(f"Failed to load '{settings.whisper_model_size}': {e}") from e


def load_speech_model(settings: Settings) -> SpeechModelHandle:
    """
    Load the configured speech model.

    Never raises: a failure is kept on the handle so the rest of the
    gateway (enhancement, notes, search) keeps working.
    """
    handle = SpeechModelHandle(
        model_size=settings.whisper_model_size,
        device=settings.whisper_device,
        compute_type=settings.whisper_compute_type,
    )
    logger.info(
        LogMessages.MODEL_LOADING.format(
            model=handle.model_size, device=handle.device, compute=handle.compute_type
        )
    )

    start = time.time()
    try:
        handle.model = _create_model(settings)
    except ModelInitError as e:
        handle.error = str(e)
        logger.error(LogMessages.MODEL_LOAD_FAILED.format(error=e))
        return handle

    handle.loaded_at = time.time()
    handle.load_duration = handle.loaded_at - start
    logger.info(
        LogMessages.MODEL_LOADED.format(model=handle.model_size, duration=handle.load_duration)
    )
    return handle
