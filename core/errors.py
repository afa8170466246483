"""
Gateway error taxonomy.

Every error carries a stable ``error_code`` and the pipeline ``stage`` that
failed, so API consumers can tell which leg broke without parsing messages.
Best-effort legs (enhancement, title generation) never raise these; they
degrade to pass-through instead.
"""

from typing import Optional


class GatewayError(Exception):
    """Base class for all errors surfaced by the gateway."""

    error_code = "GATEWAY_ERROR"
    status_code = 500
    default_stage: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        stage: Optional[str] = None,
        status_code: Optional[int] = None,
        detail: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.stage = stage or self.default_stage
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code

    def with_context(self, message: str, stage: Optional[str] = None) -> "GatewayError":
        """
        Re-label the error with an endpoint-facing message, keeping its code.

        The original message is preserved as ``detail`` for logs.
        """
        self.detail = self.detail or self.message
        self.message = message
        self.args = (message,)
        if stage:
            self.stage = stage
        return self


class InputError(GatewayError):
    """Missing or malformed request fields. Never retried."""

    error_code = "INVALID_INPUT"
    status_code = 400
    default_stage = "received"


# =============================================================================
# Speech-to-text
# =============================================================================


class TranscriptionError(GatewayError):
    """Base class for speech-to-text failures. Always surfaced."""

    error_code = "TRANSCRIPTION_FAILED"
    default_stage = "transcribed"


class ModelUnavailableError(TranscriptionError):
    """The speech model failed to load at startup. Permanent for the process."""

    error_code = "MODEL_UNAVAILABLE"


class AudioDecodeError(TranscriptionError):
    """The clip could not be decoded into samples."""

    error_code = "AUDIO_DECODE_FAILED"


class EngineFailureError(TranscriptionError):
    """Any other runtime failure from the speech model, including timeouts."""

    error_code = "TRANSCRIPTION_FAILED"


class ModelInitError(Exception):
    """Raised by the model loader; recorded on the handle, not propagated."""


# =============================================================================
# Backends
# =============================================================================


class NoteStoreError(GatewayError):
    """Note store returned something the gateway cannot use."""

    error_code = "NOTE_STORE_ERROR"
    default_stage = "persisted"


class NoteStoreUnreachableError(NoteStoreError):
    """Connection failure or timeout talking to the note store."""

    error_code = "NOTE_STORE_UNREACHABLE"


class NoteStoreRejectedError(NoteStoreError):
    """Note store answered with a non-success status."""

    error_code = "NOTE_STORE_REJECTED"

    def __init__(self, message: str, *, http_status: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.http_status = http_status


class LLMBackendError(GatewayError):
    """LLM backend unreachable, timed out, or answered badly (chat only)."""

    error_code = "LLM_UNAVAILABLE"
    default_stage = "generated"


class PipelineTimeoutError(GatewayError):
    """The pipeline exceeded its overall deadline."""

    error_code = "PIPELINE_TIMEOUT"


__all__ = [
    "GatewayError",
    "InputError",
    "TranscriptionError",
    "ModelUnavailableError",
    "AudioDecodeError",
    "EngineFailureError",
    "ModelInitError",
    "NoteStoreError",
    "NoteStoreUnreachableError",
    "NoteStoreRejectedError",
    "LLMBackendError",
    "PipelineTimeoutError",
]
