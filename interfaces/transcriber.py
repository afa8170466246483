"""
Transcriber Interface - Abstract interface for speech-to-text transcription.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from models.domain import AudioClip, TranscriptionResult


class ITranscriber(ABC):
    """
    Abstract interface for audio transcription.

    Implementations:
    - infrastructure.whisper.transcriber.WhisperTranscriber
    """

    @abstractmethod
    async def transcribe(self, clip: AudioClip) -> TranscriptionResult:
        """
        Transcribe an uploaded audio clip to text.

        Args:
            clip: Raw audio buffer and its declared encoding

        Returns:
            TranscriptionResult for the clip

        Raises:
            ModelUnavailableError: If the model failed to load at startup
            AudioDecodeError: If the clip cannot be decoded
            EngineFailureError: For any other model failure
        """
        pass

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """True when a speech model is loaded."""
        pass

    @abstractmethod
    def describe(self) -> Dict[str, Any]:
        """Model status for health checks."""
        pass
