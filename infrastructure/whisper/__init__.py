"""
Whisper Infrastructure - faster-whisper integration.

This module provides:
- SpeechModelHandle / load_speech_model: process-wide model ownership
- WhisperTranscriber: transcription adapter (implements ITranscriber)
"""

from .model_loader import SpeechModelHandle, load_speech_model
from .transcriber import WhisperTranscriber

__all__ = [
    "SpeechModelHandle",
    "load_speech_model",
    "WhisperTranscriber",
]
