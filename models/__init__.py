"""
Models Layer - Domain models and Pydantic schemas.

This layer contains:
- Domain models exchanged with the backend collaborators
- Pipeline request/response DTOs
"""

from .domain import (
    AudioClip,
    ChatResult,
    EnhancementResult,
    EnhancementTask,
    Note,
    TranscriptionResult,
)
from .schemas import (
    PipelineRequest,
    PipelineResponse,
    HealthResponse,
)

__all__ = [
    # Domain
    "AudioClip",
    "ChatResult",
    "EnhancementResult",
    "EnhancementTask",
    "Note",
    "TranscriptionResult",
    # Pipeline DTOs
    "PipelineRequest",
    "PipelineResponse",
    "HealthResponse",
]
