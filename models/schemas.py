"""
Pydantic Schemas - Pipeline request/response DTOs.

Requests form a discriminated union on ``kind``; each variant carries only
the fields its pipeline needs. Responses mirror the request variant and
keep the intermediate state (transcript, title, enhanced text) so callers
can audit what happened.
"""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.domain import AudioClip, EnhancementTask


# =============================================================================
# Pipeline Requests
# =============================================================================


class TranscribeOnlyRequest(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: Literal["transcribe_only"] = "transcribe_only"
    clip: AudioClip


class EnhanceOnlyRequest(BaseModel):
    kind: Literal["enhance_only"] = "enhance_only"
    text: str
    task: EnhancementTask = EnhancementTask.IMPROVE
    note_id: str = ""


class CreateNoteRequest(BaseModel):
    kind: Literal["create_note"] = "create_note"
    title: str
    content: str
    enhance: bool = False
    parent_note_id: Optional[str] = None


class TextQuickNoteRequest(BaseModel):
    kind: Literal["text_quick_note"] = "text_quick_note"
    content: str
    enhance: bool = False
    parent_note_id: Optional[str] = None


class VoiceQuickNoteRequest(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: Literal["voice_quick_note"] = "voice_quick_note"
    clip: AudioClip
    enhance: bool = False
    parent_note_id: Optional[str] = None


class SearchRequest(BaseModel):
    kind: Literal["search"] = "search"
    query: str


class ChatRequest(BaseModel):
    kind: Literal["chat"] = "chat"
    prompt: str
    context: str = ""


PipelineRequest = Union[
    TranscribeOnlyRequest,
    EnhanceOnlyRequest,
    CreateNoteRequest,
    TextQuickNoteRequest,
    VoiceQuickNoteRequest,
    SearchRequest,
    ChatRequest,
]


# =============================================================================
# HTTP Bodies
# =============================================================================
# Numbers sent where text is expected are taken as their string form


class EnhanceTextBody(BaseModel):
    """Body of /enhance-text and /trilium-ai."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    text: str
    task: Optional[str] = None
    note_id: Optional[str] = None


class CreateNoteBody(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: str
    content: str
    enhance: bool = False
    parent_note_id: Optional[str] = None


class QuickNoteBody(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    content: str
    enhance: bool = False
    parent_note_id: Optional[str] = None


class ChatBody(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    prompt: str
    context: Optional[str] = None


# =============================================================================
# Pipeline Responses
# =============================================================================


class TranscribeResponse(BaseModel):
    text: str


class EnhanceResponse(BaseModel):
    enhanced_text: str
    original_text: str
    task: str
    note_id: str = ""
    enhanced: bool = Field(default=False, description="False when the LLM was bypassed")


class CreateNoteResponse(BaseModel):
    success: bool = True
    note: Dict[str, Any]
    content: str
    enhanced: bool = False


class QuickNoteResponse(BaseModel):
    success: bool = True
    title: str
    transcribed_text: Optional[str] = None
    original_content: Optional[str] = None
    content: str
    enhanced: bool = False
    note: Dict[str, Any]


class SearchResponse(BaseModel):
    results: List[Dict[str, Any]]


class ChatResponse(BaseModel):
    response: str
    prompt: str
    context: str
    model: str


PipelineResponse = Union[
    TranscribeResponse,
    EnhanceResponse,
    CreateNoteResponse,
    QuickNoteResponse,
    SearchResponse,
    ChatResponse,
]


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: str
    service: str
    version: str
    speech_model: Dict[str, Any]

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "status": "healthy",
                    "timestamp": "2026-01-01T12:00:00",
                    "service": "Luna Knowledge Gateway",
                    "version": "1.0.0",
                    "speech_model": {"loaded": True, "size": "tiny"},
                }
            ]
        }
    )
