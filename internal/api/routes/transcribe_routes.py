"""
Transcription Routes - speech-to-text without persistence.

Responses:
    200 {"text": str}
    400 {"error": "No audio file provided"}
    413 {"error": "Audio file too large: ..."}
    500 {"error": str, "error_code": str, "stage": "transcribed"}
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import JSONResponse

from core.config import Settings
from core.dependencies import get_pipeline_service_dependency, get_settings_dependency
from core.logger import logger
from internal.api.utils import json_success_response, read_audio_clip
from models.schemas import TranscribeOnlyRequest, TranscribeResponse
from services.pipeline import NotePipelineService

router = APIRouter()


@router.post(
    "/voice-to-text",
    response_model=TranscribeResponse,
    tags=["Transcription"],
    summary="Transcribe an uploaded audio clip",
    description="""
Transcribe a multipart `audio` upload with the loaded speech model.
Nothing is stored.

**Response Format:**
```json
{"text": "remember to buy milk"}
```
""",
    responses={
        200: {"description": "Transcription successful"},
        400: {"description": "No audio file provided"},
        413: {"description": "File too large"},
        500: {"description": "Model unavailable, decode failure or engine failure"},
    },
)
async def voice_to_text(
    audio: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings_dependency),
    service: NotePipelineService = Depends(get_pipeline_service_dependency),
) -> JSONResponse:
    clip = await read_audio_clip(audio, settings.max_upload_size_mb)
    logger.info(f"Transcription request: {clip.filename} ({clip.size_mb:.2f}MB, {clip.encoding})")

    result = await service.execute(TranscribeOnlyRequest(clip=clip))
    return json_success_response(result)
