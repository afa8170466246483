"""
Note Routes - note creation, quick capture and search.

All three persist or read through the note store; store failures are
never masked (HTTP 500 with the failing stage).
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from core.config import Settings
from core.dependencies import get_pipeline_service_dependency, get_settings_dependency
from core.errors import InputError
from core.logger import logger
from core.messages import ErrorMessages
from internal.api.utils import (
    json_success_response,
    parse_body,
    parse_bool,
    read_audio_clip,
    read_json_body,
)
from models.schemas import (
    CreateNoteBody,
    CreateNoteRequest,
    CreateNoteResponse,
    QuickNoteBody,
    QuickNoteResponse,
    SearchRequest,
    SearchResponse,
    TextQuickNoteRequest,
    VoiceQuickNoteRequest,
)
from services.pipeline import NotePipelineService

router = APIRouter(tags=["Notes"])


@router.post(
    "/create-note",
    response_model=CreateNoteResponse,
    summary="Create a note",
    description="""
Body: `{"title": str, "content": str, "enhance"?: bool, "parent_note_id"?: str}`.
With `enhance=false` the content is stored exactly as sent.
""",
    responses={
        200: {"description": "Note created"},
        400: {"description": "Title and content are required"},
        500: {"description": "Note store failure"},
    },
)
async def create_note(
    request: Request,
    service: NotePipelineService = Depends(get_pipeline_service_dependency),
) -> JSONResponse:
    body = parse_body(
        CreateNoteBody, await read_json_body(request), ErrorMessages.NOTE_FIELDS_REQUIRED
    )
    result = await service.execute(
        CreateNoteRequest(
            title=body.title,
            content=body.content,
            enhance=body.enhance,
            parent_note_id=body.parent_note_id,
        )
    )
    logger.info(f"Created note: {body.title}")
    return json_success_response(result)


@router.post(
    "/quick-note",
    response_model=QuickNoteResponse,
    summary="Capture a note from voice or text",
    description="""
Two input forms:

* multipart: `audio` file, optional `enhance` and `parent_note_id` form fields
* JSON: `{"content": str, "enhance"?: bool, "parent_note_id"?: str}`

The title is generated from the transcript or typed text, before any
enhancement.
""",
    responses={
        200: {"description": "Note created"},
        400: {"description": "Missing input or no speech detected"},
        413: {"description": "File too large"},
        500: {"description": "Transcription or note store failure"},
    },
)
async def quick_note(
    request: Request,
    settings: Settings = Depends(get_settings_dependency),
    service: NotePipelineService = Depends(get_pipeline_service_dependency),
) -> JSONResponse:
    content_type = request.headers.get("content-type", "")

    if "multipart/form-data" in content_type:
        form = await request.form()
        clip = await read_audio_clip(form.get("audio"), settings.max_upload_size_mb)
        parent_note_id = form.get("parent_note_id")
        if not isinstance(parent_note_id, str) or not parent_note_id:
            parent_note_id = None
        pipeline_request = VoiceQuickNoteRequest(
            clip=clip,
            enhance=parse_bool(form.get("enhance", "false")),
            parent_note_id=parent_note_id,
        )
    else:
        body = parse_body(
            QuickNoteBody, await read_json_body(request), ErrorMessages.CONTENT_REQUIRED
        )
        pipeline_request = TextQuickNoteRequest(
            content=body.content,
            enhance=body.enhance,
            parent_note_id=body.parent_note_id,
        )

    result = await service.execute(pipeline_request)
    return json_success_response(result)


@router.get(
    "/search",
    response_model=SearchResponse,
    summary="Search notes",
    description="Forward `q` to the note store; results keep the store's order.",
    responses={
        200: {"description": "Matching notes (possibly none)"},
        400: {"description": "Query parameter required"},
        500: {"description": "Note store failure"},
    },
)
async def search_notes(
    q: str = "",
    service: NotePipelineService = Depends(get_pipeline_service_dependency),
) -> JSONResponse:
    if not q:
        raise InputError(ErrorMessages.NO_QUERY)

    result = await service.execute(SearchRequest(query=q))
    return json_success_response(result)
