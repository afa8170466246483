"""
Enhancement Routes - LLM rewrite and chat endpoints.

/enhance-text and /trilium-ai never fail because of the LLM: when it is
unreachable or answers badly the original text comes back unchanged.
/ollama-chat has no fallback and surfaces backend failures.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from core.dependencies import get_pipeline_service_dependency
from core.logger import logger
from core.messages import ErrorMessages
from internal.api.utils import json_success_response, parse_body, read_json_body
from models.domain import EnhancementTask
from models.schemas import (
    ChatBody,
    ChatRequest,
    ChatResponse,
    EnhanceOnlyRequest,
    EnhanceTextBody,
)
from services.pipeline import NotePipelineService

router = APIRouter(tags=["Enhancement"])


async def _enhance(request: Request, service: NotePipelineService):
    body = parse_body(EnhanceTextBody, await read_json_body(request), ErrorMessages.NO_TEXT)
    task = EnhancementTask.parse(body.task)
    if body.task is not None and body.task != task.value:
        logger.info(f"Enhancement task '{body.task}' applied as '{task.value}'")
    result = await service.execute(
        EnhanceOnlyRequest(text=body.text, task=task, note_id=body.note_id or "")
    )
    return body, result


@router.post(
    "/enhance-text",
    summary="Rewrite text with the LLM",
    description="""
Body: `{"text": str, "task"?: "improve" | "summarize" | "rephrase" | "expand"}`.
Unknown tasks behave as `improve`.

**Response Format:**
```json
{"enhanced_text": "Buy milk."}
```
""",
    responses={
        200: {"description": "Enhanced text, or the input unchanged if the LLM failed"},
        400: {"description": "No text provided"},
    },
)
async def enhance_text(
    request: Request,
    service: NotePipelineService = Depends(get_pipeline_service_dependency),
) -> JSONResponse:
    _, result = await _enhance(request, service)
    return JSONResponse(status_code=200, content={"enhanced_text": result.enhanced_text})


@router.post(
    "/trilium-ai",
    summary="Rewrite text for a note-store integration",
    description="""
Same as `/enhance-text`, echoing the original text, the caller's `note_id`
and the `task` exactly as sent (`"improve"` when omitted). An unknown task
is still echoed as sent; the rewrite itself uses `improve`.
""",
    responses={
        200: {"description": "Enhanced text with request echo"},
        400: {"description": "No text provided"},
    },
)
async def trilium_ai(
    request: Request,
    service: NotePipelineService = Depends(get_pipeline_service_dependency),
) -> JSONResponse:
    body, result = await _enhance(request, service)
    content = result.model_dump(include={"enhanced_text", "original_text", "note_id"})
    content["task"] = body.task if body.task is not None else EnhancementTask.IMPROVE.value
    return JSONResponse(status_code=200, content=content)


@router.post(
    "/ollama-chat",
    response_model=ChatResponse,
    summary="Free-form question to the LLM",
    description="""
Body: `{"prompt": str, "context"?: str}`.

**Response Format:**
```json
{"response": "...", "prompt": "...", "context": "...", "model": "llama3.2:1b"}
```
""",
    responses={
        200: {"description": "LLM reply"},
        400: {"description": "No prompt provided"},
        500: {"description": "LLM backend failure"},
    },
)
async def ollama_chat(
    request: Request,
    service: NotePipelineService = Depends(get_pipeline_service_dependency),
) -> JSONResponse:
    body = parse_body(ChatBody, await read_json_body(request), ErrorMessages.NO_PROMPT)
    result = await service.execute(ChatRequest(prompt=body.prompt, context=body.context or ""))
    return json_success_response(result)
