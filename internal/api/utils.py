"""
API utility functions for response formatting and request parsing.

Error responses are flat:

    input errors:     {"error": str}
    pipeline errors:  {"error": str, "error_code": str, "stage": str}

Success responses are the pipeline response model, dumped as-is.
"""

import json
from typing import Any, Dict, Optional, Type, TypeVar

from fastapi import Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from starlette.datastructures import UploadFile

from core.errors import GatewayError, InputError
from core.messages import ErrorMessages
from models.domain import AudioClip

ModelT = TypeVar("ModelT", bound=BaseModel)


def error_response(
    message: str,
    error_code: Optional[str] = None,
    stage: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Create an error response dictionary.

    Example:
        >>> error_response("No text provided")
        {"error": "No text provided"}
    """
    response: Dict[str, Any] = {"error": message}
    if error_code is not None:
        response["error_code"] = error_code
    if stage is not None:
        response["stage"] = stage
    return response


def json_error_response(
    message: str,
    status_code: int = 500,
    error_code: Optional[str] = None,
    stage: Optional[str] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_response(message, error_code=error_code, stage=stage),
    )


def gateway_error_response(exc: GatewayError) -> JSONResponse:
    """Render a GatewayError; input errors carry the message only."""
    if isinstance(exc, InputError):
        return json_error_response(exc.message, status_code=exc.status_code)
    return json_error_response(
        exc.message,
        status_code=exc.status_code,
        error_code=exc.error_code,
        stage=exc.stage,
    )


def json_success_response(model: BaseModel, status_code: int = 200) -> JSONResponse:
    """
    Dump a response model. Top-level fields left as None are omitted; nested
    note payloads are passed through untouched.
    """
    content = {
        key: value
        for key, value in model.model_dump(mode="json").items()
        if value is not None
    }
    return JSONResponse(status_code=status_code, content=content)


async def read_json_body(request: Request) -> Dict[str, Any]:
    """
    Read the request body as a JSON object.

    An empty, unparsable or non-object body reads as {} so that field
    checks produce the endpoint's own message.
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return {}
    return body if isinstance(body, dict) else {}


def parse_body(model: Type[ModelT], body: Dict[str, Any], message: str) -> ModelT:
    """
    Validate ``body`` into ``model``; any validation failure is InputError(message).
    """
    try:
        return model.model_validate(body)
    except ValidationError as e:
        raise InputError(message, detail=str(e)) from e


def parse_bool(value: Any) -> bool:
    """Form and query flags: "true", "1", "yes", "on" are true."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes", "on")


async def read_audio_clip(upload: Any, max_upload_size_mb: int) -> AudioClip:
    """
    Read an uploaded file into an AudioClip.

    Raises:
        InputError: No file or an empty file (400), a file over the size cap (413)
    """
    if not isinstance(upload, UploadFile):
        raise InputError(ErrorMessages.NO_AUDIO)

    data = await upload.read()
    if not data:
        raise InputError(ErrorMessages.AUDIO_EMPTY)

    size_mb = len(data) / (1024 * 1024)
    if size_mb > max_upload_size_mb:
        raise InputError(
            ErrorMessages.AUDIO_TOO_LARGE.format(actual=size_mb, max=max_upload_size_mb),
            status_code=413,
        )

    return AudioClip(
        data=data,
        encoding=upload.content_type or "application/octet-stream",
        filename=upload.filename or "audio.wav",
    )
