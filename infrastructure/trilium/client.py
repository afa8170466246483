"""
Trilium Note Store - creates and searches notes over HTTP.

Implements INoteStore. Nothing here is masked: a create that returns
normally has been accepted by the store.
"""

from typing import Any, List, Optional

import httpx  # type: ignore
from pydantic import ValidationError

from core.config import Settings
from core.constants import NOTE_CREATE_PATH, NOTE_SEARCH_PATH, NOTE_TYPE_TEXT
from core.errors import NoteStoreError, NoteStoreRejectedError, NoteStoreUnreachableError
from core.logger import logger
from core.messages import ErrorMessages, LogMessages
from infrastructure.http import BackendHttpClient
from interfaces.note_store import INoteStore
from models.domain import Note

# Keys the gateway types itself; the rest of a reply is passed through
_NOTE_FIELDS = ("title", "content", "parentNoteId", "parent_id")


class TriliumNoteStore(INoteStore):
    """HTTP client for the Trilium note backend."""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.default_parent_id = settings.default_parent_note_id
        self._http = BackendHttpClient(
            backend="trilium",
            base_url=settings.trilium_url,
            default_timeout=settings.note_store_timeout_seconds,
            transport=transport,
        )

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        client = self._http.get()
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise NoteStoreUnreachableError(
                ErrorMessages.NOTE_STORE_UNREACHABLE.format(error=str(e) or type(e).__name__)
            ) from e

        if not response.is_success:
            raise NoteStoreRejectedError(
                ErrorMessages.NOTE_STORE_REJECTED.format(
                    status_code=response.status_code, body=response.text[:200]
                ),
                http_status=response.status_code,
            )
        return response

    async def create_note(
        self, title: str, content: str, parent_id: Optional[str] = None
    ) -> Note:
        """Implements INoteStore.create_note()."""
        parent = parent_id or self.default_parent_id
        payload = {
            "title": title,
            "content": content,
            "type": NOTE_TYPE_TEXT,
            "parentNoteId": parent,
        }

        response = await self._send("POST", NOTE_CREATE_PATH, json=payload)
        logger.info(LogMessages.NOTE_CREATED.format(title=title[:60], parent=parent))

        # Accepted is what matters; an empty or non-JSON body is still a stored note
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            try:
                return Note.model_validate(body)
            except ValidationError as e:
                logger.warning(
                    LogMessages.NOTE_REPLY_UNPARSED.format(
                        title=title[:60], errors=e.error_count()
                    )
                )
                extras = {k: v for k, v in body.items() if k not in _NOTE_FIELDS}
                return Note.model_validate(
                    {**extras, "title": title, "content": content, "parentNoteId": parent}
                )
        return Note(title=title, content=content, parent_id=parent)

    async def search(self, query: str) -> List[Note]:
        """Implements INoteStore.search(). Keeps the store's ranking order."""
        response = await self._send("GET", NOTE_SEARCH_PATH, params={"query": query})

        try:
            body: Any = response.json()
        except ValueError as e:
            raise NoteStoreError(
                ErrorMessages.NOTE_STORE_MALFORMED.format(error=e), stage="searched"
            ) from e

        # Older servers answer with a bare list, ETAPI wraps it in {"results": [...]}
        if isinstance(body, dict) and isinstance(body.get("results"), list):
            body = body["results"]
        if not isinstance(body, list):
            raise NoteStoreError(
                ErrorMessages.NOTE_STORE_MALFORMED.format(
                    error=f"expected a list of notes, got {type(body).__name__}"
                ),
                stage="searched",
            )

        try:
            notes = [
                Note.model_validate(item) if isinstance(item, dict) else Note(title=str(item))
                for item in body
            ]
        except ValidationError as e:
            raise NoteStoreError(
                ErrorMessages.NOTE_STORE_MALFORMED.format(error=e), stage="searched"
            ) from e
        logger.info(LogMessages.SEARCH_DONE.format(query=query[:60], count=len(notes)))
        return notes

    async def aclose(self) -> None:
        await self._http.aclose()
