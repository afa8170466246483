"""
Note Store Interface - Abstract interface for the note backend.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from models.domain import Note


class INoteStore(ABC):
    """
    Abstract interface for creating and searching notes.

    Implementations:
    - infrastructure.trilium.client.TriliumNoteStore
    """

    @abstractmethod
    async def create_note(
        self, title: str, content: str, parent_id: Optional[str] = None
    ) -> Note:
        """
        Persist a new note.

        Raises:
            NoteStoreUnreachableError: Connection failure or timeout
            NoteStoreRejectedError: Store answered with a non-success status
        """
        pass

    @abstractmethod
    async def search(self, query: str) -> List[Note]:
        """
        Search notes, in the order the store ranks them.

        Raises:
            NoteStoreError: On any failure, so callers can tell an empty
                result from an unavailable store
        """
        pass
