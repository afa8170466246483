"""
Shared fixtures: settings pointed at fake backends and in-memory
implementations of the three collaborator interfaces.
"""

import asyncio
import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pytest

# Get project root (parent of tests directory)
PROJECT_ROOT = Path(__file__).parent.parent

# Add project root to sys.path for imports
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.config import Settings  # noqa: E402
from interfaces.note_store import INoteStore  # noqa: E402
from interfaces.text_enhancer import ITextEnhancer  # noqa: E402
from interfaces.transcriber import ITranscriber  # noqa: E402
from models.domain import (  # noqa: E402
    AudioClip,
    ChatResult,
    EnhancementResult,
    EnhancementTask,
    Note,
    TranscriptionResult,
)

OLLAMA_TEST_URL = "http://ollama.test"
TRILIUM_TEST_URL = "http://trilium.test"


def make_settings(tmp_path: Path, **overrides: Any) -> Settings:
    values: Dict[str, Any] = {
        "TEMP_DIR": str(tmp_path / "audio"),
        "OLLAMA_URL": OLLAMA_TEST_URL,
        "OLLAMA_MODEL": "llama3.2:1b",
        "TRILIUM_URL": TRILIUM_TEST_URL,
        "DEFAULT_PARENT_NOTE_ID": "root",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


# =============================================================================
# Fakes
# =============================================================================


class FakeTranscriber(ITranscriber):
    """Returns a fixed transcript or raises a fixed error."""

    def __init__(
        self,
        text: str = "remember to buy milk",
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.text = text
        self.error = error
        self.delay = delay
        self.calls: List[AudioClip] = []
        self.completed = 0

    async def transcribe(self, clip: AudioClip) -> TranscriptionResult:
        self.calls.append(clip)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.completed += 1
        return TranscriptionResult(text=self.text, source_clip_id=clip.clip_id)

    @property
    def is_available(self) -> bool:
        return self.error is None

    def describe(self) -> Dict[str, Any]:
        return {"loaded": self.is_available, "size": "fake"}


class FakeEnhancer(ITextEnhancer):
    """
    LLM stand-in.

    ``replies`` maps a task to a function of the input text. With
    ``available=False`` every enhancement passes through, like a real
    client whose backend is down.
    """

    def __init__(
        self,
        replies: Optional[Dict[EnhancementTask, Callable[[str], str]]] = None,
        available: bool = True,
        chat_error: Optional[Exception] = None,
    ):
        self.replies = replies or {
            EnhancementTask.TITLE: lambda text: "Grocery Reminder",
            EnhancementTask.IMPROVE: lambda text: f"Improved: {text}",
        }
        self.available = available
        self.chat_error = chat_error
        self.calls: List[tuple] = []

    async def enhance(self, text: str, task: EnhancementTask) -> EnhancementResult:
        self.calls.append((task, text))
        if not self.available or task not in self.replies:
            return EnhancementResult.passthrough(text, task)
        return EnhancementResult.from_output(text, task, self.replies[task](text))

    async def chat(self, prompt: str, context: str = "") -> ChatResult:
        self.calls.append(("chat", prompt))
        if self.chat_error is not None:
            raise self.chat_error
        return ChatResult(response="42", prompt=prompt, context=context, model="fake")

    def tasks(self) -> List[EnhancementTask]:
        return [call[0] for call in self.calls]


class FakeNoteStore(INoteStore):
    """Keeps created notes in a list; optionally fails every call."""

    def __init__(
        self,
        search_results: Optional[List[Dict[str, Any]]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.search_results = search_results or []
        self.error = error
        self.delay = delay
        self.created: List[Dict[str, Any]] = []
        self.create_calls = 0
        self.queries: List[str] = []

    async def create_note(
        self, title: str, content: str, parent_id: Optional[str] = None
    ) -> Note:
        self.create_calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        record = {
            "noteId": f"n{len(self.created) + 1}",
            "title": title,
            "content": content,
            "parentNoteId": parent_id or "root",
        }
        self.created.append(record)
        return Note.model_validate(record)

    async def search(self, query: str) -> List[Note]:
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return [Note.model_validate(item) for item in self.search_results]


@pytest.fixture
def fake_transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture
def fake_enhancer() -> FakeEnhancer:
    return FakeEnhancer()


@pytest.fixture
def fake_note_store() -> FakeNoteStore:
    return FakeNoteStore()
