"""
Domain models passed between the pipeline and its collaborators.

All of these are request-scoped. The gateway keeps no state beyond the
loaded speech model.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


@dataclass(frozen=True)
class AudioClip:
    """Raw uploaded audio plus its declared encoding."""

    data: bytes
    encoding: str = "audio/wav"
    filename: str = "audio.wav"
    clip_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @property
    def size_mb(self) -> float:
        return len(self.data) / (1024 * 1024)


@dataclass(frozen=True)
class TranscriptionResult:
    text: str
    source_clip_id: str


class EnhancementTask(str, Enum):
    """Closed set of text transformations, each bound to one prompt template."""

    IMPROVE = "improve"
    SUMMARIZE = "summarize"
    REPHRASE = "rephrase"
    EXPAND = "expand"
    TITLE = "title"

    @classmethod
    def parse(cls, name: Optional[str]) -> "EnhancementTask":
        """
        Map a task name to a task. Total: anything unknown is IMPROVE.

        Accepts "title-generation" and "title_generation" as spellings of TITLE.
        """
        if isinstance(name, cls):
            return name
        if not isinstance(name, str):
            return cls.IMPROVE
        normalized = name.strip().lower().replace("_", "-")
        if normalized in ("title-generation", "title"):
            return cls.TITLE
        try:
            return cls(normalized)
        except ValueError:
            return cls.IMPROVE

    def build_prompt(self, text: str) -> str:
        return PROMPT_TEMPLATES[self].format(text=text)


PROMPT_TEMPLATES: Dict[EnhancementTask, str] = {
    EnhancementTask.IMPROVE: (
        "Please improve and expand the following notes while maintaining "
        "the original meaning:\n\n{text}"
    ),
    EnhancementTask.SUMMARIZE: "Please provide a concise summary of the following:\n\n{text}",
    EnhancementTask.REPHRASE: (
        "Please rephrase the following text to be clearer and more professional:\n\n{text}"
    ),
    EnhancementTask.EXPAND: (
        "Please expand on the following notes with more detail and context:\n\n{text}"
    ),
    EnhancementTask.TITLE: (
        "Generate a short, descriptive title (max 10 words) for this note:\n\n{text}"
    ),
}


@dataclass(frozen=True)
class EnhancementResult:
    """
    Outcome of a best-effort enhancement.

    When ``succeeded`` is False, ``output_text`` is exactly ``original_text``.
    Use the constructors instead of building one by hand.
    """

    output_text: str
    task: EnhancementTask
    original_text: str
    succeeded: bool

    @classmethod
    def passthrough(cls, text: str, task: EnhancementTask) -> "EnhancementResult":
        return cls(output_text=text, task=task, original_text=text, succeeded=False)

    @classmethod
    def from_output(cls, text: str, task: EnhancementTask, output: str) -> "EnhancementResult":
        # An echo of the input is not an enhancement
        if not output or not output.strip() or output == text:
            return cls.passthrough(text, task)
        return cls(output_text=output, task=task, original_text=text, succeeded=True)


class Note(BaseModel):
    """
    A note as the store reports it.

    Only title, content and parent are known to the gateway; every other
    field the store sends back is kept and returned to the caller untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    title: Optional[str] = None
    content: Optional[str] = None
    parent_id: Optional[str] = Field(default=None, alias="parentNoteId")

    def to_payload(self) -> Dict[str, Any]:
        """Store-shaped dict: original keys, nothing the store did not send."""
        return self.model_dump(by_alias=True, exclude_unset=True)


@dataclass(frozen=True)
class ChatResult:
    response: str
    prompt: str
    context: str
    model: str
