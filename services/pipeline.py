"""
Note Pipeline Service - request orchestration for the gateway.

Composes the transcriber, the LLM enhancer and the note store into named
pipelines. Each pipeline is a short linear walk over PipelineStage values:

    received -> [transcribed] -> [titled] -> [enhanced] -> persisted -> responded

Failure policy:
- best-effort legs (title, enhancement) degrade to a fallback and never fail
  the request
- mandatory legs (transcription, persistence, search, chat) raise a
  GatewayError tagged with its stage and a stable error code
- the whole pipeline is bounded by PIPELINE_TIMEOUT_SECONDS
- legs are shielded: if the request is abandoned (client gone or deadline
  hit) the in-flight call still completes, its result is dropped, and no
  later stage starts; a dispatched note write is never cancelled
"""

import asyncio
import time
from functools import partial
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Type

from core.config import Settings
from core.constants import PipelineName, PipelineStage
from core.errors import (
    GatewayError,
    InputError,
    LLMBackendError,
    ModelUnavailableError,
    NoteStoreError,
    PipelineTimeoutError,
    TranscriptionError,
)
from core.logger import format_exception_short, logger
from core.messages import ErrorMessages, LogMessages
from interfaces.note_store import INoteStore
from interfaces.text_enhancer import ITextEnhancer
from interfaces.transcriber import ITranscriber
from models.domain import AudioClip, EnhancementResult, EnhancementTask, Note, TranscriptionResult
from models.schemas import (
    ChatRequest,
    ChatResponse,
    CreateNoteRequest,
    CreateNoteResponse,
    EnhanceOnlyRequest,
    EnhanceResponse,
    PipelineRequest,
    PipelineResponse,
    QuickNoteResponse,
    SearchRequest,
    SearchResponse,
    TextQuickNoteRequest,
    TranscribeOnlyRequest,
    TranscribeResponse,
    VoiceQuickNoteRequest,
)


class PipelineTrace:
    """Stages visited by one pipeline run, in order."""

    def __init__(self, pipeline: PipelineName):
        self.pipeline = pipeline
        self.stages: List[PipelineStage] = [PipelineStage.RECEIVED]
        self.started_at = time.time()

    @property
    def current(self) -> PipelineStage:
        return self.stages[-1]

    @property
    def elapsed(self) -> float:
        return time.time() - self.started_at

    def advance(self, stage: PipelineStage) -> None:
        self.stages.append(stage)
        logger.debug(
            LogMessages.PIPELINE_STAGE.format(pipeline=self.pipeline.value, stage=stage.value)
        )

    def stage_names(self) -> List[str]:
        return [stage.value for stage in self.stages]


def _log_abandoned_leg(leg: str, persistent: bool, task: "asyncio.Task[Any]") -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        logger.warning(
            LogMessages.LEG_DISCARDED_FAILURE.format(leg=leg, error=format_exception_short(error))
        )
    elif persistent:
        logger.warning(LogMessages.WRITE_AFTER_ABANDON)


Handler = Callable[[Any, PipelineTrace], Awaitable[PipelineResponse]]


class NotePipelineService:
    """
    Orchestrator behind every HTTP endpoint.

    Collaborators are injected through their interfaces; settings are read
    once here and never looked up again during a request.
    """

    def __init__(
        self,
        transcriber: ITranscriber,
        enhancer: ITextEnhancer,
        note_store: INoteStore,
        settings: Settings,
    ):
        self.transcriber = transcriber
        self.enhancer = enhancer
        self.note_store = note_store

        self.pipeline_timeout = settings.pipeline_timeout_seconds
        self.title_max_length = settings.title_max_length
        self.untitled_title = settings.untitled_note_title

        self._handlers: Dict[Type[Any], Tuple[PipelineName, Handler]] = {
            TranscribeOnlyRequest: (PipelineName.TRANSCRIBE_ONLY, self._run_transcribe_only),
            EnhanceOnlyRequest: (PipelineName.ENHANCE_ONLY, self._run_enhance_only),
            CreateNoteRequest: (PipelineName.CREATE_NOTE, self._run_create_note),
            TextQuickNoteRequest: (PipelineName.TEXT_QUICK_NOTE, self._run_text_quick_note),
            VoiceQuickNoteRequest: (PipelineName.VOICE_QUICK_NOTE, self._run_voice_quick_note),
            SearchRequest: (PipelineName.SEARCH, self._run_search),
            ChatRequest: (PipelineName.CHAT, self._run_chat),
        }

        logger.info(
            f"NotePipelineService initialized "
            f"(transcriber={self.transcriber.__class__.__name__}, "
            f"enhancer={self.enhancer.__class__.__name__}, "
            f"note_store={self.note_store.__class__.__name__}, "
            f"deadline={self.pipeline_timeout}s)"
        )

    # =========================================================================
    # Entry point
    # =========================================================================

    async def execute(self, request: PipelineRequest) -> PipelineResponse:
        """
        Run the pipeline matching the request variant.

        Raises:
            GatewayError: Tagged with the failing stage and an error code
        """
        name, handler = self._handlers[type(request)]
        trace = PipelineTrace(name)
        logger.info(LogMessages.PIPELINE_START.format(pipeline=name.value))

        try:
            response = await asyncio.wait_for(
                handler(request, trace), timeout=self.pipeline_timeout
            )
        except asyncio.TimeoutError as e:
            error = PipelineTimeoutError(
                ErrorMessages.PIPELINE_TIMEOUT.format(
                    pipeline=name.value,
                    timeout=self.pipeline_timeout,
                    stage=trace.current.value,
                ),
                stage=trace.current.value,
            )
            logger.error(
                LogMessages.PIPELINE_FAILED.format(
                    pipeline=name.value, stage=trace.current.value, error=error.message
                )
            )
            raise error from e
        except GatewayError as e:
            logger.warning(
                LogMessages.PIPELINE_FAILED.format(
                    pipeline=name.value, stage=e.stage, error=e.detail or e.message
                )
            )
            raise

        trace.advance(PipelineStage.RESPONDED)
        logger.info(
            LogMessages.PIPELINE_DONE.format(
                pipeline=name.value, duration=trace.elapsed, stages=",".join(trace.stage_names())
            )
        )
        return response

    # =========================================================================
    # Pipelines
    # =========================================================================

    async def _run_transcribe_only(
        self, request: TranscribeOnlyRequest, trace: PipelineTrace
    ) -> TranscribeResponse:
        transcript = await self._transcribe(
            request.clip, trace, failure_message=ErrorMessages.TRANSCRIPTION_FAILED
        )
        return TranscribeResponse(text=transcript.text)

    async def _run_enhance_only(
        self, request: EnhanceOnlyRequest, trace: PipelineTrace
    ) -> EnhanceResponse:
        result = await self._leg("enhancement", self.enhancer.enhance(request.text, request.task))
        trace.advance(PipelineStage.ENHANCED)

        if request.note_id:
            logger.info(f"AI enhanced note {request.note_id} with task: {result.task.value}")

        return EnhanceResponse(
            enhanced_text=result.output_text,
            original_text=request.text,
            task=result.task.value,
            note_id=request.note_id,
            enhanced=result.succeeded,
        )

    async def _run_create_note(
        self, request: CreateNoteRequest, trace: PipelineTrace
    ) -> CreateNoteResponse:
        enhancement = await self._maybe_enhance(request.content, request.enhance, trace)
        content = enhancement.output_text if enhancement else request.content

        note = await self._persist(
            request.title,
            content,
            request.parent_note_id,
            trace,
            failure_message=ErrorMessages.CREATE_NOTE_FAILED,
        )
        return CreateNoteResponse(
            note=note.to_payload(),
            content=content,
            enhanced=bool(enhancement and enhancement.succeeded),
        )

    async def _run_text_quick_note(
        self, request: TextQuickNoteRequest, trace: PipelineTrace
    ) -> QuickNoteResponse:
        # Title comes from the text as typed, before any rewrite
        title = await self._derive_title(request.content, trace)
        enhancement = await self._maybe_enhance(request.content, request.enhance, trace)
        content = enhancement.output_text if enhancement else request.content

        note = await self._persist(
            title,
            content,
            request.parent_note_id,
            trace,
            failure_message=ErrorMessages.QUICK_NOTE_FAILED,
        )
        return QuickNoteResponse(
            title=title,
            original_content=request.content,
            content=content,
            enhanced=bool(enhancement and enhancement.succeeded),
            note=note.to_payload(),
        )

    async def _run_voice_quick_note(
        self, request: VoiceQuickNoteRequest, trace: PipelineTrace
    ) -> QuickNoteResponse:
        transcript = await self._transcribe(
            request.clip, trace, failure_message=ErrorMessages.VOICE_NOTE_FAILED
        )
        text = transcript.text.strip()
        if not text:
            raise InputError(ErrorMessages.NO_SPEECH, stage=PipelineStage.TRANSCRIBED.value)

        title = await self._derive_title(text, trace)
        enhancement = await self._maybe_enhance(text, request.enhance, trace)
        content = enhancement.output_text if enhancement else text

        note = await self._persist(
            title,
            content,
            request.parent_note_id,
            trace,
            failure_message=ErrorMessages.VOICE_NOTE_FAILED,
        )
        return QuickNoteResponse(
            title=title,
            transcribed_text=text,
            content=content,
            enhanced=bool(enhancement and enhancement.succeeded),
            note=note.to_payload(),
        )

    async def _run_search(self, request: SearchRequest, trace: PipelineTrace) -> SearchResponse:
        try:
            notes = await self._leg("search", self.note_store.search(request.query))
        except NoteStoreError as e:
            raise e.with_context(ErrorMessages.SEARCH_FAILED, stage=PipelineStage.SEARCHED.value)

        trace.advance(PipelineStage.SEARCHED)
        return SearchResponse(results=[note.to_payload() for note in notes])

    async def _run_chat(self, request: ChatRequest, trace: PipelineTrace) -> ChatResponse:
        try:
            result = await self._leg("chat", self.enhancer.chat(request.prompt, request.context))
        except LLMBackendError as e:
            raise e.with_context(ErrorMessages.CHAT_FAILED, stage=PipelineStage.GENERATED.value)

        trace.advance(PipelineStage.GENERATED)
        return ChatResponse(
            response=result.response,
            prompt=result.prompt,
            context=result.context,
            model=result.model,
        )

    # =========================================================================
    # Steps
    # =========================================================================

    async def _transcribe(
        self, clip: AudioClip, trace: PipelineTrace, failure_message: str
    ) -> TranscriptionResult:
        try:
            transcript = await self._leg("transcription", self.transcriber.transcribe(clip))
        except ModelUnavailableError as e:
            raise e.with_context(ErrorMessages.MODEL_NOT_AVAILABLE)
        except TranscriptionError as e:
            raise e.with_context(failure_message)

        trace.advance(PipelineStage.TRANSCRIBED)
        return transcript

    async def _derive_title(self, text: str, trace: PipelineTrace) -> str:
        """Best-effort title; the placeholder on any failure."""
        result = await self._leg("title", self.enhancer.enhance(text, EnhancementTask.TITLE))
        title = self.clean_title(result.output_text) if result.succeeded else ""

        if not title:
            logger.warning(LogMessages.TITLE_FALLBACK.format(title=self.untitled_title))
            title = self.untitled_title

        trace.advance(PipelineStage.TITLED)
        return title[: self.title_max_length]

    async def _maybe_enhance(
        self, text: str, enhance: bool, trace: PipelineTrace
    ) -> Optional[EnhancementResult]:
        if not enhance:
            return None
        result = await self._leg("enhancement", self.enhancer.enhance(text, EnhancementTask.IMPROVE))
        trace.advance(PipelineStage.ENHANCED)
        return result

    async def _persist(
        self,
        title: str,
        content: str,
        parent_id: Optional[str],
        trace: PipelineTrace,
        failure_message: str,
    ) -> Note:
        try:
            note = await self._leg(
                "note-store write",
                self.note_store.create_note(title, content, parent_id),
                persistent=True,
            )
        except NoteStoreError as e:
            raise e.with_context(failure_message, stage=PipelineStage.PERSISTED.value)

        trace.advance(PipelineStage.PERSISTED)
        return note

    async def _leg(self, leg: str, call: Awaitable[Any], persistent: bool = False) -> Any:
        """
        Await one downstream call without letting cancellation reach it.

        If this request is cancelled while the call is in flight, the call
        runs to completion in the background and its result is dropped.
        """
        task = asyncio.ensure_future(call)
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                logger.warning(LogMessages.LEG_ABANDONED.format(leg=leg))
                task.add_done_callback(partial(_log_abandoned_leg, leg, persistent))
            raise

    @staticmethod
    def clean_title(raw: str) -> str:
        """First non-empty line of the LLM reply, without quotes or a 'Title:' label."""
        for line in raw.splitlines():
            line = line.strip().strip("\"'*#` ").strip()
            if line.lower().startswith("title:"):
                line = line[len("title:"):].strip().strip("\"'*` ").strip()
            if line:
                return line
        return ""

    async def aclose(self) -> None:
        """Close pooled backend connections."""
        for collaborator in (self.enhancer, self.note_store):
            close = getattr(collaborator, "aclose", None)
            if close is not None:
                await close()
