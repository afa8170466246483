"""
Unit tests for NotePipelineService.

The service uses dependency injection, so every collaborator is an
in-memory fake (see conftest.py). Covers stage order, the best-effort vs
mandatory failure policy, title derivation, the pipeline deadline and
abandoned-request behavior.
"""

import asyncio

import pytest

from conftest import FakeEnhancer, FakeNoteStore, FakeTranscriber, make_settings
from core.errors import (
    AudioDecodeError,
    InputError,
    LLMBackendError,
    ModelUnavailableError,
    NoteStoreRejectedError,
    NoteStoreUnreachableError,
    PipelineTimeoutError,
)
from models.domain import AudioClip, EnhancementTask
from models.schemas import (
    ChatRequest,
    CreateNoteRequest,
    EnhanceOnlyRequest,
    SearchRequest,
    TextQuickNoteRequest,
    TranscribeOnlyRequest,
    VoiceQuickNoteRequest,
)
from services.pipeline import NotePipelineService


def make_service(tmp_path, transcriber=None, enhancer=None, note_store=None, **overrides):
    transcriber = transcriber or FakeTranscriber()
    enhancer = enhancer or FakeEnhancer()
    note_store = note_store or FakeNoteStore()
    service = NotePipelineService(
        transcriber=transcriber,
        enhancer=enhancer,
        note_store=note_store,
        settings=make_settings(tmp_path, **overrides),
    )
    return service, transcriber, enhancer, note_store


def clip() -> AudioClip:
    return AudioClip(data=b"RIFF....WAVE", filename="memo.wav")


class TestVoiceQuickNote:

    @pytest.mark.asyncio
    async def test_transcribe_title_persist(self, tmp_path):
        service, transcriber, enhancer, store = make_service(tmp_path)

        response = await service.execute(VoiceQuickNoteRequest(clip=clip()))

        assert response.success is True
        assert response.transcribed_text == "remember to buy milk"
        assert response.title == "Grocery Reminder"
        assert response.content == "remember to buy milk"
        assert response.enhanced is False
        assert enhancer.tasks() == [EnhancementTask.TITLE]
        assert store.created[0]["title"] == "Grocery Reminder"
        assert store.created[0]["content"] == "remember to buy milk"
        assert response.note["noteId"] == "n1"

    @pytest.mark.asyncio
    async def test_title_runs_on_transcript_before_enhancement(self, tmp_path):
        service, _, enhancer, store = make_service(tmp_path)

        response = await service.execute(VoiceQuickNoteRequest(clip=clip(), enhance=True))

        assert enhancer.calls == [
            (EnhancementTask.TITLE, "remember to buy milk"),
            (EnhancementTask.IMPROVE, "remember to buy milk"),
        ]
        assert response.content == "Improved: remember to buy milk"
        assert response.enhanced is True
        assert store.created[0]["content"] == "Improved: remember to buy milk"

    @pytest.mark.asyncio
    async def test_transcription_failure_never_creates_note(self, tmp_path):
        transcriber = FakeTranscriber(error=AudioDecodeError("Could not decode audio"))
        service, _, enhancer, store = make_service(tmp_path, transcriber=transcriber)

        with pytest.raises(AudioDecodeError) as exc_info:
            await service.execute(VoiceQuickNoteRequest(clip=clip()))

        error = exc_info.value
        assert error.message == "Failed to process voice note"
        assert error.error_code == "AUDIO_DECODE_FAILED"
        assert error.stage == "transcribed"
        assert error.detail == "Could not decode audio"
        assert store.create_calls == 0
        assert enhancer.calls == []

    @pytest.mark.asyncio
    async def test_model_unavailable_keeps_its_message(self, tmp_path):
        transcriber = FakeTranscriber(
            error=ModelUnavailableError("Speech-to-text model not available")
        )
        service, _, _, store = make_service(tmp_path, transcriber=transcriber)

        with pytest.raises(ModelUnavailableError) as exc_info:
            await service.execute(VoiceQuickNoteRequest(clip=clip()))

        assert exc_info.value.message == "Speech-to-text model not available"
        assert store.create_calls == 0

    @pytest.mark.asyncio
    async def test_empty_transcript_is_rejected(self, tmp_path):
        service, _, _, store = make_service(tmp_path, transcriber=FakeTranscriber(text="   "))

        with pytest.raises(InputError) as exc_info:
            await service.execute(VoiceQuickNoteRequest(clip=clip()))

        assert exc_info.value.message == "No speech detected in audio"
        assert exc_info.value.status_code == 400
        assert store.create_calls == 0

    @pytest.mark.asyncio
    async def test_store_failure_is_surfaced(self, tmp_path):
        store = FakeNoteStore(error=NoteStoreUnreachableError("Note store unreachable: refused"))
        service, _, _, _ = make_service(tmp_path, note_store=store)

        with pytest.raises(NoteStoreUnreachableError) as exc_info:
            await service.execute(VoiceQuickNoteRequest(clip=clip()))

        assert exc_info.value.message == "Failed to process voice note"
        assert exc_info.value.stage == "persisted"
        assert exc_info.value.error_code == "NOTE_STORE_UNREACHABLE"

    @pytest.mark.asyncio
    async def test_parent_note_is_forwarded(self, tmp_path):
        service, _, _, store = make_service(tmp_path)

        await service.execute(VoiceQuickNoteRequest(clip=clip(), parent_note_id="inbox"))

        assert store.created[0]["parentNoteId"] == "inbox"


class TestTextQuickNote:

    @pytest.mark.asyncio
    async def test_llm_down_uses_placeholder_and_raw_content(self, tmp_path):
        service, _, _, store = make_service(tmp_path, enhancer=FakeEnhancer(available=False))

        response = await service.execute(
            TextQuickNoteRequest(content="call mom", enhance=True)
        )

        assert response.title == "Untitled Note"
        assert response.content == "call mom"
        assert response.original_content == "call mom"
        assert response.enhanced is False
        assert store.created[0] == {
            "noteId": "n1",
            "title": "Untitled Note",
            "content": "call mom",
            "parentNoteId": "root",
        }

    @pytest.mark.asyncio
    async def test_fallback_title_is_stable(self, tmp_path):
        service, _, _, store = make_service(tmp_path, enhancer=FakeEnhancer(available=False))

        first = await service.execute(TextQuickNoteRequest(content="same input"))
        second = await service.execute(TextQuickNoteRequest(content="same input"))

        assert first.title == second.title == "Untitled Note"

    @pytest.mark.asyncio
    async def test_title_is_cleaned_and_truncated(self, tmp_path):
        long_title = "Title: \"" + "x" * 150 + "\"\nsecond line"
        enhancer = FakeEnhancer(replies={EnhancementTask.TITLE: lambda text: long_title})
        service, _, _, _ = make_service(tmp_path, enhancer=enhancer)

        response = await service.execute(TextQuickNoteRequest(content="notes"))

        assert response.title == "x" * 100

    @pytest.mark.asyncio
    async def test_no_enhancement_unless_requested(self, tmp_path):
        service, _, enhancer, _ = make_service(tmp_path)

        response = await service.execute(TextQuickNoteRequest(content="call mom"))

        assert enhancer.tasks() == [EnhancementTask.TITLE]
        assert response.content == "call mom"

    @pytest.mark.asyncio
    async def test_store_failure_message(self, tmp_path):
        store = FakeNoteStore(error=NoteStoreRejectedError("HTTP 500", http_status=500))
        service, _, _, _ = make_service(tmp_path, note_store=store)

        with pytest.raises(NoteStoreRejectedError) as exc_info:
            await service.execute(TextQuickNoteRequest(content="call mom"))

        assert exc_info.value.message == "Failed to create quick note"


class TestCreateNote:

    @pytest.mark.asyncio
    async def test_content_stored_byte_for_byte(self, tmp_path):
        content = "  Line one\n\tline two with unicode: café ☕  \n"
        service, _, enhancer, store = make_service(tmp_path)

        response = await service.execute(
            CreateNoteRequest(title="Exact", content=content, enhance=False)
        )

        assert store.created[0]["content"] == content
        assert store.created[0]["title"] == "Exact"
        assert response.content == content
        assert enhancer.calls == []

    @pytest.mark.asyncio
    async def test_enhanced_content_is_stored(self, tmp_path):
        service, _, enhancer, store = make_service(tmp_path)

        response = await service.execute(
            CreateNoteRequest(title="T", content="draft", enhance=True)
        )

        assert enhancer.tasks() == [EnhancementTask.IMPROVE]
        assert store.created[0]["content"] == "Improved: draft"
        assert response.enhanced is True

    @pytest.mark.asyncio
    async def test_store_failure_message(self, tmp_path):
        store = FakeNoteStore(error=NoteStoreUnreachableError("refused"))
        service, _, _, _ = make_service(tmp_path, note_store=store)

        with pytest.raises(NoteStoreUnreachableError) as exc_info:
            await service.execute(CreateNoteRequest(title="T", content="C"))

        assert exc_info.value.message == "Failed to create note"
        assert exc_info.value.detail == "refused"


class TestSingleStepPipelines:

    @pytest.mark.asyncio
    async def test_transcribe_only(self, tmp_path):
        service, transcriber, _, store = make_service(tmp_path)

        response = await service.execute(TranscribeOnlyRequest(clip=clip()))

        assert response.text == "remember to buy milk"
        assert store.create_calls == 0

    @pytest.mark.asyncio
    async def test_transcribe_only_failure_message(self, tmp_path):
        transcriber = FakeTranscriber(error=AudioDecodeError("bad container"))
        service, _, _, _ = make_service(tmp_path, transcriber=transcriber)

        with pytest.raises(AudioDecodeError) as exc_info:
            await service.execute(TranscribeOnlyRequest(clip=clip()))

        assert exc_info.value.message == "Failed to transcribe audio"

    @pytest.mark.asyncio
    async def test_enhance_only_passthrough(self, tmp_path):
        service, _, _, store = make_service(tmp_path, enhancer=FakeEnhancer(available=False))

        response = await service.execute(
            EnhanceOnlyRequest(text="buy milk", task=EnhancementTask.SUMMARIZE, note_id="n7")
        )

        assert response.enhanced_text == "buy milk"
        assert response.original_text == "buy milk"
        assert response.task == "summarize"
        assert response.note_id == "n7"
        assert response.enhanced is False
        assert store.create_calls == 0

    @pytest.mark.asyncio
    async def test_search_keeps_order(self, tmp_path):
        notes = [{"noteId": "b", "title": "B"}, {"noteId": "a", "title": "A"}]
        service, _, _, store = make_service(tmp_path, note_store=FakeNoteStore(search_results=notes))

        response = await service.execute(SearchRequest(query="meeting"))

        assert response.results == notes
        assert store.queries == ["meeting"]

    @pytest.mark.asyncio
    async def test_search_failure(self, tmp_path):
        store = FakeNoteStore(error=NoteStoreUnreachableError("refused"))
        service, _, _, _ = make_service(tmp_path, note_store=store)

        with pytest.raises(NoteStoreUnreachableError) as exc_info:
            await service.execute(SearchRequest(query="meeting"))

        assert exc_info.value.message == "Search failed"
        assert exc_info.value.stage == "searched"

    @pytest.mark.asyncio
    async def test_chat(self, tmp_path):
        service, _, _, _ = make_service(tmp_path)

        response = await service.execute(ChatRequest(prompt="meaning of life?"))

        assert response.response == "42"
        assert response.prompt == "meaning of life?"

    @pytest.mark.asyncio
    async def test_chat_failure(self, tmp_path):
        enhancer = FakeEnhancer(chat_error=LLMBackendError("LLM backend returned HTTP 500"))
        service, _, _, _ = make_service(tmp_path, enhancer=enhancer)

        with pytest.raises(LLMBackendError) as exc_info:
            await service.execute(ChatRequest(prompt="hi"))

        assert exc_info.value.message == "Failed to get AI response"
        assert exc_info.value.stage == "generated"


class TestDeadline:

    @pytest.mark.asyncio
    async def test_pipeline_timeout_names_stage(self, tmp_path):
        transcriber = FakeTranscriber(delay=1.0)
        service, _, _, store = make_service(
            tmp_path, transcriber=transcriber, PIPELINE_TIMEOUT_SECONDS=0.2
        )

        with pytest.raises(PipelineTimeoutError) as exc_info:
            await service.execute(VoiceQuickNoteRequest(clip=clip()))

        assert exc_info.value.error_code == "PIPELINE_TIMEOUT"
        assert exc_info.value.stage == "received"
        assert store.create_calls == 0

    @pytest.mark.asyncio
    async def test_abandoned_leg_finishes_in_background(self, tmp_path):
        transcriber = FakeTranscriber(delay=0.4)
        service, _, enhancer, store = make_service(
            tmp_path, transcriber=transcriber, PIPELINE_TIMEOUT_SECONDS=0.1
        )

        with pytest.raises(PipelineTimeoutError):
            await service.execute(VoiceQuickNoteRequest(clip=clip()))

        await asyncio.sleep(0.6)

        # The transcription ran to completion but nothing after it started
        assert transcriber.completed == 1
        assert enhancer.calls == []
        assert store.create_calls == 0

    @pytest.mark.asyncio
    async def test_dispatched_write_is_not_cancelled(self, tmp_path):
        store = FakeNoteStore(delay=0.4)
        service, _, _, _ = make_service(
            tmp_path, note_store=store, PIPELINE_TIMEOUT_SECONDS=0.1
        )

        with pytest.raises(PipelineTimeoutError) as exc_info:
            await service.execute(CreateNoteRequest(title="T", content="C"))

        assert exc_info.value.stage == "received"
        await asyncio.sleep(0.6)
        assert len(store.created) == 1


class TestCleanTitle:

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("Grocery Reminder", "Grocery Reminder"),
            ('"Grocery Reminder"', "Grocery Reminder"),
            ("\n\n  Weekly Sync Notes  \nextra", "Weekly Sync Notes"),
            ("Title: Project Kickoff", "Project Kickoff"),
            ("**Budget Review**", "Budget Review"),
            ("", ""),
            ("  \n  ", ""),
        ],
    )
    def test_clean_title(self, raw, expected):
        assert NotePipelineService.clean_title(raw) == expected
