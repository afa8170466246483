"""
Tests for the terminal client, against a mocked gateway.
"""

import json
import wave
from types import SimpleNamespace
from unittest.mock import patch

import httpx
import pytest

from scripts.luna_cli import (
    RECORD_CHUNK,
    create_text_note,
    create_voice_note,
    main,
    record_audio,
    record_voice_note,
    search_notes,
)


def gateway(handler):
    seen = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.Client(base_url="http://gateway.test", transport=httpx.MockTransport(_handler))
    return client, seen


class TestTextNote:

    def test_posts_json(self):
        client, seen = gateway(
            lambda r: httpx.Response(200, json={"success": True, "title": "Dentist"})
        )

        result = create_text_note(client, "call the dentist", enhance=True, parent="inbox")

        assert result["title"] == "Dentist"
        assert seen[0].url.path == "/quick-note"
        assert json.loads(seen[0].content) == {
            "content": "call the dentist",
            "enhance": True,
            "parent_note_id": "inbox",
        }

    def test_gateway_error_returns_none(self):
        client, _ = gateway(
            lambda r: httpx.Response(500, json={"error": "Failed to create quick note"})
        )

        assert create_text_note(client, "x") is None


class TestVoiceNote:

    def test_uploads_multipart(self, tmp_path):
        audio = tmp_path / "memo.wav"
        audio.write_bytes(b"RIFF fake wav")
        client, seen = gateway(
            lambda r: httpx.Response(
                200, json={"success": True, "title": "Memo", "transcribed_text": "hello"}
            )
        )

        result = create_voice_note(client, audio, enhance=False)

        assert result["transcribed_text"] == "hello"
        request = seen[0]
        assert request.headers["content-type"].startswith("multipart/form-data")
        assert b'name="audio"; filename="memo.wav"' in request.content
        assert b"RIFF fake wav" in request.content

    def test_missing_file(self, tmp_path):
        client, seen = gateway(lambda r: httpx.Response(200, json={}))

        assert create_voice_note(client, tmp_path / "nope.wav") is None
        assert seen == []


class TestSearch:

    def test_returns_results_in_order(self):
        notes = [{"title": "B"}, {"title": "A"}]
        client, seen = gateway(lambda r: httpx.Response(200, json={"results": notes}))

        assert search_notes(client, "meeting") == notes
        assert seen[0].url.params["q"] == "meeting"

    @pytest.mark.parametrize(
        "handler",
        [
            lambda r: httpx.Response(500, json={"error": "Search failed"}),
            lambda r: httpx.Response(200, content=b"<html>"),
        ],
    )
    def test_failure_shows_empty_list(self, handler):
        client, _ = gateway(handler)

        assert search_notes(client, "meeting") == []

    def test_unreachable_shows_empty_list(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, _ = gateway(refuse)

        assert search_notes(client, "meeting") == []


class TestMain:

    def test_note_command_exit_code(self):
        client, _ = gateway(lambda r: httpx.Response(200, json={"title": "T"}))

        assert main(["note", "hello"], client=client) == 0

    def test_note_command_failure_exit_code(self):
        client, _ = gateway(lambda r: httpx.Response(400, json={"error": "Content is required"}))

        assert main(["note", ""], client=client) == 1

    def test_search_never_fails(self):
        client, _ = gateway(lambda r: httpx.Response(503))

        assert main(["search", "x"], client=client) == 0


class FakeStream:
    """Mimics a pyaudio input stream; optionally interrupted after N reads."""

    def __init__(self, interrupt_after=None):
        self.interrupt_after = interrupt_after
        self.reads = 0
        self.closed = False

    def read(self, num_frames, exception_on_overflow=True):
        if self.interrupt_after is not None and self.reads >= self.interrupt_after:
            raise KeyboardInterrupt
        self.reads += 1
        return b"\x01\x00" * num_frames

    def stop_stream(self):
        pass

    def close(self):
        self.closed = True


class FakePyAudio:

    def __init__(self, stream):
        self.stream = stream
        self.open_kwargs = None
        self.terminated = False

    def open(self, **kwargs):
        self.open_kwargs = kwargs
        return self.stream

    def get_sample_size(self, sample_format):
        return 2

    def terminate(self):
        self.terminated = True


def fake_pyaudio(stream):
    audio = FakePyAudio(stream)
    return SimpleNamespace(paInt16=8, PyAudio=lambda: audio), audio


class TestRecordAudio:

    def test_records_for_duration(self, tmp_path):
        module, audio = fake_pyaudio(FakeStream())
        output = tmp_path / "rec.wav"

        record_audio(output, duration=1, pyaudio_module=module)

        # ceil(16000 / 1024) chunks
        assert audio.stream.reads == 16
        assert audio.open_kwargs["rate"] == 16000
        assert audio.open_kwargs["input"] is True
        assert audio.stream.closed
        assert audio.terminated
        with wave.open(str(output), "rb") as wav:
            assert wav.getnchannels() == 1
            assert wav.getsampwidth() == 2
            assert wav.getframerate() == 16000
            assert wav.getnframes() == 16 * RECORD_CHUNK

    def test_ctrl_c_keeps_what_was_captured(self, tmp_path):
        module, audio = fake_pyaudio(FakeStream(interrupt_after=3))
        output = tmp_path / "rec.wav"

        record_audio(output, duration=30, pyaudio_module=module)

        assert audio.stream.closed
        assert audio.terminated
        with wave.open(str(output), "rb") as wav:
            assert wav.getnframes() == 3 * RECORD_CHUNK


class TestRecordVoiceNote:

    def test_uploads_recording_and_removes_it(self):
        recorded = []

        def fake_record(path, duration):
            recorded.append((path, duration))
            path.write_bytes(b"RIFF recorded")
            return path

        client, seen = gateway(
            lambda r: httpx.Response(200, json={"title": "Memo", "transcribed_text": "hi"})
        )

        with patch("scripts.luna_cli.record_audio", side_effect=fake_record):
            result = record_voice_note(client, duration=5, enhance=True)

        assert result["title"] == "Memo"
        path, duration = recorded[0]
        assert duration == 5
        assert b"RIFF recorded" in seen[0].content
        assert b'name="enhance"' in seen[0].content
        assert not path.exists()

    def test_missing_capture_library_returns_none(self):
        recorded = []

        def fail(path, duration):
            recorded.append(path)
            raise ImportError("No module named 'pyaudio'")

        client, seen = gateway(lambda r: httpx.Response(200, json={}))

        with patch("scripts.luna_cli.record_audio", side_effect=fail):
            assert record_voice_note(client) is None

        assert seen == []
        assert not recorded[0].exists()

    def test_voice_record_command(self):
        client, _ = gateway(lambda r: httpx.Response(200, json={"title": "T"}))

        with patch(
            "scripts.luna_cli.record_audio",
            side_effect=lambda path, duration: path.write_bytes(b"RIFF") and path,
        ) as mock_record:
            assert main(["voice", "--record", "--duration", "3"], client=client) == 0

        assert mock_record.call_args[0][1] == 3.0

    def test_voice_needs_file_or_record(self):
        client, _ = gateway(lambda r: httpx.Response(200, json={}))

        with pytest.raises(SystemExit):
            main(["voice"], client=client)
