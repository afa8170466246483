#!/usr/bin/env python3
"""
Terminal client for the knowledge gateway.

Usage:
    python scripts/luna_cli.py note "Call the dentist on Monday" [--enhance]
    python scripts/luna_cli.py voice recording.wav [--enhance] [--parent NOTE_ID]
    python scripts/luna_cli.py voice --record [--duration 30] [--enhance]
    python scripts/luna_cli.py search "meeting"

The gateway URL comes from GATEWAY_URL (or --api-url). Recording from the
microphone needs the optional PyAudio dependency (pip install '.[record]').
"""

import argparse
import math
import os
import sys
import tempfile
import wave
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx  # type: ignore

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from core.config import get_settings  # noqa: E402
from core.logger import configure_script_logging, logger  # noqa: E402

# Voice notes wait on transcription, title and note store in sequence
NOTE_TIMEOUT = 60.0
VOICE_TIMEOUT = 300.0
SEARCH_TIMEOUT = 15.0
PREVIEW_CHARS = 100

# Microphone capture: 16 kHz mono int16, what the speech model wants anyway
RECORD_SAMPLE_RATE = 16000
RECORD_CHANNELS = 1
RECORD_CHUNK = 1024
DEFAULT_RECORD_SECONDS = 30


def _preview(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def _error_text(response: httpx.Response) -> str:
    try:
        return response.json().get("error", response.text)
    except ValueError:
        return response.text


def create_text_note(
    client: httpx.Client, content: str, enhance: bool = False, parent: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """POST /quick-note as JSON. Returns the response body, or None on failure."""
    payload: Dict[str, Any] = {"content": content, "enhance": enhance}
    if parent:
        payload["parent_note_id"] = parent

    try:
        response = client.post("/quick-note", json=payload, timeout=NOTE_TIMEOUT)
    except httpx.HTTPError as e:
        logger.error(f"Gateway unreachable: {e}")
        return None

    if response.status_code != 200:
        logger.error(f"Failed to create note: {_error_text(response)}")
        return None

    result = response.json()
    logger.success("Note created successfully")
    logger.info(f"Title: {result.get('title', 'Unknown')}")
    if result.get("enhanced"):
        logger.info(f"Enhanced content: {_preview(result.get('content', ''), 200)}")
    return result


def create_voice_note(
    client: httpx.Client, audio_path: Path, enhance: bool = False, parent: Optional[str] = None
) -> Optional[Dict[str, Any]]:
    """POST /quick-note as multipart. Returns the response body, or None on failure."""
    if not audio_path.is_file():
        logger.error(f"File not found: {audio_path}")
        return None

    size_mb = audio_path.stat().st_size / (1024 * 1024)
    logger.info(f"Uploading {audio_path.name} ({size_mb:.2f} MB)")

    data = {"enhance": str(enhance).lower()}
    if parent:
        data["parent_note_id"] = parent

    try:
        with open(audio_path, "rb") as f:
            response = client.post(
                "/quick-note",
                files={"audio": (audio_path.name, f)},
                data=data,
                timeout=VOICE_TIMEOUT,
            )
    except httpx.HTTPError as e:
        logger.error(f"Gateway unreachable: {e}")
        return None

    if response.status_code != 200:
        logger.error(f"Failed to create note: {_error_text(response)}")
        return None

    result = response.json()
    logger.success("Note created successfully")
    logger.info(f"Title: {result.get('title', 'Unknown')}")
    logger.info(f"Transcribed: {_preview(result.get('transcribed_text', ''))}")
    return result


def record_audio(
    output_path: Path,
    duration: float = DEFAULT_RECORD_SECONDS,
    sample_rate: int = RECORD_SAMPLE_RATE,
    channels: int = RECORD_CHANNELS,
    pyaudio_module: Any = None,
) -> Path:
    """
    Record from the default microphone into a WAV file.

    Stops after ``duration`` seconds or on Ctrl+C, keeping what was captured
    so far.

    Args:
        output_path: WAV file to write
        duration: Maximum recording length in seconds
        sample_rate: Capture rate in Hz
        channels: Number of input channels
        pyaudio_module: The pyaudio module; imported when not given

    Returns:
        output_path
    """
    if pyaudio_module is None:
        import pyaudio as pyaudio_module  # type: ignore

    sample_format = pyaudio_module.paInt16
    audio = pyaudio_module.PyAudio()
    frames: List[bytes] = []

    try:
        stream = audio.open(
            format=sample_format,
            channels=channels,
            rate=sample_rate,
            input=True,
            frames_per_buffer=RECORD_CHUNK,
        )
        logger.info(f"Recording for {duration} seconds... Press Ctrl+C to stop early")
        try:
            for _ in range(math.ceil(sample_rate * duration / RECORD_CHUNK)):
                frames.append(stream.read(RECORD_CHUNK, exception_on_overflow=False))
        except KeyboardInterrupt:
            logger.info("Recording stopped by user")
        finally:
            stream.stop_stream()
            stream.close()

        sample_width = audio.get_sample_size(sample_format)
    finally:
        audio.terminate()

    with wave.open(str(output_path), "wb") as wav:
        wav.setnchannels(channels)
        wav.setsampwidth(sample_width)
        wav.setframerate(sample_rate)
        wav.writeframes(b"".join(frames))

    logger.info(f"Recorded {len(frames) * RECORD_CHUNK / sample_rate:.1f}s of audio")
    return output_path


def record_voice_note(
    client: httpx.Client,
    duration: float = DEFAULT_RECORD_SECONDS,
    enhance: bool = False,
    parent: Optional[str] = None,
) -> Optional[Dict[str, Any]]:
    """Record from the microphone and upload as a voice note. The WAV is always removed."""
    fd, name = tempfile.mkstemp(prefix="luna_voice_", suffix=".wav")
    os.close(fd)
    audio_path = Path(name)

    try:
        try:
            record_audio(audio_path, duration)
        except (ImportError, OSError) as e:
            logger.error(f"Recording failed: {e}")
            return None
        return create_voice_note(client, audio_path, enhance, parent)
    finally:
        audio_path.unlink(missing_ok=True)


def search_notes(client: httpx.Client, query: str) -> List[Dict[str, Any]]:
    """
    GET /search.

    Any failure is reported as no results; the reason goes to the log only.
    """
    try:
        response = client.get("/search", params={"q": query}, timeout=SEARCH_TIMEOUT)
        response.raise_for_status()
        results = response.json().get("results", [])
    except (httpx.HTTPError, ValueError, AttributeError) as e:
        logger.warning(f"Search failed, showing no results: {e}")
        return []

    if not isinstance(results, list):
        return []

    if not results:
        logger.info(f"No notes found for '{query}'")
    for index, note in enumerate(results, start=1):
        title = note.get("title", "(untitled)") if isinstance(note, dict) else str(note)
        logger.info(f"{index}. {title}")
    return results


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Capture and search notes")
    parser.add_argument(
        "--api-url", default=settings.gateway_url, help="Gateway base URL"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    note = subparsers.add_parser("note", help="Create a quick text note")
    note.add_argument("content", help="Note content")
    note.add_argument("--enhance", action="store_true", help="Enhance note with AI")
    note.add_argument("--parent", help="Parent note id")

    voice = subparsers.add_parser(
        "voice", help="Create a note from an audio file or a microphone recording"
    )
    voice.add_argument("file", type=Path, nargs="?", help="Audio file (wav, mp3, m4a, ...)")
    voice.add_argument("--record", action="store_true", help="Record from the microphone")
    voice.add_argument(
        "--duration",
        type=float,
        default=DEFAULT_RECORD_SECONDS,
        help="Recording duration in seconds (Ctrl+C stops early)",
    )
    voice.add_argument("--enhance", action="store_true", help="Enhance note with AI")
    voice.add_argument("--parent", help="Parent note id")

    search = subparsers.add_parser("search", help="Search notes")
    search.add_argument("query", help="Search text")

    return parser


def main(argv: Optional[List[str]] = None, client: Optional[httpx.Client] = None) -> int:
    settings = get_settings()
    configure_script_logging(level=settings.script_log_level)

    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "voice" and (args.file is None) == (not args.record):
        parser.error("voice needs either an audio file or --record")

    owns_client = client is None
    client = client or httpx.Client(base_url=args.api_url)

    try:
        if args.command == "note":
            ok = create_text_note(client, args.content, args.enhance, args.parent) is not None
        elif args.command == "voice" and args.record:
            ok = record_voice_note(client, args.duration, args.enhance, args.parent) is not None
        elif args.command == "voice":
            ok = create_voice_note(client, args.file, args.enhance, args.parent) is not None
        else:
            search_notes(client, args.query)
            ok = True
    finally:
        if owns_client:
            client.close()

    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
