"""
Whisper Transcriber - speech-to-text over the shared faster-whisper model.

Implements ITranscriber interface for dependency injection.

Uploaded clips are written to a temp file, decoded to 16 kHz mono float32
with librosa, validated, and handed to the model on a dedicated thread
pool. Access to the model goes through an admission gate sized by
WHISPER_MAX_CONCURRENT_TRANSCRIPTIONS (1 = serialized, 0 = no gate).
"""

import asyncio
import os
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np  # type: ignore

from core.config import Settings
from core.constants import (
    AUDIO_NOISE_THRESHOLD,
    AUDIO_SILENCE_THRESHOLD,
    DEFAULT_AUDIO_SUFFIX,
    SUPPORTED_FORMATS,
    WHISPER_SAMPLE_RATE,
)
from core.errors import (
    AudioDecodeError,
    EngineFailureError,
    ModelUnavailableError,
    TranscriptionError,
)
from core.logger import logger
from core.messages import ErrorMessages, LogMessages
from infrastructure.whisper.model_loader import SpeechModelHandle
from interfaces.transcriber import ITranscriber
from models.domain import AudioClip, TranscriptionResult


class WhisperTranscriber(ITranscriber):
    """
    Transcription adapter for one loaded speech model.

    The model handle is owned by the application and passed in; the
    adapter never loads or reloads a model itself.
    """

    def __init__(self, handle: SpeechModelHandle, settings: Settings):
        """
        Args:
            handle: Process-wide speech model handle
            settings: Gateway settings (temp dir, language, gate size, timeout)
        """
        self._handle = handle
        self.temp_dir = Path(settings.temp_dir)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

        self.language = settings.whisper_language or None
        self.beam_size = settings.whisper_beam_size
        self.timeout = settings.transcribe_timeout_seconds

        self.max_concurrent = settings.whisper_max_concurrent_transcriptions
        # asyncio.Semaphore wakes waiters in arrival order
        self._gate: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(self.max_concurrent) if self.max_concurrent > 0 else None
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_concurrent if self.max_concurrent > 0 else 4,
            thread_name_prefix="transcribe-",
        )

        if self._gate is not None:
            gate_info = f"max {self.max_concurrent} in flight"
        else:
            gate_info = "disabled (engine is concurrency-safe)"
        logger.info(LogMessages.GATE_CONFIGURED.format(limit=gate_info))

    @property
    def is_available(self) -> bool:
        return self._handle.is_loaded

    def describe(self) -> Dict[str, Any]:
        info = self._handle.describe()
        info["max_concurrent_transcriptions"] = self.max_concurrent
        return info

    async def transcribe(self, clip: AudioClip) -> TranscriptionResult:
        """
        Transcribe a clip. Implements ITranscriber.transcribe().

        The engine call keeps its admission slot until the worker thread
        actually finishes, even if the caller stops waiting (timeout or
        cancellation), so the gate never admits a second call early.
        """
        if not self._handle.is_loaded:
            raise ModelUnavailableError(
                ErrorMessages.MODEL_NOT_AVAILABLE, detail=self._handle.error
            )

        if self._gate is not None:
            await self._gate.acquire()

        loop = asyncio.get_running_loop()
        start = time.time()
        try:
            future = loop.run_in_executor(self._executor, self._transcribe_sync, clip)
        except BaseException:
            self._release_slot()
            raise
        future.add_done_callback(self._on_engine_done)

        try:
            text = await asyncio.wait_for(asyncio.shield(future), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise EngineFailureError(
                ErrorMessages.ENGINE_TIMEOUT.format(timeout=self.timeout)
            ) from e

        logger.info(
            LogMessages.TRANSCRIBED.format(
                clip_id=clip.clip_id, chars=len(text), duration=time.time() - start
            )
        )
        return TranscriptionResult(text=text, source_clip_id=clip.clip_id)

    def _release_slot(self) -> None:
        if self._gate is not None:
            self._gate.release()

    def _on_engine_done(self, future: "asyncio.Future[str]") -> None:
        self._release_slot()
        # Mark the outcome as retrieved when nobody is waiting any more
        if not future.cancelled():
            future.exception()

    def _transcribe_sync(self, clip: AudioClip) -> str:
        """Worker-thread body: temp file -> samples -> text. Always cleans up."""
        temp_path = self.temp_dir / f"{clip.clip_id}{self._suffix_for(clip)}"
        try:
            try:
                temp_path.write_bytes(clip.data)
            except OSError as e:
                raise EngineFailureError(ErrorMessages.ENGINE_FAILED.format(error=e)) from e
            audio = self._load_audio(temp_path, clip)
            return self._run_model(audio)
        finally:
            if temp_path.exists():
                try:
                    os.remove(temp_path)
                except OSError as e:
                    logger.warning(f"Failed to clean up temp file {temp_path}: {e}")

    @staticmethod
    def _suffix_for(clip: AudioClip) -> str:
        suffix = Path(clip.filename or "").suffix.lower()
        return suffix if suffix in SUPPORTED_FORMATS else DEFAULT_AUDIO_SUFFIX

    def _validate_audio(self, audio_data: np.ndarray) -> tuple[bool, str]:
        """
        Check the samples carry actual content.

        Returns:
            Tuple of (is_valid, reason)
        """
        audio_max = np.abs(audio_data).max()
        audio_std = np.std(audio_data)

        if audio_max < AUDIO_SILENCE_THRESHOLD:
            return False, f"audio is silent (max={audio_max:.4f} < {AUDIO_SILENCE_THRESHOLD})"
        if audio_std < AUDIO_NOISE_THRESHOLD:
            return False, f"audio is constant noise (std={audio_std:.6f} < {AUDIO_NOISE_THRESHOLD})"
        return True, "Audio content valid"

    def _load_audio(self, audio_path: Path, clip: AudioClip) -> np.ndarray:
        """Decode the container into 16 kHz mono float32 samples."""
        import librosa  # type: ignore

        try:
            audio_data, sample_rate = librosa.load(
                str(audio_path),
                sr=WHISPER_SAMPLE_RATE,
                mono=True,
                dtype=np.float32,
            )
        except Exception as e:
            raise AudioDecodeError(
                ErrorMessages.DECODE_FAILED.format(encoding=clip.encoding, error=e)
            ) from e

        if audio_data.size == 0:
            raise AudioDecodeError(ErrorMessages.AUDIO_EMPTY)

        audio_max = float(np.abs(audio_data).max())
        logger.debug(
            LogMessages.AUDIO_STATS.format(
                max=audio_max,
                mean=float(np.abs(audio_data).mean()),
                std=float(np.std(audio_data)),
                samples=len(audio_data),
            )
        )

        is_valid, reason = self._validate_audio(audio_data)
        if not is_valid:
            logger.warning(LogMessages.AUDIO_SUSPICIOUS.format(reason=reason))

        if audio_max > 1.0:
            logger.warning(LogMessages.AUDIO_NORMALIZE.format(max=audio_max))
            audio_data = audio_data / audio_max

        logger.info(
            LogMessages.AUDIO_LOADED.format(
                duration=len(audio_data) / sample_rate,
                samples=len(audio_data),
                sample_rate=sample_rate,
            )
        )
        return audio_data

    def _run_model(self, audio: np.ndarray) -> str:
        model = self._handle.model
        if model is None:
            raise ModelUnavailableError(ErrorMessages.MODEL_NOT_AVAILABLE)

        try:
            segments, _info = model.transcribe(
                audio, language=self.language, beam_size=self.beam_size
            )
            # segments is lazy; decoding happens while iterating
            parts = [segment.text.strip() for segment in segments]
        except TranscriptionError:
            raise
        except Exception as e:
            logger.exception("Speech model failure details:")
            raise EngineFailureError(ErrorMessages.ENGINE_FAILED.format(error=e)) from e

        return " ".join(part for part in parts if part)

    def close(self) -> None:
        self._executor.shutdown(wait=False)
