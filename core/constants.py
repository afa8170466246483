"""Constants for the knowledge gateway."""

from enum import Enum


class PipelineStage(str, Enum):
    """Named pipeline states. No pipeline visits a state twice."""

    RECEIVED = "received"
    TRANSCRIBED = "transcribed"
    TITLED = "titled"
    ENHANCED = "enhanced"
    GENERATED = "generated"
    SEARCHED = "searched"
    PERSISTED = "persisted"
    RESPONDED = "responded"


class PipelineName(str, Enum):
    TRANSCRIBE_ONLY = "transcribe_only"
    ENHANCE_ONLY = "enhance_only"
    CREATE_NOTE = "create_note"
    TEXT_QUICK_NOTE = "text_quick_note"
    VOICE_QUICK_NOTE = "voice_quick_note"
    SEARCH = "search"
    CHAT = "chat"


# Upload extensions accepted as-is; anything else is written as .wav
SUPPORTED_FORMATS = [
    ".wav",
    ".mp3",
    ".m4a",
    ".mp4",
    ".aac",
    ".ogg",
    ".oga",
    ".opus",
    ".flac",
    ".webm",
]
DEFAULT_AUDIO_SUFFIX = ".wav"


# =============================================================================
# Audio Processing Constants
# =============================================================================

# Whisper models expect 16 kHz mono float32
WHISPER_SAMPLE_RATE = 16000

# Audio validation thresholds
AUDIO_SILENCE_THRESHOLD = 0.01  # Max amplitude below this is considered silent
AUDIO_NOISE_THRESHOLD = 0.001  # Std deviation below this is considered constant noise


# =============================================================================
# HTTP Client Constants
# =============================================================================

# Connection pool limits, one pool per backend
HTTP_MAX_KEEPALIVE_CONNECTIONS = 10
HTTP_MAX_CONNECTIONS = 20
HTTP_KEEPALIVE_EXPIRY = 30.0

# Connection setup is bounded separately from the per-call read budget
HTTP_CONNECT_TIMEOUT = 5.0
HTTP_POOL_TIMEOUT = 5.0


# =============================================================================
# Note Store Constants
# =============================================================================

NOTE_CREATE_PATH = "/api/notes"
NOTE_SEARCH_PATH = "/api/notes/search"
NOTE_TYPE_TEXT = "text"

# =============================================================================
# LLM Constants
# =============================================================================

OLLAMA_GENERATE_PATH = "/api/generate"
CHAT_EMPTY_RESPONSE = "No response generated"
