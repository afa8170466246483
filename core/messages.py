"""Centralized error and log message templates for the gateway."""


class ErrorMessages:
    """User-facing error messages, one per endpoint failure."""

    # Input errors
    NO_AUDIO = "No audio file provided"
    NO_TEXT = "No text provided"
    NO_PROMPT = "No prompt provided"
    NO_QUERY = "Query parameter required"
    NOTE_FIELDS_REQUIRED = "Title and content are required"
    CONTENT_REQUIRED = "Content is required"
    AUDIO_TOO_LARGE = "Audio file too large: {actual:.2f}MB > {max}MB"
    AUDIO_EMPTY = "Audio file is empty"
    NO_SPEECH = "No speech detected in audio"

    # Speech-to-text
    MODEL_NOT_AVAILABLE = "Speech-to-text model not available"
    TRANSCRIPTION_FAILED = "Failed to transcribe audio"
    DECODE_FAILED = "Could not decode audio ({encoding}): {error}"
    ENGINE_FAILED = "Speech model failed: {error}"
    ENGINE_TIMEOUT = "Speech model timed out after {timeout}s"

    # Pipelines
    CREATE_NOTE_FAILED = "Failed to create note"
    VOICE_NOTE_FAILED = "Failed to process voice note"
    QUICK_NOTE_FAILED = "Failed to create quick note"
    SEARCH_FAILED = "Search failed"
    CHAT_FAILED = "Failed to get AI response"
    PIPELINE_TIMEOUT = "Pipeline '{pipeline}' exceeded {timeout}s at stage '{stage}'"

    # Backends
    NOTE_STORE_UNREACHABLE = "Note store unreachable: {error}"
    NOTE_STORE_REJECTED = "Note store rejected request: HTTP {status_code} {body}"
    NOTE_STORE_MALFORMED = "Note store returned a malformed response: {error}"
    LLM_UNREACHABLE = "LLM backend unreachable: {error}"
    LLM_REJECTED = "LLM backend returned HTTP {status_code}"
    LLM_MALFORMED = "LLM backend returned a malformed response: {error}"


class LogMessages:
    """Centralized log message templates."""

    # Speech model
    MODEL_LOADING = "Loading speech model (model={model}, device={device}, compute={compute})"
    MODEL_LOADED = "Speech model loaded (model={model}, duration={duration:.2f}s)"
    MODEL_LOAD_FAILED = "Speech model failed to load, transcription disabled: {error}"
    MODEL_RELEASED = "Speech model released (model={model})"
    GATE_CONFIGURED = "Transcription admission gate: {limit}"

    # Audio processing
    AUDIO_STATS = (
        "Audio stats: max={max:.4f}, mean={mean:.4f}, std={std:.4f}, samples={samples}"
    )
    AUDIO_LOADED = (
        "Audio loaded: duration={duration:.2f}s, samples={samples}, "
        "sample_rate={sample_rate}Hz, channels=mono"
    )
    AUDIO_SUSPICIOUS = "Audio validation warning: {reason}. Transcript may be empty."
    AUDIO_NORMALIZE = "Audio data exceeds [-1, 1] range, normalizing (max={max:.2f})"
    TRANSCRIBED = "Transcribed clip {clip_id}: {chars} chars in {duration:.2f}s"

    # Backends
    HTTP_CLIENT_CREATED = "Created HTTP client for {backend} ({base_url})"
    ENHANCE_DONE = "Enhancement '{task}' succeeded: {before} -> {after} chars in {duration:.2f}s"
    ENHANCE_FALLBACK = "Enhancement '{task}' failed, passing input through: {error}"
    NOTE_CREATED = "Created note '{title}' under parent '{parent}'"
    NOTE_REPLY_UNPARSED = "Note '{title}' stored; reply had {errors} invalid field(s), rebuilt from request"
    SEARCH_DONE = "Search '{query}' returned {count} notes"

    # Pipelines
    PIPELINE_START = "Pipeline '{pipeline}' started"
    PIPELINE_STAGE = "Pipeline '{pipeline}' reached stage '{stage}'"
    PIPELINE_DONE = "Pipeline '{pipeline}' completed in {duration:.2f}s (stages={stages})"
    PIPELINE_FAILED = "Pipeline '{pipeline}' failed at stage '{stage}': {error}"
    LEG_ABANDONED = "Request abandoned; discarding result of in-flight {leg} call"
    LEG_DISCARDED_FAILURE = "Abandoned {leg} call failed: {error}"
    WRITE_AFTER_ABANDON = "Note write finished after its request was abandoned"
    TITLE_FALLBACK = "Title generation failed, using placeholder '{title}'"
