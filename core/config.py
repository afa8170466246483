"""
Configuration management using Pydantic Settings.
Follows Single Responsibility Principle - only handles configuration.

Settings are frozen: one instance is built at startup and handed to each
component constructor. Pipeline code never reads the environment itself.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field  # type: ignore
from pydantic_settings import BaseSettings, SettingsConfigDict  # type: ignore


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        protected_namespaces=(),  # Allow 'model_*' fields
    )

    # Application
    app_name: str = Field(default="Luna Knowledge Gateway", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")

    # API Service
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=5000, alias="API_PORT")
    api_reload: bool = Field(default=False, alias="API_RELOAD")
    max_upload_size_mb: int = Field(default=25, alias="MAX_UPLOAD_SIZE_MB")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # Storage (temporary decode buffers)
    temp_dir: str = Field(default="/tmp/luna_audio", alias="TEMP_DIR")

    # Speech-to-text (faster-whisper)
    # Larger models are more accurate but slower: tiny < base < small < medium < large-v3
    whisper_model_size: str = Field(default="tiny", alias="WHISPER_MODEL")
    whisper_device: str = Field(default="cpu", alias="WHISPER_DEVICE")
    whisper_compute_type: str = Field(default="int8", alias="WHISPER_COMPUTE_TYPE")
    # Empty = let the model detect the language
    whisper_language: Optional[str] = Field(default=None, alias="WHISPER_LANGUAGE")
    whisper_beam_size: int = Field(default=5, alias="WHISPER_BEAM_SIZE")
    whisper_cpu_threads: int = Field(
        default=0, alias="WHISPER_CPU_THREADS"
    )  # 0 = library default
    # Admission gate for the shared model: 1 = serialized (FIFO), 0 = no gate
    whisper_max_concurrent_transcriptions: int = Field(
        default=1, alias="WHISPER_MAX_CONCURRENT_TRANSCRIPTIONS"
    )
    transcribe_timeout_seconds: int = Field(
        default=120, alias="TRANSCRIBE_TIMEOUT_SECONDS"
    )

    # LLM backend (Ollama)
    ollama_url: str = Field(default="http://localhost:11434", alias="OLLAMA_URL")
    ollama_model: str = Field(default="llama3.2:1b", alias="OLLAMA_MODEL")
    # Enhancement gates note creation, so it gets the shorter timeout
    enhance_timeout_seconds: float = Field(default=30.0, alias="ENHANCE_TIMEOUT_SECONDS")
    chat_timeout_seconds: float = Field(default=60.0, alias="CHAT_TIMEOUT_SECONDS")

    # Note store (Trilium)
    trilium_url: str = Field(default="http://localhost:8080", alias="TRILIUM_URL")
    note_store_timeout_seconds: float = Field(
        default=15.0, alias="NOTE_STORE_TIMEOUT_SECONDS"
    )
    default_parent_note_id: str = Field(default="root", alias="DEFAULT_PARENT_NOTE_ID")

    # Pipeline
    pipeline_timeout_seconds: float = Field(
        default=240.0, alias="PIPELINE_TIMEOUT_SECONDS"
    )
    title_max_length: int = Field(default=100, alias="TITLE_MAX_LENGTH")
    untitled_note_title: str = Field(default="Untitled Note", alias="UNTITLED_NOTE_TITLE")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    # Log format: "console" (colored, human-readable) or "json" (for log aggregation)
    log_format: str = Field(default="console", alias="LOG_FORMAT")
    # Enable/disable file logging (logs/app.log and logs/error.log)
    log_file_enabled: bool = Field(default=True, alias="LOG_FILE_ENABLED")
    # Log level for the terminal client in scripts/
    script_log_level: str = Field(default="INFO", alias="SCRIPT_LOG_LEVEL")

    # Terminal client
    gateway_url: str = Field(default="http://localhost:9878", alias="GATEWAY_URL")

    def validate_timeouts(self) -> bool:
        """
        Validate the pipeline deadline leaves room for its slowest leg.

        Returns:
            True if valid, raises ValueError if invalid
        """
        slowest_leg = max(
            self.transcribe_timeout_seconds,
            self.enhance_timeout_seconds,
            self.note_store_timeout_seconds,
        )
        if self.pipeline_timeout_seconds <= slowest_leg:
            raise ValueError(
                f"pipeline_timeout_seconds ({self.pipeline_timeout_seconds}s) must be "
                f"greater than the slowest leg timeout ({slowest_leg}s)"
            )
        return True

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Using lru_cache to ensure single instance (Singleton pattern).
    """
    return Settings()
