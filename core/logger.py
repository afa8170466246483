"""
Centralized logging configuration using Loguru.
Follows Single Responsibility Principle - only handles logging setup.

Features:
- Structured logging with Loguru
- Standard library logging interception (uvicorn, httpx, faster-whisper)
- Script logging helper for the terminal client
- JSON logging format option for production
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

from loguru import logger  # type: ignore


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"
SCRIPT_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"


# =============================================================================
# Standard Library Logging Interception
# =============================================================================


class InterceptHandler(logging.Handler):
    """
    Intercept standard library logging and route to Loguru.

    uvicorn, httpx and faster-whisper log through the stdlib; this keeps
    their records in the same sinks and format as the gateway's own logs.
    """

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where logging call originated
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def intercept_standard_logging() -> None:
    """Route Python standard library logging through Loguru."""
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def configure_third_party_loggers() -> None:
    """
    Configure third-party library loggers to reduce noise.

    httpx logs every outbound request at INFO, which would double the
    gateway's own per-leg logging.
    """
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    # faster-whisper reports language detection and VAD at INFO
    logging.getLogger("faster_whisper").setLevel(logging.WARNING)
    logging.getLogger("numba").setLevel(logging.WARNING)

    # Uvicorn loggers - keep at INFO for server events
    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("uvicorn.error").setLevel(logging.INFO)

    logging.getLogger("fastapi").setLevel(logging.INFO)


def _normalize_level(level: Optional[str], default: str = "INFO") -> str:
    level = (level or default).upper()
    return level if level in LOG_LEVELS else default


# =============================================================================
# Script Logging Helper
# =============================================================================


def configure_script_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure logging for standalone scripts.

    Console output only (no file logging).

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: If True, output logs in JSON format

    Example:
        from core.logger import logger, configure_script_logging

        configure_script_logging(level="DEBUG")
        logger.info("Script started")
    """
    logger.remove()
    level = _normalize_level(level)

    if json_format:
        logger.add(sys.stdout, format="{message}", level=level, serialize=True)
    else:
        logger.add(sys.stdout, colorize=True, format=SCRIPT_FORMAT, level=level)

    intercept_standard_logging()
    configure_third_party_loggers()


def format_exception_short(exception: BaseException, context: Optional[str] = None) -> str:
    """
    Format exception to be short and readable.

    Used when a best-effort step absorbs a failure and only a one-line
    warning is wanted, not a traceback.

    Args:
        exception: Exception object
        context: Optional context message

    Returns:
        Short formatted error message

    Example:
        >>> try:
        ...     raise ValueError("Invalid input")
        ... except ValueError as e:
        ...     print(format_exception_short(e, "Generating title"))
        Generating title | ValueError: Invalid input | (pipeline.py:123)
    """
    try:
        exc_type = type(exception).__name__
        exc_message = str(exception)

        # Last frame is where the error was actually raised
        tb = exception.__traceback__
        if tb:
            while tb.tb_next:
                tb = tb.tb_next
            filename = Path(tb.tb_frame.f_code.co_filename).name
            location = f"{filename}:{tb.tb_lineno}"
        else:
            location = "unknown"

        parts = []
        if context:
            parts.append(context)
        parts.append(f"{exc_type}: {exc_message}")
        parts.append(f"({location})")
        return " | ".join(parts)

    except Exception:
        return f"{type(exception).__name__}: {str(exception)}"


# =============================================================================
# JSON Logging Format
# =============================================================================


def serialize_log_record(record: dict) -> str:
    """
    Serialize log record to a flat JSON dictionary.

    Replaces Loguru's nested JSON serialization with a flattened structure
    suitable for log aggregation. Values bound with logger.bind() (for
    example the pipeline name and stage) become top-level keys.

    Args:
        record: Loguru record dictionary

    Returns:
        JSON string representation of the log record
    """
    log_record = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "message": record["message"],
        "module": record["module"],
        "function": record["function"],
        "line": record["line"],
    }

    if record.get("exception"):
        exception = record["exception"]
        log_record["exception"] = {
            "type": exception.type.__name__ if exception.type else "Unknown",
            "message": str(exception.value),
        }

    for key, value in (record.get("extra") or {}).items():
        try:
            json.dumps(value)
            log_record[key] = value
        except (TypeError, OverflowError):
            log_record[key] = str(value)

    # Loguru calls format() on the result: escape braces and color tags
    return (
        json.dumps(log_record).replace("{", "{{").replace("}", "}}").replace("<", "\\<")
        + "\n"
    )


def _add_file_sinks(json_format: bool) -> None:
    log_dir = Path("logs")
    log_dir.mkdir(exist_ok=True)

    suffix = ".json.log" if json_format else ".log"
    file_format = serialize_log_record if json_format else FILE_FORMAT

    for name, level in (("app", "DEBUG"), ("error", "ERROR")):
        logger.add(
            log_dir / f"{name}{suffix}",
            rotation="100 MB",
            retention="30 days",
            compression="zip",
            format=file_format,
            level=level,
            colorize=False,
        )


def _filter_reloader_logs(record) -> bool:
    """Filter out logs from __main__ and __mp_main__ (reloader processes)."""
    return record.get("name", "") not in ("__main__", "__mp_main__")


def setup_logger() -> None:
    """
    Configure logger handlers for the gateway.

    Only configures once even if called multiple times.
    Supports both console (colored) and JSON formats based on LOG_FORMAT.
    """
    from .config import get_settings

    settings = get_settings()

    if settings.log_level:
        log_level = _normalize_level(settings.log_level)
    else:
        log_level = "DEBUG" if settings.debug else "INFO"

    # Already configured by a previous import
    if len(logger._core.handlers.values()) >= 3:
        return

    logger.remove()

    json_format = settings.log_format.lower() == "json"
    if json_format:
        logger.add(
            sys.stdout,
            format=serialize_log_record,
            level=log_level,
            colorize=False,
        )
    else:
        logger.add(
            sys.stdout,
            colorize=True,
            format=CONSOLE_FORMAT,
            level=log_level,
            filter=_filter_reloader_logs,
        )

    if settings.log_file_enabled:
        _add_file_sinks(json_format)

    intercept_standard_logging()
    configure_third_party_loggers()


# Configure logger on module import
setup_logger()

__all__ = [
    "logger",
    "format_exception_short",
    "configure_script_logging",
    "configure_third_party_loggers",
    "intercept_standard_logging",
    "serialize_log_record",
    "setup_logger",
    "InterceptHandler",
]
