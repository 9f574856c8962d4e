"""Structured logging configuration for the Clarity Snapshot service."""

import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any


class StructuredFormatter(logging.Formatter):
    """JSON-like structured log formatter."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured output."""
        log_data = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "message": record.getMessage(),
        }

        # Add request_id if present in extra
        if hasattr(record, "request_id"):
            log_data["request_id"] = record.request_id

        # Add any other extra fields
        if hasattr(record, "extra_data"):
            log_data.update(record.extra_data)

        # Format as key=value pairs for readability
        parts = [f"{k}={v}" for k, v in log_data.items()]
        return " ".join(parts)


def get_logger(name: str) -> logging.Logger:
    """
    Get a configured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Only configure if not already configured
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)

        # Set level based on environment
        try:
            from app.core.config import get_settings

            settings = get_settings()
            if settings.SNAPSHOT_ENV == "dev":
                logger.setLevel(logging.DEBUG)
            else:
                logger.setLevel(logging.INFO)
        except Exception:
            # Default to INFO if settings not available
            logger.setLevel(logging.INFO)

    return logger


def log_with_context(logger: logging.Logger, level: int, msg: str, **kwargs: Any) -> None:
    """
    Log with additional context fields.

    Args:
        logger: Logger instance
        level: Log level (logging.INFO, etc.)
        msg: Log message
        **kwargs: Additional context fields (e.g., request_id)
    """
    extra = {"extra_data": kwargs}
    if "request_id" in kwargs:
        extra["request_id"] = kwargs.pop("request_id")
        extra["extra_data"] = kwargs

    logger.log(level, msg, extra=extra)


def elapsed_ms(start: float) -> int:
    """Milliseconds elapsed since a time.perf_counter() reading."""
    return int((time.perf_counter() - start) * 1000)


@contextmanager
def log_stage(logger: logging.Logger, stage: str, **kwargs: Any) -> Iterator[dict[str, Any]]:
    """
    Time a pipeline stage and log its duration on exit.

    Yields a mutable dict; anything the caller puts in it is logged with the
    stage line. The final duration is stored under ``duration_ms``.

    Example:
        with log_stage(logger, "scoring", request_id=rid) as stage_info:
            stage_info["archetype"] = result.top_archetype.value
    """
    start = time.perf_counter()
    stage_info: dict[str, Any] = {}
    try:
        yield stage_info
    finally:
        stage_info["duration_ms"] = elapsed_ms(start)
        log_with_context(
            logger,
            logging.DEBUG,
            f"Stage {stage} finished",
            stage=stage,
            **kwargs,
            **stage_info,
        )
