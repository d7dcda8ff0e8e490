"""Utility functions for cronwatch."""

from __future__ import annotations

import logging
import sys
import time
from datetime import datetime

import structlog


def setup_logging(level: str = "INFO", log_format: str = "console") -> None:
    """Configure structured logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ('console' or 'json').
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(message)s",
        stream=sys.stdout,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance.

    Args:
        name: Logger name (typically __name__).

    Returns:
        Configured logger instance.
    """
    return structlog.get_logger(name)


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert epoch milliseconds to a naive local datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000)


def datetime_to_ms(dt: datetime) -> int:
    """Convert a datetime (naive local or aware) to epoch milliseconds."""
    return int(dt.timestamp() * 1000)


def format_timestamp(timestamp_ms: int | None) -> str:
    """Format epoch milliseconds for display.

    Args:
        timestamp_ms: Timestamp or None.

    Returns:
        Local time as 'YYYY-MM-DD HH:MM:SS', or '-' when unset.
    """
    if timestamp_ms is None:
        return "-"
    return ms_to_datetime(timestamp_ms).strftime("%Y-%m-%d %H:%M:%S")


def format_duration(duration_ms: int | None) -> str:
    """Format a millisecond duration for display."""
    if duration_ms is None:
        return "-"
    if duration_ms < 1000:
        return f"{duration_ms}ms"
    return f"{duration_ms / 1000:.2f}s"
