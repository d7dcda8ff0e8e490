"""Core utilities, configuration and error types."""

from .config import Config, load_config
from .errors import (
    CronwatchError,
    ExecutionError,
    NotFoundError,
    PersistenceError,
    SchedulingInconsistency,
    ValidationError,
)
from .utils import setup_logging

__all__ = [
    "Config",
    "CronwatchError",
    "ExecutionError",
    "NotFoundError",
    "PersistenceError",
    "SchedulingInconsistency",
    "ValidationError",
    "load_config",
    "setup_logging",
]
