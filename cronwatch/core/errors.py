"""Error types shared across the scheduler.

Lifecycle calls report unknown job ids through ``None``/``False`` results;
``NotFoundError`` exists for outer layers (the CLI) that prefer raising.
"""

from __future__ import annotations


class CronwatchError(Exception):
    """Base class for all cronwatch errors."""


class ValidationError(CronwatchError):
    """Malformed cron expression or missing required field."""


class NotFoundError(CronwatchError):
    """Unknown job id."""

    def __init__(self, job_id: str):
        super().__init__(f"Job '{job_id}' not found")
        self.job_id = job_id


class PersistenceError(CronwatchError):
    """Durable store unreachable or a read/write failed."""


class ExecutionError(CronwatchError):
    """The health-check sweep failed or could not be performed."""


class SchedulingInconsistency(CronwatchError):
    """A timer fired for a job that no longer exists in the store."""
