"""Cron expression parsing, matching and next-run lookup."""

from .expression import (
    DEFAULT_LOOKAHEAD_MINUTES,
    CronExpression,
    describe,
    matches,
    next_run_time,
    validate,
)

__all__ = [
    "DEFAULT_LOOKAHEAD_MINUTES",
    "CronExpression",
    "describe",
    "matches",
    "next_run_time",
    "validate",
]
