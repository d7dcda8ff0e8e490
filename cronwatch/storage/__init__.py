"""Storage module for job persistence.

Defines the ``JobStore`` contract and its SQLite and in-memory backends.
"""

from .base import GLOBAL_HISTORY_LIMIT, HISTORY_LIMIT, JobStore
from .database import SQLiteJobStore, store_session
from .memory import MemoryJobStore

__all__ = [
    "GLOBAL_HISTORY_LIMIT",
    "HISTORY_LIMIT",
    "JobStore",
    "MemoryJobStore",
    "SQLiteJobStore",
    "store_session",
]
