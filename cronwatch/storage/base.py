"""Durable storage contract for jobs and execution ledgers.

The scheduler only talks to storage through this interface. Backends raise
``PersistenceError`` for any failure of the underlying store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import CronJob, ExecutionHistoryEntry, GlobalExecutionEntry

# Ledger bounds
HISTORY_LIMIT = 100
GLOBAL_HISTORY_LIMIT = 1000


class JobStore(ABC):
    """Abstract job store.

    Implementations must keep ``list_ids`` consistent with ``put``/``delete``
    and keep both ledgers newest-first and bounded.
    """

    def __init__(
        self,
        history_limit: int = HISTORY_LIMIT,
        global_history_limit: int = GLOBAL_HISTORY_LIMIT,
    ):
        self.history_limit = history_limit
        self.global_history_limit = global_history_limit

    @abstractmethod
    async def get(self, job_id: str) -> CronJob | None:
        """Load a job record, or None if it does not exist."""

    @abstractmethod
    async def put(self, job_id: str, job: CronJob) -> None:
        """Insert or replace a job record and index its id."""

    @abstractmethod
    async def delete(self, job_id: str) -> None:
        """Remove a job record and its index entry."""

    @abstractmethod
    async def list_ids(self) -> set[str]:
        """Return every indexed job id."""

    @abstractmethod
    async def push_history(self, job_id: str, entry: ExecutionHistoryEntry) -> None:
        """Prepend an entry to a job's history, then truncate to the limit."""

    @abstractmethod
    async def get_history(
        self, job_id: str, limit: int = 20
    ) -> list[ExecutionHistoryEntry]:
        """Return up to ``limit`` history entries, newest first."""

    @abstractmethod
    async def delete_history(self, job_id: str) -> None:
        """Remove a job's history ledger."""

    @abstractmethod
    async def push_global_execution(self, entry: GlobalExecutionEntry) -> None:
        """Prepend an entry to the shared ledger, then truncate to the limit."""

    @abstractmethod
    async def get_global_executions(
        self, limit: int = 100
    ) -> list[GlobalExecutionEntry]:
        """Return up to ``limit`` shared ledger entries, newest first."""

    async def list_jobs(self) -> list[CronJob]:
        """Load every indexed job, skipping ids whose record has vanished."""
        jobs = []
        for job_id in await self.list_ids():
            job = await self.get(job_id)
            if job is not None:
                jobs.append(job)
        return jobs

    async def close(self) -> None:
        """Release backend resources."""
