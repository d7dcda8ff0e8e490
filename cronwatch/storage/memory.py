"""In-process job store.

Keeps records as serialised dictionaries so callers never share mutable
state with the store, mirroring what a real backend returns.
"""

from __future__ import annotations

from typing import Any

from ..core.errors import PersistenceError
from ..models import CronJob, ExecutionHistoryEntry, GlobalExecutionEntry
from .base import GLOBAL_HISTORY_LIMIT, HISTORY_LIMIT, JobStore


class MemoryJobStore(JobStore):
    """Dictionary-backed store for tests and ephemeral runs.

    Usage:
        store = MemoryJobStore()
        await store.put(job.id, job)

        # Simulate an unreachable backend
        store.fail_writes = True
    """

    def __init__(
        self,
        history_limit: int = HISTORY_LIMIT,
        global_history_limit: int = GLOBAL_HISTORY_LIMIT,
    ):
        super().__init__(history_limit, global_history_limit)
        self._jobs: dict[str, dict[str, Any]] = {}
        self._index: set[str] = set()
        self._history: dict[str, list[dict[str, Any]]] = {}
        self._global: list[dict[str, Any]] = []
        self.fail_reads = False
        self.fail_writes = False

    def _check_read(self) -> None:
        if self.fail_reads:
            raise PersistenceError("Store unavailable (read)")

    def _check_write(self) -> None:
        if self.fail_writes:
            raise PersistenceError("Store unavailable (write)")

    async def get(self, job_id: str) -> CronJob | None:
        self._check_read()
        data = self._jobs.get(job_id)
        return CronJob.from_dict(data) if data else None

    async def put(self, job_id: str, job: CronJob) -> None:
        self._check_write()
        self._jobs[job_id] = job.to_dict()
        self._index.add(job_id)

    async def delete(self, job_id: str) -> None:
        self._check_write()
        self._jobs.pop(job_id, None)
        self._index.discard(job_id)

    async def list_ids(self) -> set[str]:
        self._check_read()
        return set(self._index)

    async def push_history(self, job_id: str, entry: ExecutionHistoryEntry) -> None:
        self._check_write()
        history = self._history.setdefault(job_id, [])
        history.insert(0, entry.to_dict())
        del history[self.history_limit:]

    async def get_history(
        self, job_id: str, limit: int = 20
    ) -> list[ExecutionHistoryEntry]:
        self._check_read()
        history = self._history.get(job_id, [])
        return [ExecutionHistoryEntry.from_dict(e) for e in history[:max(limit, 0)]]

    async def delete_history(self, job_id: str) -> None:
        self._check_write()
        self._history.pop(job_id, None)

    async def push_global_execution(self, entry: GlobalExecutionEntry) -> None:
        self._check_write()
        self._global.insert(0, entry.to_dict())
        del self._global[self.global_history_limit:]

    async def get_global_executions(
        self, limit: int = 100
    ) -> list[GlobalExecutionEntry]:
        self._check_read()
        return [GlobalExecutionEntry.from_dict(e) for e in self._global[:max(limit, 0)]]
