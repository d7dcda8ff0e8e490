"""Execution of a fired job.

``ExecutionRunner.run`` never raises: sweep failures become a failed run and
persistence failures are logged, so the job's timer keeps firing either way.
"""

from __future__ import annotations

import json
from typing import Callable

from ..checker.base import Checker
from ..core.errors import PersistenceError, SchedulingInconsistency
from ..core.utils import get_logger, now_ms
from ..cron.expression import DEFAULT_LOOKAHEAD_MINUTES, next_run_time
from ..models import (
    CRON_JOB_SOURCE,
    CronJob,
    ExecutionHistoryEntry,
    GlobalExecutionEntry,
    RunStatus,
)
from ..storage.base import JobStore

logger = get_logger(__name__)


class ExecutionRunner:
    """Runs the health-check sweep for a job and records the outcome.

    Usage:
        runner = ExecutionRunner(store, HttpChecker(config.checker))
        await runner.run(job_id)
    """

    def __init__(
        self,
        store: JobStore,
        checker: Checker,
        clock: Callable[[], int] = now_ms,
        lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
    ):
        """Initialize runner.

        Args:
            store: Durable job store.
            checker: Sweep collaborator invoked on every firing.
            clock: Epoch-millisecond clock.
            lookahead_minutes: Window for next-run lookup.
        """
        self.store = store
        self.checker = checker
        self.clock = clock
        self.lookahead_minutes = lookahead_minutes

    async def _load_job(self, job_id: str) -> CronJob:
        job = await self.store.get(job_id)
        if job is None:
            raise SchedulingInconsistency(f"Timer fired for missing job '{job_id}'")
        return job

    async def _sweep(self) -> tuple[RunStatus, str | None, int]:
        """Invoke the checker.

        Returns:
            (status, error summary, targets checked)
        """
        try:
            result = await self.checker.sweep()
        except Exception as e:
            logger.warning("sweep_raised", error=str(e), error_type=type(e).__name__)
            return RunStatus.FAILURE, str(e) or type(e).__name__, 0

        if result.ok:
            return RunStatus.SUCCESS, None, result.targets_checked

        summary = json.dumps([r.to_dict() for r in result.failed_targets])
        return RunStatus.FAILURE, summary, result.targets_checked

    async def run(self, job_id: str) -> ExecutionHistoryEntry | None:
        """Execute a job once.

        Args:
            job_id: Job whose timer fired.

        Returns:
            The recorded history entry, or None if the run was aborted
            because the job no longer exists or could not be loaded.
        """
        try:
            job = await self._load_job(job_id)
        except SchedulingInconsistency as e:
            # Deleted after the timer fired but before cancellation landed
            logger.debug("run_aborted", job_id=job_id, reason=str(e))
            return None
        except PersistenceError as e:
            logger.error("run_load_failed", job_id=job_id, error=str(e))
            return None

        start_time = self.clock()
        logger.info("job_run_started", job_id=job_id, name=job.name)

        status, error, targets_checked = await self._sweep()
        duration = self.clock() - start_time

        # A failed run must not stop future scheduling
        next_run = next_run_time(
            job.cron_expression, now=self.clock(), lookahead_minutes=self.lookahead_minutes
        )

        entry = ExecutionHistoryEntry(
            timestamp=start_time,
            duration=duration,
            status=status,
            error=error,
        )
        ledger_entry = GlobalExecutionEntry(
            timestamp=start_time,
            execution_time=duration,
            targets_checked=targets_checked,
            status=status,
            source=CRON_JOB_SOURCE,
            run_id=job_id,
            error=error,
        )

        try:
            await self._record(job_id, entry, ledger_entry, next_run)
        except PersistenceError as e:
            logger.error("run_persist_failed", job_id=job_id, error=str(e))

        logger.info(
            "job_run_finished",
            job_id=job_id,
            status=status.value,
            duration_ms=duration,
            next_run=next_run,
        )
        return entry

    async def _record(
        self,
        job_id: str,
        entry: ExecutionHistoryEntry,
        ledger_entry: GlobalExecutionEntry,
        next_run: int | None,
    ) -> None:
        """Write run results onto the freshest copy of the job record.

        Not serialised against concurrent updates: last writer wins.
        """
        current = await self.store.get(job_id)
        if current is None:
            logger.info("job_deleted_during_run", job_id=job_id)
        else:
            updated = current.with_changes(
                last_run=entry.timestamp,
                last_run_duration=entry.duration,
                last_run_status=entry.status,
                last_run_error=entry.error if entry.status == RunStatus.FAILURE else None,
                next_run=next_run,
                updated_at=self.clock(),
            )
            await self.store.put(job_id, updated)
            await self.store.push_history(job_id, entry)

        await self.store.push_global_execution(ledger_entry)
