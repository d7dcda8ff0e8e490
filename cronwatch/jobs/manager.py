"""Job lifecycle management.

The public surface of the scheduler: create, update, delete, start, stop
and read jobs. Unknown ids are reported as None/False; malformed input
raises ``ValidationError``; store failures propagate as
``PersistenceError``.
"""

from __future__ import annotations

from typing import Any, Callable

from ..checker.base import Checker
from ..core.config import SchedulerConfig
from ..core.errors import ValidationError
from ..core.utils import get_logger, now_ms
from ..cron.expression import validate as validate_expression
from ..cron.expression import next_run_time
from ..models import (
    CronJob,
    ExecutionHistoryEntry,
    GlobalExecutionEntry,
    JobStatus,
    generate_job_id,
)
from ..scheduler.runner import ExecutionRunner
from ..scheduler.scheduler import JobScheduler
from ..scheduler.timers import TimerBackend
from ..storage.base import JobStore

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset({"name", "description", "cron_expression", "enabled"})


def _require_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Job name is required")
    return name.strip()


def _require_expression(expression: Any) -> str:
    if not isinstance(expression, str) or not expression.strip():
        raise ValidationError("Cron expression is required")
    expression = expression.strip()
    if not validate_expression(expression):
        raise ValidationError(f"Invalid cron expression: {expression!r}")
    return expression


class JobLifecycleManager:
    """Create, change and inspect scheduled jobs.

    Usage:
        manager = create_manager(store, checker)
        await manager.initialize()

        job = await manager.create_job("Uptime sweep", "*/5 * * * *")
        await manager.update_job(job.id, cron_expression="0 * * * *")
        history = await manager.get_history(job.id, limit=10)
    """

    def __init__(
        self,
        store: JobStore,
        scheduler: JobScheduler,
        clock: Callable[[], int] = now_ms,
        lookahead_minutes: int | None = None,
    ):
        """Initialize manager.

        Args:
            store: Durable job store.
            scheduler: Scheduler owning the job timers.
            clock: Epoch-millisecond clock.
            lookahead_minutes: Window for next-run lookup (scheduler's by default).
        """
        self.store = store
        self.scheduler = scheduler
        self.clock = clock
        self.lookahead_minutes = lookahead_minutes or scheduler.lookahead_minutes

    def _next_run(self, expression: str) -> int | None:
        return next_run_time(
            expression, now=self.clock(), lookahead_minutes=self.lookahead_minutes
        )

    async def initialize(self) -> list[str]:
        """Rebuild timers from durable state. Call once at process start."""
        return await self.scheduler.reconcile_on_startup()

    def shutdown(self) -> int:
        """Cancel all timers; durable state is left as is."""
        return self.scheduler.shutdown()

    async def create_job(
        self,
        name: str,
        cron_expression: str,
        description: str | None = "",
        enabled: bool = True,
    ) -> CronJob:
        """Create and persist a job, starting it when enabled.

        Args:
            name: Display name (required).
            cron_expression: Five-field schedule (required, validated).
            description: Free text.
            enabled: Whether the job should be scheduled.

        Returns:
            The stored job.

        Raises:
            ValidationError: Missing name or invalid expression.
            PersistenceError: The store rejected the write.
        """
        name = _require_name(name)
        cron_expression = _require_expression(cron_expression)

        now = self.clock()
        job = CronJob(
            id=generate_job_id(now),
            name=name,
            description=description or "",
            cron_expression=cron_expression,
            enabled=bool(enabled),
            status=JobStatus.STOPPED,
            created_at=now,
            updated_at=now,
            next_run=self._next_run(cron_expression),
        )
        await self.store.put(job.id, job)
        logger.info("job_created", job_id=job.id, name=name, enabled=job.enabled)

        if job.enabled:
            await self.scheduler.start(job.id)
            job = await self.store.get(job.id) or job

        return job

    async def update_job(self, job_id: str, **changes: Any) -> CronJob | None:
        """Apply a partial update.

        Toggling ``enabled`` starts or stops the job; changing the expression
        of an enabled job, or of one with a live timer, rebinds the timer.

        Args:
            job_id: Job to update.
            **changes: Any of name, description, cron_expression, enabled.

        Returns:
            The updated job, or None if the id is unknown.

        Raises:
            ValidationError: Unknown field, empty name or invalid expression.
            PersistenceError: The store failed.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        if "name" in changes:
            changes["name"] = _require_name(changes["name"])
        if "cron_expression" in changes:
            changes["cron_expression"] = _require_expression(changes["cron_expression"])
        if "description" in changes:
            changes["description"] = changes["description"] or ""
        if "enabled" in changes:
            changes["enabled"] = bool(changes["enabled"])

        existing = await self.store.get(job_id)
        if existing is None:
            return None

        updated = existing.with_changes(**changes, updated_at=self.clock())

        expression_changed = (
            "cron_expression" in changes
            and changes["cron_expression"] != existing.cron_expression
        )
        if expression_changed:
            updated.next_run = self._next_run(updated.cron_expression)

        await self.store.put(job_id, updated)
        logger.info("job_updated", job_id=job_id, fields=sorted(changes))

        if existing.enabled != updated.enabled:
            if updated.enabled:
                await self.scheduler.start(job_id)
            else:
                await self.scheduler.stop(job_id)
        elif expression_changed and (updated.enabled or self.scheduler.is_active(job_id)):
            # Also revives enabled jobs left without a timer, e.g. status=error
            await self.scheduler.stop(job_id)
            await self.scheduler.start(job_id)

        return await self.store.get(job_id)

    async def delete_job(self, job_id: str) -> bool:
        """Stop and remove a job along with its history.

        Returns:
            False (with no side effects) if the id is unknown.
        """
        existing = await self.store.get(job_id)
        if existing is None:
            return False

        self.scheduler.unschedule(job_id)
        await self.store.delete(job_id)
        await self.store.delete_history(job_id)

        logger.info("job_deleted", job_id=job_id)
        return True

    async def start_job(self, job_id: str) -> bool:
        """Start a job's timer. False if the id is unknown."""
        return await self.scheduler.start(job_id)

    async def stop_job(self, job_id: str) -> bool:
        """Stop a job's timer. False if the id is unknown."""
        return await self.scheduler.stop(job_id)

    async def get_job(self, job_id: str) -> CronJob | None:
        return await self.store.get(job_id)

    async def list_jobs(self) -> list[CronJob]:
        """All jobs, oldest first."""
        jobs = await self.store.list_jobs()
        return sorted(jobs, key=lambda j: (j.created_at, j.id))

    async def get_history(
        self, job_id: str, limit: int = 20
    ) -> list[ExecutionHistoryEntry]:
        """Most recent executions of a job, newest first."""
        return await self.store.get_history(job_id, limit)

    async def get_global_history(self, limit: int = 100) -> list[GlobalExecutionEntry]:
        """Most recent sweeps across all jobs, newest first."""
        return await self.store.get_global_executions(limit)

    def get_next_run(self, cron_expression: str) -> int | None:
        """Preview when an expression would next fire.

        Raises:
            ValidationError: If the expression is invalid.
        """
        return self._next_run(_require_expression(cron_expression))


def create_manager(
    store: JobStore,
    checker: Checker,
    config: SchedulerConfig | None = None,
    timer_backend: TimerBackend | None = None,
    clock: Callable[[], int] = now_ms,
) -> JobLifecycleManager:
    """Wire runner, scheduler and manager around a store and a checker.

    Args:
        store: Durable job store.
        checker: Sweep collaborator.
        config: Scheduler settings.
        timer_backend: Timer mechanism (asyncio wall-clock by default).
        clock: Epoch-millisecond clock shared by all components.

    Returns:
        Ready-to-initialize manager.
    """
    config = config or SchedulerConfig()
    runner = ExecutionRunner(
        store, checker, clock=clock, lookahead_minutes=config.lookahead_minutes
    )
    scheduler = JobScheduler(
        store,
        runner,
        timer_backend=timer_backend,
        clock=clock,
        lookahead_minutes=config.lookahead_minutes,
    )
    return JobLifecycleManager(store, scheduler, clock=clock)
