"""Job scheduler.

Keeps an in-process timer registry consistent with durable job records:

- ``start``/``stop`` bind and unbind one job's timer and persist its status
- ``reconcile_on_startup`` rebuilds every timer from the ``enabled`` flags
- The registry is disposable; the store is the source of truth
"""

from __future__ import annotations

from typing import Callable

from ..core.errors import PersistenceError
from ..core.utils import get_logger, now_ms
from ..cron.expression import DEFAULT_LOOKAHEAD_MINUTES, next_run_time
from ..models import JobStatus
from ..storage.base import JobStore
from .runner import ExecutionRunner
from .timers import AsyncioTimerBackend, TimerBackend, TimerCallback, TimerRegistry

logger = get_logger(__name__)


class JobScheduler:
    """Binds durable jobs to live timers.

    Each instance owns its own registry, so several schedulers can coexist
    in one process (tests rely on this).

    Usage:
        scheduler = JobScheduler(store, runner)
        await scheduler.reconcile_on_startup()

        await scheduler.start(job_id)
        await scheduler.stop(job_id)

        scheduler.shutdown()
    """

    def __init__(
        self,
        store: JobStore,
        runner: ExecutionRunner,
        timer_backend: TimerBackend | None = None,
        registry: TimerRegistry | None = None,
        clock: Callable[[], int] = now_ms,
        lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
    ):
        """Initialize scheduler.

        Args:
            store: Durable job store.
            runner: Runner invoked when a timer fires.
            timer_backend: Timer mechanism (asyncio wall-clock by default).
            registry: Timer registry (a fresh one by default).
            clock: Epoch-millisecond clock.
            lookahead_minutes: Window for next-run lookup.
        """
        self.store = store
        self.runner = runner
        self.timer_backend = timer_backend or AsyncioTimerBackend(clock=clock)
        self.registry = registry if registry is not None else TimerRegistry()
        self.clock = clock
        self.lookahead_minutes = lookahead_minutes
        self.ready = False

    def _make_callback(self, job_id: str) -> TimerCallback:
        async def fire() -> None:
            await self.runner.run(job_id)

        return fire

    def is_active(self, job_id: str) -> bool:
        """Check whether a job currently holds a timer."""
        return job_id in self.registry

    def active_job_ids(self) -> set[str]:
        """Ids of all jobs holding a timer."""
        return set(self.registry)

    async def start(self, job_id: str) -> bool:
        """Start (or restart) a job's timer.

        Any existing timer for the job is cancelled first, so a job never
        holds two timers.

        Args:
            job_id: Job to start.

        Returns:
            False if the job does not exist.

        Raises:
            PersistenceError: If the store cannot be read or written.
            ValidationError: If the stored expression is malformed.
        """
        job = await self.store.get(job_id)
        if job is None:
            logger.warning("start_unknown_job", job_id=job_id)
            return False

        self.registry.cancel(job_id)
        handle = self.timer_backend.schedule(
            job.cron_expression, self._make_callback(job_id)
        )
        self.registry.register(job_id, handle)

        now = self.clock()
        updated = job.with_changes(
            status=JobStatus.RUNNING,
            updated_at=now,
            next_run=next_run_time(
                job.cron_expression, now=now, lookahead_minutes=self.lookahead_minutes
            ),
        )
        await self.store.put(job_id, updated)

        logger.info(
            "job_started",
            job_id=job_id,
            expression=job.cron_expression,
            next_run=updated.next_run,
        )
        return True

    async def stop(self, job_id: str) -> bool:
        """Stop a job's timer.

        Stopping a job without a timer is a no-op apart from the status write.
        An execution already in flight is allowed to finish.

        Args:
            job_id: Job to stop.

        Returns:
            False if the job does not exist.

        Raises:
            PersistenceError: If the store cannot be read or written.
        """
        had_timer = self.registry.cancel(job_id)

        job = await self.store.get(job_id)
        if job is None:
            return False

        updated = job.with_changes(status=JobStatus.STOPPED, updated_at=self.clock())
        await self.store.put(job_id, updated)

        logger.info("job_stopped", job_id=job_id, had_timer=had_timer)
        return True

    def unschedule(self, job_id: str) -> bool:
        """Drop a job's timer without writing to the store (used on delete)."""
        return self.registry.cancel(job_id)

    async def reconcile_on_startup(self) -> list[str]:
        """Rebuild timers for every enabled job.

        The durable ``enabled`` flag alone decides what runs; the stored
        ``status`` is ignored. A job that fails to start is marked ``error``
        and does not prevent the others from starting.

        Returns:
            Ids of the jobs that were started.

        Raises:
            PersistenceError: If the job list cannot be read.
        """
        logger.info("reconcile_started")
        jobs = await self.store.list_jobs()
        enabled = [job for job in jobs if job.enabled]
        logger.info("reconcile_found_jobs", total=len(jobs), enabled=len(enabled))

        started = []
        for job in sorted(enabled, key=lambda j: j.created_at):
            try:
                if await self.start(job.id):
                    started.append(job.id)
            except Exception as e:
                logger.error("reconcile_start_failed", job_id=job.id, error=str(e))
                await self._mark_error(job.id)

        self.ready = True
        logger.info("reconcile_completed", started=len(started))
        return started

    async def _mark_error(self, job_id: str) -> None:
        self.registry.cancel(job_id)
        try:
            job = await self.store.get(job_id)
            if job is not None:
                await self.store.put(
                    job_id,
                    job.with_changes(status=JobStatus.ERROR, updated_at=self.clock()),
                )
        except PersistenceError as e:
            logger.error("mark_error_failed", job_id=job_id, error=str(e))

    def shutdown(self) -> int:
        """Cancel every timer without touching durable state.

        Returns:
            Number of timers cancelled.
        """
        count = self.registry.cancel_all()
        self.ready = False
        logger.info("scheduler_shutdown", timers_cancelled=count)
        return count
