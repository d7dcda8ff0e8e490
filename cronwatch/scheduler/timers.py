"""Timers that fire callbacks on cron-matching minutes.

A ``TimerBackend`` turns ``(expression, callback)`` into a cancelable
``TimerHandle``. The asyncio backend runs one task per handle; other
mechanisms (a work queue, a simulated clock in tests) plug in by
implementing the same two classes.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Iterator

from ..core.utils import get_logger, now_ms
from ..cron.expression import MINUTE_MS, CronExpression

logger = get_logger(__name__)

TimerCallback = Callable[[], Awaitable[Any]]


class TimerHandle(ABC):
    """A live, cancelable schedule."""

    def __init__(self, expression: CronExpression):
        self.expression = expression
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop future firings. Executions already in flight are not aborted."""
        self._cancelled = True


class TimerBackend(ABC):
    """Creates timer handles."""

    @abstractmethod
    def schedule(self, expression: str, callback: TimerCallback) -> TimerHandle:
        """Fire ``callback`` on every minute matching ``expression``.

        Raises:
            ValidationError: If the expression is malformed.
        """

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for in-flight executions to finish."""


class AsyncioTimerHandle(TimerHandle):
    """Handle backed by a sleeping asyncio task."""

    def __init__(self, expression: CronExpression, task: asyncio.Task | None = None):
        super().__init__(expression)
        self.task = task

    def cancel(self) -> None:
        super().cancel()
        if self.task and not self.task.done():
            self.task.cancel()


class AsyncioTimerBackend(TimerBackend):
    """Wall-clock timers on the running event loop.

    Each handle owns a task that sleeps to the next minute boundary and, if
    the boundary matches, starts the callback as a separate task so a slow
    execution never delays the next check or another job's timer.

    Usage:
        backend = AsyncioTimerBackend()
        handle = backend.schedule("*/5 * * * *", run_sweep)
        ...
        handle.cancel()
    """

    def __init__(
        self,
        clock: Callable[[], int] = now_ms,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize backend.

        Args:
            clock: Epoch-millisecond clock.
            sleep: Coroutine used to wait between boundaries.
        """
        self._clock = clock
        self._sleep = sleep
        self._in_flight: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def schedule(self, expression: str, callback: TimerCallback) -> TimerHandle:
        handle = AsyncioTimerHandle(CronExpression(expression))
        handle.task = asyncio.create_task(self._timer_loop(handle, callback))
        return handle

    async def _timer_loop(self, handle: AsyncioTimerHandle, callback: TimerCallback) -> None:
        # Sleep runs on the loop's monotonic clock, so a wake-up can land just
        # before the wall-clock boundary; never revisit a probed boundary.
        last_boundary: int | None = None
        while not handle.cancelled:
            now = self._clock()
            boundary = now - (now % MINUTE_MS) + MINUTE_MS
            if last_boundary is not None:
                boundary = max(boundary, last_boundary + MINUTE_MS)
            last_boundary = boundary
            try:
                await self._sleep((boundary - now) / 1000)
            except asyncio.CancelledError:
                break

            if handle.cancelled:
                break

            if handle.expression.matches_ms(boundary):
                self._dispatch(callback)

    def _dispatch(self, callback: TimerCallback) -> None:
        task = asyncio.create_task(self._invoke(callback))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _invoke(self, callback: TimerCallback) -> None:
        try:
            await callback()
        except Exception:
            logger.exception("timer_callback_failed")

    async def drain(self, timeout: float | None = None) -> None:
        if self._in_flight:
            await asyncio.wait(list(self._in_flight), timeout=timeout)


class TimerRegistry:
    """Process-local map of job id to active timer handle.

    Never persisted; rebuilt from durable job state at startup.
    """

    def __init__(self):
        self._handles: dict[str, TimerHandle] = {}

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._handles

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._handles))

    def get(self, job_id: str) -> TimerHandle | None:
        return self._handles.get(job_id)

    def register(self, job_id: str, handle: TimerHandle) -> None:
        """Store a handle, cancelling any handle it replaces."""
        self.cancel(job_id)
        self._handles[job_id] = handle

    def cancel(self, job_id: str) -> bool:
        """Cancel and forget a job's handle.

        Returns:
            True if a handle was present.
        """
        handle = self._handles.pop(job_id, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        """Cancel every handle and return how many there were."""
        count = len(self._handles)
        for job_id in list(self._handles):
            self.cancel(job_id)
        return count
