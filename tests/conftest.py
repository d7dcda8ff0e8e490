"""Shared fixtures: simulated clock, timers and checker."""

from __future__ import annotations

from datetime import datetime

import pytest

from cronwatch.checker.base import Checker, SweepResult, TargetResult
from cronwatch.core.errors import ExecutionError
from cronwatch.core.utils import datetime_to_ms
from cronwatch.cron.expression import MINUTE_MS, CronExpression
from cronwatch.jobs.manager import create_manager
from cronwatch.scheduler.timers import TimerBackend, TimerCallback, TimerHandle
from cronwatch.storage.memory import MemoryJobStore

# Monday 2024-01-01 12:03:30 local time
BASE_TIME = datetime(2024, 1, 1, 12, 3, 30)


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, start: datetime = BASE_TIME):
        self.now = datetime_to_ms(start)

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class FakeTimerHandle(TimerHandle):
    def __init__(self, expression: CronExpression, callback: TimerCallback):
        super().__init__(expression)
        self.callback = callback


class FakeTimerBackend(TimerBackend):
    """Timers driven by a FakeClock instead of the event loop."""

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.handles: list[FakeTimerHandle] = []

    def schedule(self, expression: str, callback: TimerCallback) -> TimerHandle:
        handle = FakeTimerHandle(CronExpression(expression), callback)
        self.handles.append(handle)
        return handle

    @property
    def live_handles(self) -> list[FakeTimerHandle]:
        return [h for h in self.handles if not h.cancelled]

    async def advance_to(self, target_ms: int) -> int:
        """Move the clock minute by minute, firing matching timers.

        Returns:
            Number of callbacks fired.
        """
        fired = 0
        boundary = self.clock.now - (self.clock.now % MINUTE_MS) + MINUTE_MS
        while boundary <= target_ms:
            self.clock.now = boundary
            for handle in self.live_handles:
                if handle.expression.matches_ms(boundary):
                    await handle.callback()
                    fired += 1
            boundary += MINUTE_MS
        self.clock.now = target_ms
        return fired


class FakeChecker(Checker):
    """Checker with scripted outcomes."""

    def __init__(self, ok: bool = True, error: Exception | None = None, targets: int = 2):
        self.ok = ok
        self.error = error
        self.targets = targets
        self.calls = 0

    async def sweep(self) -> SweepResult:
        self.calls += 1
        if self.error is not None:
            raise self.error
        status = "up" if self.ok else "down"
        results = [
            TargetResult(
                name=f"target-{i}",
                status=status,
                timestamp=0,
                response_time=5,
                status_code=200 if self.ok else 503,
            )
            for i in range(self.targets)
        ]
        return SweepResult(ok=self.ok, results=results)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def timers(clock: FakeClock) -> FakeTimerBackend:
    return FakeTimerBackend(clock)


@pytest.fixture
def checker() -> FakeChecker:
    return FakeChecker()


@pytest.fixture
def store() -> MemoryJobStore:
    return MemoryJobStore()


@pytest.fixture
def manager(store, checker, timers, clock):
    return create_manager(store, checker, timer_backend=timers, clock=clock)


@pytest.fixture
def failing_checker() -> FakeChecker:
    return FakeChecker(error=ExecutionError("connection refused"))
