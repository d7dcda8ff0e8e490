"""Job scheduling.

This module provides:
- Cron timers on the asyncio event loop
- A per-scheduler timer registry rebuilt from durable state at startup
- The runner that executes fired jobs and records their outcome
"""

from .runner import ExecutionRunner
from .scheduler import JobScheduler
from .timers import (
    AsyncioTimerBackend,
    AsyncioTimerHandle,
    TimerBackend,
    TimerHandle,
    TimerRegistry,
)

__all__ = [
    "AsyncioTimerBackend",
    "AsyncioTimerHandle",
    "ExecutionRunner",
    "JobScheduler",
    "TimerBackend",
    "TimerHandle",
    "TimerRegistry",
]
