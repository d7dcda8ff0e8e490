"""Job records and execution ledger entries."""

from __future__ import annotations

import random
import string
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any

from .core.utils import now_ms

CRON_JOB_SOURCE = "cron-job"


class JobStatus(str, Enum):
    """Observed scheduling state of a job."""

    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


class RunStatus(str, Enum):
    """Outcome of a single execution."""

    SUCCESS = "success"
    FAILURE = "failure"


def generate_job_id(timestamp_ms: int | None = None) -> str:
    """Generate an opaque job id like ``job_1718000000000_k3j9x2a``."""
    ts = timestamp_ms if timestamp_ms is not None else now_ms()
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=7))
    return f"job_{ts}_{suffix}"


@dataclass
class CronJob:
    """Durable record of a scheduled job.

    Attributes:
        id: Opaque unique id, immutable after creation.
        name: Display name.
        cron_expression: Five-field schedule.
        description: Free text.
        enabled: Durable intent; True means the job should be scheduled.
        status: Observed state (running, stopped, error).
        created_at: Creation time, epoch ms.
        updated_at: Last modification time, epoch ms.
        last_run: Start time of the latest execution.
        next_run: Next expected firing, if computable.
        last_run_duration: Duration of the latest execution in ms.
        last_run_status: Outcome of the latest execution.
        last_run_error: Error summary, set only when the latest run failed.
    """

    id: str
    name: str
    cron_expression: str
    description: str = ""
    enabled: bool = True
    status: JobStatus = JobStatus.STOPPED
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)
    last_run: int | None = None
    next_run: int | None = None
    last_run_duration: int | None = None
    last_run_status: RunStatus | None = None
    last_run_error: str | None = None

    @property
    def is_running(self) -> bool:
        return self.status == JobStatus.RUNNING

    def with_changes(self, **changes: Any) -> CronJob:
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        data = asdict(self)
        data["status"] = self.status.value
        data["last_run_status"] = (
            self.last_run_status.value if self.last_run_status else None
        )
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CronJob:
        """Build a job from a dictionary produced by ``to_dict``.

        Unknown keys are ignored so older records keep loading.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["status"] = JobStatus(values.get("status", JobStatus.STOPPED))
        if values.get("last_run_status") is not None:
            values["last_run_status"] = RunStatus(values["last_run_status"])
        return cls(**values)


@dataclass
class ExecutionHistoryEntry:
    """One execution in a job's history ledger."""

    timestamp: int
    status: RunStatus
    duration: int | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "duration": self.duration,
            "status": self.status.value,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionHistoryEntry:
        return cls(
            timestamp=data["timestamp"],
            status=RunStatus(data["status"]),
            duration=data.get("duration"),
            error=data.get("error"),
        )


@dataclass
class GlobalExecutionEntry:
    """One sweep in the shared execution ledger.

    Attributes:
        timestamp: Sweep start time, epoch ms.
        execution_time: Sweep duration in ms.
        targets_checked: Number of targets probed.
        status: Outcome of the sweep.
        source: Origin of the sweep ('cron-job' for scheduled runs).
        run_id: Id of the job that triggered the sweep.
        error: Error summary for failed sweeps.
    """

    timestamp: int
    execution_time: int
    targets_checked: int
    status: RunStatus
    source: str = CRON_JOB_SOURCE
    run_id: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GlobalExecutionEntry:
        return cls(
            timestamp=data["timestamp"],
            execution_time=data.get("execution_time", 0),
            targets_checked=data.get("targets_checked", 0),
            status=RunStatus(data["status"]),
            source=data.get("source", CRON_JOB_SOURCE),
            run_id=data.get("run_id"),
            error=data.get("error"),
        )
