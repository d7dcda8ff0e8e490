"""Health-check sweep interface.

A firing job asks a ``Checker`` to probe every configured target once and
report whether the sweep as a whole was healthy.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class TargetResult:
    """Outcome of probing one target.

    Attributes:
        name: Target name.
        status: 'up' or 'down'.
        timestamp: Probe completion time, epoch ms.
        response_time: Round-trip time in ms.
        status_code: HTTP status, when a response arrived.
        error: Transport error message, when none did.
    """

    name: str
    status: str
    timestamp: int
    response_time: int
    status_code: int | None = None
    error: str | None = None

    @property
    def is_up(self) -> bool:
        return self.status == "up"

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "status": self.status,
            "timestamp": self.timestamp,
            "response_time": self.response_time,
        }
        if self.status_code is not None:
            data["status_code"] = self.status_code
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class SweepResult:
    """Outcome of a full sweep."""

    ok: bool
    results: list[TargetResult] = field(default_factory=list)

    @property
    def targets_checked(self) -> int:
        return len(self.results)

    @property
    def failed_targets(self) -> list[TargetResult]:
        return [r for r in self.results if not r.is_up]

    def to_dict(self) -> dict[str, Any]:
        return {
            "ok": self.ok,
            "targets_checked": self.targets_checked,
            "results": [r.to_dict() for r in self.results],
        }


class Checker(ABC):
    """Performs health-check sweeps."""

    @abstractmethod
    async def sweep(self) -> SweepResult:
        """Probe every target once.

        Raises:
            ExecutionError: If the sweep could not be performed at all.
        """

    async def close(self) -> None:
        """Release any held resources."""
