"""HTTP health checker.

Probes each configured target with a GET request and compares the response
status with the target's expected status.
"""

from __future__ import annotations

import asyncio
import time

import httpx

from ..core.config import CheckerConfig, TargetConfig
from ..core.errors import ExecutionError
from ..core.utils import get_logger, now_ms
from .base import Checker, SweepResult, TargetResult

logger = get_logger(__name__)


class HttpChecker(Checker):
    """Sweep HTTP targets concurrently.

    Usage:
        checker = HttpChecker(config.checker)
        result = await checker.sweep()
        await checker.close()
    """

    def __init__(
        self,
        config: CheckerConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """Initialize checker.

        Args:
            config: Targets, timeout and user agent.
            client: Pre-built HTTP client (tests inject a mock transport).
        """
        self.config = config or CheckerConfig()
        self._client = client
        self._owns_client = client is None

    @property
    def targets(self) -> list[TargetConfig]:
        return self.config.targets

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                headers={"User-Agent": self.config.user_agent},
            )
        return self._client

    async def check_target(self, target: TargetConfig) -> TargetResult:
        """Probe a single target; transport errors mark it down."""
        client = self._get_client()
        started = time.monotonic()

        try:
            response = await client.get(
                target.url,
                headers={"Cache-Control": "no-cache, no-store"},
            )
        except httpx.HTTPError as e:
            elapsed = int((time.monotonic() - started) * 1000)
            logger.warning("target_unreachable", target=target.name, error=str(e))
            return TargetResult(
                name=target.name,
                status="down",
                timestamp=now_ms(),
                response_time=elapsed,
                error=str(e) or type(e).__name__,
            )

        elapsed = int((time.monotonic() - started) * 1000)
        is_up = response.status_code == target.expected_status
        return TargetResult(
            name=target.name,
            status="up" if is_up else "down",
            timestamp=now_ms(),
            response_time=elapsed,
            status_code=response.status_code,
        )

    async def sweep(self) -> SweepResult:
        """Probe all targets; ok only when every target is up."""
        try:
            results = await asyncio.gather(
                *(self.check_target(t) for t in self.targets)
            )
        except Exception as e:
            raise ExecutionError(f"Sweep failed: {e}") from e

        result = SweepResult(ok=all(r.is_up for r in results), results=list(results))
        logger.info(
            "sweep_completed",
            targets=result.targets_checked,
            down=len(result.failed_targets),
        )
        return result

    async def close(self) -> None:
        """Close the HTTP client if this checker created it."""
        if self._client and self._owns_client:
            await self._client.aclose()
        self._client = None
