"""Serve command - run the scheduler until interrupted.

Starts a scheduler process that:
- Rebuilds every enabled job's timer from the job database
- Fires health-check sweeps on each job's cron schedule
- Records outcomes until SIGINT/SIGTERM
"""

from __future__ import annotations

import asyncio
import signal
import sys

import click

from ...checker.http import HttpChecker
from ...core.config import Config
from ...core.utils import get_logger
from ...jobs.manager import create_manager
from ...scheduler.timers import AsyncioTimerBackend
from ...storage.database import SQLiteJobStore
from ..utils import get_config

logger = get_logger(__name__)


async def serve_forever(config: Config, drain_timeout: float = 30.0) -> None:
    """Run the scheduler until a shutdown signal arrives.

    Args:
        config: Loaded configuration.
        drain_timeout: Max seconds to wait for in-flight executions on exit.
    """
    store = SQLiteJobStore(
        config.storage.db_path,
        history_limit=config.scheduler.history_limit,
        global_history_limit=config.scheduler.global_history_limit,
    )
    await store.connect()

    checker = HttpChecker(config.checker)
    timer_backend = AsyncioTimerBackend()
    manager = create_manager(store, checker, config.scheduler, timer_backend=timer_backend)

    shutdown_event = asyncio.Event()

    def handle_shutdown(sig, frame):
        logger.info("shutdown_signal", signal=sig)
        shutdown_event.set()

    # Register signal handlers (Unix only)
    if sys.platform != "win32":
        signal.signal(signal.SIGINT, handle_shutdown)
        signal.signal(signal.SIGTERM, handle_shutdown)

    try:
        started = await manager.initialize()

        click.echo(f"Scheduler ready with {len(started)} active job(s).")
        click.echo(f"  Database: {config.storage.db_path}")
        click.echo(f"  Targets: {len(config.checker.targets)}")
        click.echo("Press Ctrl+C to stop.")
        click.echo("-" * 50)

        if sys.platform == "win32":
            # Windows: use simple wait loop
            while not shutdown_event.is_set():
                await asyncio.sleep(1)
        else:
            await shutdown_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        manager.shutdown()
        await timer_backend.drain(timeout=drain_timeout)
        await checker.close()
        await store.close()
        click.echo("Shutdown complete.")


@click.command()
@click.option(
    "--drain-timeout",
    type=float,
    default=30.0,
    help="Seconds to wait for running sweeps on shutdown (default: 30).",
)
@click.pass_context
def serve(ctx: click.Context, drain_timeout: float) -> None:
    """Run the scheduler.

    Enabled jobs are started from the job database; changes made with
    `cronwatch jobs` from another shell are picked up on the next start.

    \b
    Examples:
      python -m cronwatch serve
      python -m cronwatch --db-path /var/lib/cronwatch.db serve
    """
    asyncio.run(serve_forever(get_config(ctx), drain_timeout=drain_timeout))
