"""CLI utility functions.

Provides:
- Async execution helper for Click commands
- Manager wiring around a store session
- Output formatting utilities
"""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from functools import wraps
from typing import Any, AsyncGenerator, Callable, TypeVar

import click

from ..checker.http import HttpChecker
from ..core.config import Config
from ..core.errors import CronwatchError, ValidationError
from ..core.utils import format_duration, format_timestamp, get_logger
from ..jobs.manager import JobLifecycleManager, create_manager
from ..models import CronJob, ExecutionHistoryEntry
from ..storage.database import store_session

logger = get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def async_command(f: F) -> F:
    """Decorator to run async functions in Click commands.

    Usage:
        @cli.command()
        @async_command
        async def my_command():
            await some_async_operation()
    """
    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return asyncio.run(f(*args, **kwargs))
    return wrapper  # type: ignore


def get_config(ctx: click.Context) -> Config:
    """Fetch the configuration loaded by the root command."""
    return ctx.find_root().obj["config"]


@asynccontextmanager
async def open_manager(config: Config) -> AsyncGenerator[JobLifecycleManager, None]:
    """Open the store and build a manager for one command.

    Timers started by the command live only as long as the command; the
    long-running ``serve`` process picks up changes on its next start.
    """
    checker = HttpChecker(config.checker)
    async with store_session(
        config.storage.db_path,
        history_limit=config.scheduler.history_limit,
        global_history_limit=config.scheduler.global_history_limit,
    ) as store:
        manager = create_manager(store, checker, config.scheduler)
        try:
            yield manager
        finally:
            manager.shutdown()
            await checker.close()


def handle_error(error: Exception) -> None:
    """Map domain errors to Click exceptions and exit codes.

    Validation errors exit with 2; not found and every other domain error
    exit with 1.
    """
    logger.debug("command_failed", error=str(error), error_type=type(error).__name__)
    if isinstance(error, ValidationError):
        raise click.UsageError(str(error))
    if isinstance(error, CronwatchError):
        raise click.ClickException(str(error))
    raise error


def job_to_row(job: CronJob) -> list[Any]:
    """Flatten a job for table output."""
    return [
        job.id,
        job.name,
        job.cron_expression,
        "yes" if job.enabled else "no",
        job.status.value,
        format_timestamp(job.last_run),
        job.last_run_status.value if job.last_run_status else "-",
        format_timestamp(job.next_run),
    ]


JOB_HEADERS = ["ID", "Name", "Schedule", "Enabled", "Status", "Last run", "Result", "Next run"]


def history_to_row(entry: ExecutionHistoryEntry) -> list[Any]:
    """Flatten a history entry for table output."""
    return [
        format_timestamp(entry.timestamp),
        entry.status.value,
        format_duration(entry.duration),
        (entry.error or "")[:60],
    ]


HISTORY_HEADERS = ["Time", "Status", "Duration", "Error"]


def print_job(job: CronJob) -> None:
    """Print a single job as label/value rows."""
    rows = [
        ("ID", job.id),
        ("Name", job.name),
        ("Description", job.description or "-"),
        ("Schedule", job.cron_expression),
        ("Enabled", "yes" if job.enabled else "no"),
        ("Status", job.status.value),
        ("Created", format_timestamp(job.created_at)),
        ("Updated", format_timestamp(job.updated_at)),
        ("Last run", format_timestamp(job.last_run)),
        ("Last duration", format_duration(job.last_run_duration)),
        ("Last result", job.last_run_status.value if job.last_run_status else "-"),
        ("Next run", format_timestamp(job.next_run)),
    ]
    if job.last_run_error:
        rows.append(("Last error", job.last_run_error))

    for label, value in rows:
        print_table_row(label, str(value), width=14)


def print_table_row(label: str, value: str, width: int = 30) -> None:
    """Print a formatted table row."""
    click.echo(f"  {label:<{width}} {value}")


def output_json(data: Any) -> None:
    """Output data as JSON."""
    click.echo(json.dumps(data, indent=2, default=str))


def output_table(headers: list[str], rows: list[list[Any]]) -> None:
    """Output data as formatted table."""
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    header_line = " | ".join(f"{h:<{widths[i]}}" for i, h in enumerate(headers))
    click.echo(header_line)
    click.echo("-" * len(header_line))

    for row in rows:
        row_line = " | ".join(f"{str(cell):<{widths[i]}}" for i, cell in enumerate(row))
        click.echo(row_line)
