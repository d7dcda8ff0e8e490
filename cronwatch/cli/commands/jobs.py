"""Jobs command group - manage scheduled jobs."""

from __future__ import annotations

import click

from ...core.errors import CronwatchError, NotFoundError
from ..utils import (
    HISTORY_HEADERS,
    JOB_HEADERS,
    async_command,
    get_config,
    handle_error,
    history_to_row,
    job_to_row,
    open_manager,
    output_json,
    output_table,
    print_job,
)


@click.group()
def jobs() -> None:
    """Create, change and inspect scheduled jobs."""


@jobs.command()
@click.argument("name")
@click.argument("cron_expression")
@click.option("--description", "-d", default="", help="Free-text description.")
@click.option("--disabled", is_flag=True, help="Create without scheduling it.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
@async_command
async def create(
    ctx: click.Context,
    name: str,
    cron_expression: str,
    description: str,
    disabled: bool,
    as_json: bool,
) -> None:
    """Create a job.

    \b
    Examples:
      cronwatch jobs create "Uptime sweep" "*/5 * * * *"
      cronwatch jobs create "Nightly" "0 3 * * *" --disabled
    """
    try:
        async with open_manager(get_config(ctx)) as manager:
            job = await manager.create_job(
                name, cron_expression, description=description, enabled=not disabled
            )
    except CronwatchError as e:
        handle_error(e)
        return

    if as_json:
        output_json(job.to_dict())
    else:
        click.echo(f"Created job {job.id}")
        print_job(job)


@jobs.command(name="list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
@async_command
async def list_jobs(ctx: click.Context, as_json: bool) -> None:
    """List all jobs."""
    try:
        async with open_manager(get_config(ctx)) as manager:
            all_jobs = await manager.list_jobs()
    except CronwatchError as e:
        handle_error(e)
        return

    if as_json:
        output_json([job.to_dict() for job in all_jobs])
    elif not all_jobs:
        click.echo("No jobs.")
    else:
        output_table(JOB_HEADERS, [job_to_row(job) for job in all_jobs])


@jobs.command()
@click.argument("job_id")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
@async_command
async def get(ctx: click.Context, job_id: str, as_json: bool) -> None:
    """Show one job."""
    try:
        async with open_manager(get_config(ctx)) as manager:
            job = await manager.get_job(job_id)
        if job is None:
            raise NotFoundError(job_id)
    except CronwatchError as e:
        handle_error(e)
        return

    if as_json:
        output_json(job.to_dict())
    else:
        print_job(job)


@jobs.command()
@click.argument("job_id")
@click.option("--name", default=None, help="New name.")
@click.option("--description", default=None, help="New description.")
@click.option("--cron", "cron_expression", default=None, help="New cron expression.")
@click.option("--enable/--disable", "enabled", default=None, help="Toggle scheduling.")
@click.pass_context
@async_command
async def update(
    ctx: click.Context,
    job_id: str,
    name: str | None,
    description: str | None,
    cron_expression: str | None,
    enabled: bool | None,
) -> None:
    """Update fields of a job."""
    changes = {
        key: value
        for key, value in (
            ("name", name),
            ("description", description),
            ("cron_expression", cron_expression),
            ("enabled", enabled),
        )
        if value is not None
    }
    if not changes:
        raise click.UsageError("Nothing to update.")

    try:
        async with open_manager(get_config(ctx)) as manager:
            job = await manager.update_job(job_id, **changes)
        if job is None:
            raise NotFoundError(job_id)
    except CronwatchError as e:
        handle_error(e)
        return

    click.echo(f"Updated job {job.id}")
    print_job(job)


@jobs.command()
@click.argument("job_id")
@click.pass_context
@async_command
async def delete(ctx: click.Context, job_id: str) -> None:
    """Delete a job and its history."""
    try:
        async with open_manager(get_config(ctx)) as manager:
            if not await manager.delete_job(job_id):
                raise NotFoundError(job_id)
    except CronwatchError as e:
        handle_error(e)
        return

    click.echo(f"Deleted job {job_id}")


@jobs.command()
@click.argument("job_id")
@click.pass_context
@async_command
async def start(ctx: click.Context, job_id: str) -> None:
    """Mark a job as running and compute its next run."""
    try:
        async with open_manager(get_config(ctx)) as manager:
            if not await manager.start_job(job_id):
                raise NotFoundError(job_id)
    except CronwatchError as e:
        handle_error(e)
        return

    click.echo(f"Started job {job_id}")


@jobs.command()
@click.argument("job_id")
@click.pass_context
@async_command
async def stop(ctx: click.Context, job_id: str) -> None:
    """Mark a job as stopped."""
    try:
        async with open_manager(get_config(ctx)) as manager:
            if not await manager.stop_job(job_id):
                raise NotFoundError(job_id)
    except CronwatchError as e:
        handle_error(e)
        return

    click.echo(f"Stopped job {job_id}")


@jobs.command()
@click.argument("job_id")
@click.option("--limit", type=int, default=20, help="Entries to show (default: 20).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
@async_command
async def history(ctx: click.Context, job_id: str, limit: int, as_json: bool) -> None:
    """Show a job's most recent executions."""
    try:
        async with open_manager(get_config(ctx)) as manager:
            if await manager.get_job(job_id) is None:
                raise NotFoundError(job_id)
            entries = await manager.get_history(job_id, limit)
    except CronwatchError as e:
        handle_error(e)
        return

    if as_json:
        output_json([entry.to_dict() for entry in entries])
    elif not entries:
        click.echo("No executions recorded.")
    else:
        output_table(HISTORY_HEADERS, [history_to_row(entry) for entry in entries])


@jobs.command()
@click.option("--limit", type=int, default=20, help="Entries to show (default: 20).")
@click.pass_context
@async_command
async def ledger(ctx: click.Context, limit: int) -> None:
    """Show the shared execution ledger as JSON."""
    try:
        async with open_manager(get_config(ctx)) as manager:
            entries = await manager.get_global_history(limit)
    except CronwatchError as e:
        handle_error(e)
        return

    output_json([entry.to_dict() for entry in entries])
