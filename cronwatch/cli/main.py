"""cronwatch - unified CLI.

Usage:
    python -m cronwatch --help
    python -m cronwatch jobs create "Uptime sweep" "*/5 * * * *"
    python -m cronwatch jobs list
    python -m cronwatch next-run "0 9 * * 1-5"
    python -m cronwatch serve
"""

from __future__ import annotations

import click

from ..core.config import load_config
from ..core.utils import setup_logging


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Set logging level (defaults to the configured level).",
)
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"], case_sensitive=False),
    default=None,
    help="Set logging format.",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a JSON config file (default: configs/default.json).",
)
@click.option(
    "--db-path",
    default=None,
    help="Job database path (overrides the configured path).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    log_level: str | None,
    log_format: str | None,
    config_path: str | None,
    db_path: str | None,
) -> None:
    """cronwatch - cron-scheduled health-check sweeps.

    Jobs fire an HTTP sweep over the configured targets on a five-field
    cron schedule and record every outcome.

    \b
    Examples:
      python -m cronwatch jobs create "Uptime sweep" "*/5 * * * *"
      python -m cronwatch jobs history job_1718000000000_k3j9x2a
      python -m cronwatch serve
    """
    config = load_config(config_path)
    if db_path:
        config.storage.db_path = db_path
    if log_level:
        config.general.log_level = log_level.upper()
    if log_format:
        config.general.log_format = log_format.lower()

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    setup_logging(level=config.general.log_level, log_format=config.general.log_format)


# Import and register command groups
from .commands import jobs, next_run, serve

cli.add_command(jobs.jobs)
cli.add_command(next_run.next_run)
cli.add_command(serve.serve)


if __name__ == "__main__":
    cli()
