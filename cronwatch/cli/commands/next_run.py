"""Next-run command - preview when a cron expression fires."""

from __future__ import annotations

import click

from ...core.utils import format_timestamp, now_ms
from ...cron.expression import CronExpression, validate
from ..utils import get_config, output_json


@click.command(name="next-run")
@click.argument("cron_expression")
@click.option("--count", type=int, default=1, help="Number of upcoming runs (default: 1).")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def next_run(ctx: click.Context, cron_expression: str, count: int, as_json: bool) -> None:
    """Show the next times CRON_EXPRESSION fires.

    \b
    Examples:
      cronwatch next-run "*/15 * * * *"
      cronwatch next-run "0 9 * * 1-5" --count 5
    """
    if not validate(cron_expression):
        raise click.UsageError(f"Invalid cron expression: {cron_expression!r}")

    expression = CronExpression(cron_expression)
    lookahead = get_config(ctx).scheduler.lookahead_minutes

    runs: list[int] = []
    reference = now_ms()
    for _ in range(max(count, 1)):
        upcoming = expression.next_run_after(reference, lookahead)
        if upcoming is None:
            break
        runs.append(upcoming)
        reference = upcoming

    if as_json:
        output_json({
            "expression": cron_expression,
            "description": expression.describe(),
            "next_runs": runs,
        })
        return

    click.echo(f"{cron_expression}  ({expression.describe()})")
    if not runs:
        click.echo("  No run within the lookahead window.")
    for run_at in runs:
        click.echo(f"  {format_timestamp(run_at)}")
