"""User progress command."""

import click

from ..core.stats import DEFAULT_ADHERENCE_WINDOW_DAYS, window_start
from .base import (
    async_command,
    ensure_initialized,
    format_table,
    get_orchestrator,
    get_owner,
    report_engine_errors,
)
from .plan import print_summary


@click.command()
@click.option("--days", type=click.IntRange(min=1), default=7, help="App days of history to list")
@click.option(
    "--window",
    type=click.IntRange(min=1),
    default=DEFAULT_ADHERENCE_WINDOW_DAYS,
    help="Adherence window in days",
)
@click.option(
    "--target",
    type=click.IntRange(min=1),
    default=None,
    help="Completed exercises a day needs to count (default: a completed plan)",
)
@click.pass_context
@async_command
@report_engine_errors
async def progress(ctx: click.Context, days: int, window: int, target: int | None):
    """Show cumulative progress, streaks, adherence and recent days."""
    ensure_initialized(ctx)

    owner_id = get_owner(ctx)
    orchestrator = get_orchestrator(ctx)
    user_progress = await orchestrator.get_user_progress(owner_id)
    streak = await orchestrator.get_user_streak(owner_id)
    adherence = await orchestrator.get_plan_adherence(owner_id, window, target)
    today_key = orchestrator.today_key()
    history = await orchestrator.get_daily_stats(owner_id, window_start(today_key, days), today_key)
    today = await orchestrator.get_today_summary(owner_id)

    click.echo()
    click.echo(click.style(f"Progress for {owner_id}", bold=True))
    click.echo("=" * 40)
    click.echo(f"Active minutes: {user_progress.minutes_active}")
    click.echo(f"Training days:  {user_progress.training_days}")
    click.echo(f"Streak:         {streak.current} (best {streak.best})")
    click.echo(
        f"Adherence:      {adherence.adherence_pct}% "
        f"({adherence.days_target_achieved}/{adherence.window_days} days, "
        f"{adherence.days_with_activity} active)"
    )

    if history:
        rows = [
            [
                day.stat_date,
                str(day.exercises_completed),
                str(day.exercises_skipped),
                str(day.sets_completed),
                str(day.minutes_completed),
                "yes" if day.plan_completed else "",
            ]
            for day in history
        ]
        click.echo()
        click.echo(format_table(["Day", "Done", "Skipped", "Sets", "Min", "Plan done"], rows))

    click.echo()
    click.echo(click.style("Today:", bold=True))
    print_summary(today)
