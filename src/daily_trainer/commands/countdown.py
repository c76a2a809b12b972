"""Countdown to the next app-day reset."""

import asyncio
from datetime import datetime

import click

from ..core.countdown import ResetCountdown
from ..gateways import SystemClock
from ..services.orchestrator import PlanOrchestrator
from .base import echo_info, echo_success, get_config, get_orchestrator, get_owner


@click.command()
@click.option("--watch", "-w", is_flag=True, help="Keep updating until interrupted")
@click.option("--seconds", type=float, default=None, help="Stop watching after this many seconds")
@click.option(
    "--ensure-plan",
    is_flag=True,
    help="Generate the new day's plan silently when the reset passes",
)
@click.pass_context
def countdown(ctx: click.Context, watch: bool, seconds: float | None, ensure_plan: bool):
    """Show the time left until the daily reset.

    The reset happens at midnight shifted by the configured day offset
    (--offset or DAILY_TRAINER_DAY_OFFSET_HOURS).
    """
    config = get_config(ctx)
    clock = SystemClock(config.timezone)

    if not watch:
        snapshot = ResetCountdown(offset_hours=config.day_offset_hours, clock=clock).snapshot
        click.echo(f"Next reset in {snapshot.formatted} (at {snapshot.next_reset:%Y-%m-%d %H:%M %Z})")
        return

    orchestrator = get_orchestrator(ctx) if ensure_plan else None
    try:
        asyncio.run(_watch(config.day_offset_hours, clock, seconds, orchestrator, get_owner(ctx)))
    except KeyboardInterrupt:
        click.echo()


async def _watch(
    offset_hours: int,
    clock: SystemClock,
    seconds: float | None,
    orchestrator: PlanOrchestrator | None,
    owner_id: str,
) -> None:
    async def on_reset(boundary: datetime) -> None:
        click.echo()
        echo_info(f"New app day started at {boundary:%Y-%m-%d %H:%M}")
        if orchestrator is not None:
            today = await orchestrator.ensure_today_plan_if_empty(owner_id)
            if today is not None:
                echo_success(f"Generated plan {today.plan.id} with {len(today.items)} exercises")

    loop = asyncio.get_running_loop()
    deadline = loop.time() + seconds if seconds is not None else None

    async with ResetCountdown(offset_hours=offset_hours, clock=clock) as timer:
        timer.on_elapsed(on_reset)
        while deadline is None or loop.time() < deadline:
            click.echo(f"\rNext reset in {timer.snapshot.formatted}", nl=False)
            await asyncio.sleep(timer.interval)
    click.echo()
