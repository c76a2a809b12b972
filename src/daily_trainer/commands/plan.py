"""Daily plan commands."""

import click

from ..models.plan import ItemStatus, PlanWithItems, TodaySummary
from ..models.survey import SubscriptionTier, SurveyInput
from ..services.orchestrator import ItemUpdate
from .base import (
    async_command,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    format_table,
    get_config,
    get_orchestrator,
    get_owner,
    report_engine_errors,
)

STATUS_COLORS = {
    ItemStatus.PENDING: "white",
    ItemStatus.IN_PROGRESS: "yellow",
    ItemStatus.COMPLETED: "green",
    ItemStatus.SKIPPED: "bright_black",
}


def print_plan(today: PlanWithItems) -> None:
    """Print a plan header and its items as a table."""
    plan = today.plan
    click.echo()
    click.echo(click.style(f"{plan.title} ({plan.plan_date})", bold=True))
    click.echo(f"Status: {plan.status.value}  |  Estimated: {plan.total_estimated_minutes} min")
    click.echo()

    if not today.items:
        echo_info("No exercises in this plan.")
        return

    rows = [
        [
            str(item.id),
            str(item.order_index + 1),
            item.exercise_ref,
            item.category_tag or "-",
            f"{item.sets_completed}/{item.sets_total}",
            str(item.estimated_minutes),
            click.style(item.status.value, fg=STATUS_COLORS[item.status]),
        ]
        for item in today.items
    ]
    click.echo(format_table(["ID", "#", "Exercise", "Category", "Sets", "Min", "Status"], rows))


def print_summary(summary: TodaySummary) -> None:
    """Print completion totals."""
    if summary.plan_id is None:
        echo_info("No plan for today yet.")
        return
    click.echo(
        f"Items: {summary.items_completed}/{summary.total_items}  |  "
        f"Minutes: {summary.minutes_completed}/{summary.total_estimated_minutes}  |  "
        f"{summary.completion_percentage:.0f}% complete"
    )


def _report_update(update: ItemUpdate) -> None:
    item = update.item
    echo_success(
        f"Item {item.id} ({item.exercise_ref}): {item.sets_completed}/{item.sets_total} sets, "
        f"{item.status.value}"
    )
    print_summary(update.summary)
    if update.plan_completed:
        click.echo(click.style("Plan completed! Progress updated.", fg="green", bold=True))


@click.group()
def plan():
    """Generate and track today's training plan."""
    pass


@plan.command("generate")
@click.option("--count", "-n", type=int, default=None, help="Number of exercises (1-10)")
@click.option("--category", "-c", "categories", multiple=True, help="Category filter (repeatable)")
@click.option("--minutes", "-m", type=int, default=None, help="Available time in minutes")
@click.option(
    "--tier",
    type=click.Choice([t.value for t in SubscriptionTier]),
    default=SubscriptionTier.FREE.value,
    show_default=True,
    help="Subscription tier",
)
@click.option("--interactive", "-i", is_flag=True, help="Answer the survey interactively")
@click.pass_context
@async_command
@report_engine_errors
async def generate(
    ctx: click.Context,
    count: int | None,
    categories: tuple[str, ...],
    minutes: int | None,
    tier: str,
    interactive: bool,
):
    """Generate today's plan from survey answers.

    Existing items are replaced while the plan has no progress; once a
    set has been recorded, only missing items are added.

    Examples:

        daily-trainer plan generate --count 5 --category physical

        daily-trainer plan generate --interactive
    """
    ensure_initialized(ctx)
    config = get_config(ctx)

    if interactive:
        from ..clients.manual import ManualSurveyClient

        survey = await ManualSurveyClient(tier=SubscriptionTier(tier)).collect_survey()
    else:
        survey = SurveyInput(
            exercises_count=count or config.default_exercises_count,
            categories=frozenset(categories),
            time_minutes=minutes or config.default_time_minutes,
            tier=SubscriptionTier(tier),
        )

    orchestrator = get_orchestrator(ctx)
    today = await orchestrator.generate_from_survey(get_owner(ctx), survey)
    echo_success(f"Plan {today.plan.id} ready with {len(today.items)} exercises")
    print_plan(today)


@plan.command("show")
@click.pass_context
@async_command
@report_engine_errors
async def show(ctx: click.Context):
    """Show today's plan."""
    ensure_initialized(ctx)

    today = await get_orchestrator(ctx).get_today_plan(get_owner(ctx))
    if today is None:
        echo_info("No plan for today yet.")
        click.echo("Run 'daily-trainer plan generate' to create one.")
        return
    print_plan(today)


@plan.command("summary")
@click.pass_context
@async_command
@report_engine_errors
async def summary(ctx: click.Context):
    """Show today's completion summary."""
    ensure_initialized(ctx)

    result = await get_orchestrator(ctx).get_today_summary(get_owner(ctx))
    print_summary(result)


@plan.command("ensure")
@click.pass_context
@async_command
@report_engine_errors
async def ensure(ctx: click.Context):
    """Silently build today's plan if it is empty or short."""
    ensure_initialized(ctx)

    today = await get_orchestrator(ctx).ensure_today_plan_if_empty(get_owner(ctx))
    if today is None:
        echo_info("Today's plan is already in place.")
        return
    echo_success(f"Generated plan {today.plan.id} with {len(today.items)} exercises")
    print_plan(today)


@plan.command("set")
@click.argument("item_id", type=int)
@click.option("--value", type=int, default=None, help="Set the completed count instead of adding one")
@click.pass_context
@async_command
@report_engine_errors
async def set_done(ctx: click.Context, item_id: int, value: int | None):
    """Record a completed set for ITEM_ID."""
    ensure_initialized(ctx)

    update = await get_orchestrator(ctx).mark_set_completed(get_owner(ctx), item_id, value)
    _report_update(update)


@plan.command("complete")
@click.argument("item_id", type=int)
@click.pass_context
@async_command
@report_engine_errors
async def complete(ctx: click.Context, item_id: int):
    """Mark every set of ITEM_ID as done."""
    ensure_initialized(ctx)

    update = await get_orchestrator(ctx).mark_item_completed(get_owner(ctx), item_id)
    _report_update(update)


@plan.command("sets")
@click.argument("item_id", type=int)
@click.argument("total", type=int)
@click.pass_context
@async_command
@report_engine_errors
async def sets(ctx: click.Context, item_id: int, total: int):
    """Change the number of sets for ITEM_ID (clamped to 1-10)."""
    ensure_initialized(ctx)

    update = await get_orchestrator(ctx).update_item_sets_total(get_owner(ctx), item_id, total)
    if update.item.sets_total != total:
        echo_warning(f"Sets clamped to {update.item.sets_total}")
    _report_update(update)


@plan.command("skip")
@click.argument("item_id", type=int)
@click.pass_context
@async_command
@report_engine_errors
async def skip(ctx: click.Context, item_id: int):
    """Skip ITEM_ID for today."""
    ensure_initialized(ctx)

    update = await get_orchestrator(ctx).skip_item(get_owner(ctx), item_id)
    _report_update(update)
