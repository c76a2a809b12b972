"""Plan and plan item lifecycle.

Item states move pending -> in_progress -> completed (or straight to
completed when one call finishes every set). `skipped` is terminal and
only reachable through skip_item. Outside of `skipped`, the status is
always derived from the set counters:

    sets_completed == 0           -> pending
    sets_completed == sets_total  -> completed
    otherwise                     -> in_progress

Functions here never mutate their inputs; they return updated copies.
"""

from dataclasses import dataclass, replace
from datetime import datetime

from ..errors import InvalidTransition
from ..models.plan import ItemStatus, Plan, PlanItem, PlanStatus, TodaySummary
from ..models.progress import ProgressRollup
from .rules import clamp, clamp_sets_total, derive_status, estimate_minutes, round_half_up


@dataclass(frozen=True)
class ItemTransition:
    """An item update plus the progress deltas it produced."""

    item: PlanItem
    set_completed: bool = False
    item_completed: bool = False


@dataclass(frozen=True)
class Finalization:
    """Plan after a finalization check, with the rollup to apply if any."""

    plan: Plan
    rollup: ProgressRollup | None = None

    @property
    def completed_now(self) -> bool:
        return self.rollup is not None


def _now(now: datetime | None) -> datetime:
    return now or datetime.now().astimezone()


def _ensure_not_skipped(item: PlanItem) -> None:
    if item.status == ItemStatus.SKIPPED:
        raise InvalidTransition(f"Item {item.id} was skipped")


def _with_sets(item: PlanItem, sets_completed: int, now: datetime) -> PlanItem:
    status = derive_status(sets_completed, item.sets_total)
    if status == ItemStatus.COMPLETED:
        completed_at = item.completed_at if item.is_completed and item.completed_at else now
    else:
        completed_at = None
    return replace(item, sets_completed=sets_completed, status=status, completed_at=completed_at)


def mark_set(item: PlanItem, value: int | None = None, now: datetime | None = None) -> ItemTransition:
    """Record set progress on an item.

    Args:
        item: Current item state
        value: Explicit sets_completed value; increments by one when None
        now: Timestamp for completion

    Returns:
        ItemTransition; `set_completed` is set when the counter increased
        and `item_completed` when it reached sets_total from below
    """
    _ensure_not_skipped(item)
    now = _now(now)
    current = item.sets_completed
    if value is None:
        new_value = clamp(current + 1, 0, item.sets_total)
    else:
        new_value = clamp(int(value), 0, item.sets_total)

    updated = _with_sets(item, new_value, now)
    return ItemTransition(
        item=updated,
        set_completed=new_value > current,
        item_completed=new_value >= item.sets_total and current < item.sets_total,
    )


def mark_item_completed(item: PlanItem, now: datetime | None = None) -> ItemTransition:
    """Complete every set of an item. Idempotent."""
    _ensure_not_skipped(item)
    now = _now(now)
    was_completed = item.is_completed and item.sets_completed >= item.sets_total
    updated = replace(
        item,
        sets_completed=item.sets_total,
        status=ItemStatus.COMPLETED,
        completed_at=item.completed_at if was_completed and item.completed_at else now,
    )
    return ItemTransition(
        item=updated,
        set_completed=item.sets_completed < item.sets_total,
        item_completed=not was_completed,
    )


def update_sets_total(
    item: PlanItem,
    new_total: int,
    duration_seconds: int,
    now: datetime | None = None,
) -> ItemTransition:
    """Resize an item.

    The total is clamped to [1, 10] and sets_completed is clamped down to
    it, never up. The estimate is recomputed from the exercise duration.
    """
    now = _now(now)
    sets_total = clamp_sets_total(new_total)
    sets_completed = min(item.sets_completed, sets_total)
    resized = replace(
        item,
        sets_total=sets_total,
        estimated_minutes=estimate_minutes(duration_seconds, sets_total, item.rest_seconds),
    )
    if item.status == ItemStatus.SKIPPED:
        return ItemTransition(item=replace(resized, sets_completed=sets_completed))

    updated = _with_sets(resized, sets_completed, now)
    return ItemTransition(
        item=updated,
        item_completed=updated.is_completed and not item.is_completed,
    )


def skip_item(item: PlanItem) -> ItemTransition:
    """Mark a pending or in-progress item as skipped."""
    if item.status == ItemStatus.SKIPPED:
        return ItemTransition(item=item)
    if item.status not in (ItemStatus.PENDING, ItemStatus.IN_PROGRESS):
        raise InvalidTransition(f"Cannot skip item {item.id} in status {item.status.value}")
    return ItemTransition(item=replace(item, status=ItemStatus.SKIPPED, completed_at=None))


def finalize_if_complete(
    plan: Plan,
    items: list[PlanItem],
    now: datetime | None = None,
) -> Finalization:
    """Complete the plan when every item is completed.

    The rollup (sum of item estimates, one training day) is produced only
    on the transition into `completed`; an already completed plan or an
    empty one yields no rollup, so repeated calls apply it once.
    """
    if not items or plan.is_completed:
        return Finalization(plan=plan)
    if any(item.status != ItemStatus.COMPLETED for item in items):
        return Finalization(plan=plan)

    completed = replace(plan, status=PlanStatus.COMPLETED, updated_at=_now(now))
    return Finalization(
        plan=completed,
        rollup=ProgressRollup(
            owner_id=plan.owner_id,
            plan_id=plan.id,
            active_minutes=sum(item.estimated_minutes for item in items),
            training_days=1,
        ),
    )


def today_summary(plan: Plan | None, items: list[PlanItem]) -> TodaySummary:
    """Aggregate completion for a plan.

    Minutes completed are prorated per item by its sets ratio.
    """
    if plan is None:
        return TodaySummary()

    minutes_completed = 0
    for item in items:
        sets_total = max(1, item.sets_total)
        sets_completed = clamp(item.sets_completed, 0, sets_total)
        minutes_completed += round_half_up(item.estimated_minutes * sets_completed / sets_total)

    return TodaySummary(
        plan_id=plan.id,
        status=plan.status,
        total_items=len(items),
        items_completed=sum(1 for item in items if item.status == ItemStatus.COMPLETED),
        total_estimated_minutes=plan.total_estimated_minutes,
        minutes_completed=minutes_completed,
    )
