"""Pure plan engine logic: day boundaries, allocation, item lifecycle and history stats."""

from .allocator import Allocation, allocate, filter_candidates, select_exercises
from .countdown import CountdownSnapshot, ResetCountdown
from .day_boundary import (
    AppDayBoundary,
    app_day_boundary,
    day_start,
    format_hms,
    ms_to_next_reset,
    next_day_start,
    plan_date_key,
)
from .rules import derive_status, estimate_minutes
from .stats import activity_dates, daily_stats, plan_adherence, user_streak
from .state_machine import (
    Finalization,
    ItemTransition,
    finalize_if_complete,
    mark_item_completed,
    mark_set,
    skip_item,
    today_summary,
    update_sets_total,
)

__all__ = [
    "allocate",
    "Allocation",
    "app_day_boundary",
    "activity_dates",
    "AppDayBoundary",
    "CountdownSnapshot",
    "daily_stats",
    "day_start",
    "derive_status",
    "estimate_minutes",
    "filter_candidates",
    "Finalization",
    "finalize_if_complete",
    "format_hms",
    "ItemTransition",
    "mark_item_completed",
    "mark_set",
    "ms_to_next_reset",
    "next_day_start",
    "plan_adherence",
    "plan_date_key",
    "ResetCountdown",
    "select_exercises",
    "skip_item",
    "today_summary",
    "update_sets_total",
    "user_streak",
]
