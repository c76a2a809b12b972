"""Training history aggregates: streaks, per-day totals and adherence.

Everything here works on app-day keys (YYYY-MM-DD) and on training
events the caller already loaded, oldest first.
"""

from collections import defaultdict
from datetime import date, timedelta
from typing import Iterable

from ..models.progress import (
    DailyTrainingStats,
    PlanAdherence,
    TrainingEvent,
    TrainingEventType,
    UserStreak,
)
from .rules import round_half_up

DEFAULT_ADHERENCE_WINDOW_DAYS = 30
ONE_DAY = timedelta(days=1)


def user_streak(activity_dates: Iterable[str], today: str) -> UserStreak:
    """Current and best runs of consecutive app days.

    Args:
        activity_dates: App-day keys with a completed exercise, in any
            order and possibly repeated
        today: App-day key of the current day

    Returns:
        UserStreak; `current` is 0 unless today itself has activity
    """
    days = sorted({date.fromisoformat(value) for value in activity_dates})

    best = 0
    run = 0
    previous = None
    for day in days:
        run = run + 1 if previous is not None and day - previous == ONE_DAY else 1
        best = max(best, run)
        previous = day

    present = set(days)
    current = 0
    cursor = date.fromisoformat(today)
    while cursor in present:
        current += 1
        cursor -= ONE_DAY

    return UserStreak(current=current, best=best)


def activity_dates(events: Iterable[TrainingEvent]) -> list[str]:
    """App days on which an exercise was completed."""
    return [
        event.plan_date
        for event in events
        if event.event_type == TrainingEventType.ITEM_COMPLETED and event.plan_date
    ]


def daily_stats(events: Iterable[TrainingEvent]) -> list[DailyTrainingStats]:
    """Fold events into per-day totals, most recent day first.

    Events without a plan_date are ignored. An item completed or skipped
    more than once on the same day counts once, and its minutes come from
    its latest completion.
    """
    days: set[str] = set()
    completed: dict[str, dict[int | None, int]] = defaultdict(dict)
    skipped: dict[str, set[int | None]] = defaultdict(set)
    sets: dict[str, int] = defaultdict(int)
    plans_completed: set[str] = set()

    for event in events:
        day = event.plan_date
        if not day:
            continue
        days.add(day)

        if event.event_type == TrainingEventType.ITEM_COMPLETED:
            completed[day][event.item_id] = int(event.metadata.get("estimated_minutes") or 0)
        elif event.event_type == TrainingEventType.ITEM_SKIPPED:
            skipped[day].add(event.item_id)
        elif event.event_type == TrainingEventType.ITEM_SET_COMPLETED:
            before = int(event.metadata.get("previous_sets_completed") or 0)
            sets[day] += max(0, (event.sets_completed or 0) - before)
        elif event.event_type == TrainingEventType.PLAN_COMPLETED:
            plans_completed.add(day)

    return [
        DailyTrainingStats(
            stat_date=day,
            exercises_completed=len(completed[day]),
            exercises_skipped=len(skipped[day]),
            sets_completed=sets[day],
            minutes_completed=sum(completed[day].values()),
            plan_completed=day in plans_completed,
        )
        for day in sorted(days, reverse=True)
    ]


def window_start(today: str, window_days: int) -> str:
    """First app-day key of a window of `window_days` ending today."""
    if window_days < 1:
        raise ValueError(f"window_days must be at least 1, got {window_days}")
    return (date.fromisoformat(today) - timedelta(days=window_days - 1)).isoformat()


def plan_adherence(
    stats: Iterable[DailyTrainingStats],
    today: str,
    window_days: int = DEFAULT_ADHERENCE_WINDOW_DAYS,
    target_per_day: int | None = None,
) -> PlanAdherence:
    """Share of the trailing window, today included, that met the target.

    Args:
        stats: Per-day totals; days outside the window are ignored
        today: App-day key closing the window
        window_days: Window length in days
        target_per_day: Completed exercises needed for a day to count.
            None means the day's plan had to be completed.

    Raises:
        ValueError: If window_days or target_per_day is below 1
    """
    start = window_start(today, window_days)
    if target_per_day is not None and target_per_day < 1:
        raise ValueError(f"target_per_day must be at least 1, got {target_per_day}")

    window = [day for day in stats if start <= day.stat_date <= today]

    def target_met(day: DailyTrainingStats) -> bool:
        if target_per_day is None:
            return day.plan_completed
        return day.exercises_completed >= target_per_day

    achieved = sum(1 for day in window if target_met(day))
    return PlanAdherence(
        window_days=window_days,
        days_with_activity=sum(1 for day in window if day.has_activity),
        days_target_achieved=achieved,
        adherence_pct=round_half_up(100 * achieved / window_days),
    )
