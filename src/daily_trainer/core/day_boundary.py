"""App-day boundary arithmetic.

An app day starts at local midnight shifted by a configurable number of
hours. With an offset of 5 the day runs from 05:00 to 05:00, so 03:00
on the 13th still belongs to the app day that began on the 12th.

All functions are pure. They operate on the wall clock of the `now`
they receive, so pass an aware local datetime (see SystemClock) or a
naive local one, never a UTC instant you expect to be localised. Day
steps are wall-clock steps, so with a ZoneInfo datetime the next start
is the next local midnight even across a DST change.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

ONE_DAY = timedelta(days=1)
MS_IN_SECOND = 1000


@dataclass(frozen=True)
class AppDayBoundary:
    """Start of the current app day and of the next one."""

    start: datetime
    next_start: datetime

    @property
    def plan_date(self) -> str:
        return self.start.date().isoformat()


def day_start(now: datetime, offset_hours: int = 0) -> datetime:
    """Return the most recent shifted midnight at or before `now`.

    Args:
        now: Reference instant
        offset_hours: Hours added to local midnight; any integer

    Returns:
        Start of the app day containing `now`
    """
    shift = timedelta(hours=offset_hours)
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    start = midnight + shift

    while start > now:
        midnight -= ONE_DAY
        start = midnight + shift

    # Large negative offsets land more than a day back
    while start + ONE_DAY <= now:
        start += ONE_DAY

    return start


def next_day_start(now: datetime, offset_hours: int = 0) -> datetime:
    """Return the start of the app day after the one containing `now`."""
    return day_start(now, offset_hours) + ONE_DAY


def app_day_boundary(now: datetime, offset_hours: int = 0) -> AppDayBoundary:
    """Return both boundaries of the app day containing `now`."""
    start = day_start(now, offset_hours)
    return AppDayBoundary(start=start, next_start=start + ONE_DAY)


def plan_date_key(now: datetime, offset_hours: int = 0) -> str:
    """Calendar key (YYYY-MM-DD) of the app day containing `now`."""
    return day_start(now, offset_hours).date().isoformat()


def ms_until(target: datetime, now: datetime) -> int:
    """Milliseconds from `now` to `target`, clamped at 0."""
    if target.tzinfo is not None and now.tzinfo is not None:
        # Same-zone subtraction ignores a DST change in between
        target = target.astimezone(timezone.utc)
        now = now.astimezone(timezone.utc)
    diff = int((target - now) / timedelta(milliseconds=1))
    return diff if diff > 0 else 0


def ms_to_next_reset(now: datetime, offset_hours: int = 0) -> int:
    """Milliseconds until the next app-day start, clamped at 0."""
    return ms_until(next_day_start(now, offset_hours), now)


def split_hms(ms: int | float) -> tuple[int, int, int]:
    """Split milliseconds into whole (hours, minutes, seconds)."""
    clamped = max(0, int(ms))
    total_seconds = clamped // MS_IN_SECOND
    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60
    seconds = total_seconds % 60
    return hours, minutes, seconds


def format_hms(ms: int | float) -> str:
    """Format milliseconds as HH:MM:SS, flooring and clamping at 0."""
    hours, minutes, seconds = split_hms(ms)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
