"""Numeric rules shared by the allocator and the state machine."""

import math

from ..config import MAX_SETS, MIN_SETS
from ..models.plan import ItemStatus
from ..utils.category_utils import is_strength_category

STRENGTH_SETS = 4
DEFAULT_SETS = 3


def clamp(value: int, low: int, high: int) -> int:
    """Clamp `value` into [low, high]."""
    return max(low, min(value, high))


def clamp_sets_total(value: int | None) -> int:
    """Clamp a requested set count into [1, 10]; missing counts as 1."""
    return clamp(value or MIN_SETS, MIN_SETS, MAX_SETS)


def estimate_minutes(duration_seconds: int, sets_total: int, rest_seconds: int) -> int:
    """Estimated minutes for an item.

    Every set plays the full exercise, with rest between consecutive
    sets only:

        ceil((duration * sets + rest * max(0, sets - 1)) / 60)
    """
    total_seconds = (duration_seconds or 0) * sets_total + (rest_seconds or 0) * max(
        0, sets_total - 1
    )
    return math.ceil(total_seconds / 60)


def sets_for_category(category_tag: str | None) -> int:
    """Default set count: 4 for strength-like categories, 3 otherwise."""
    return STRENGTH_SETS if is_strength_category(category_tag) else DEFAULT_SETS


def derive_status(sets_completed: int, sets_total: int) -> ItemStatus:
    """Item status implied by its set counters."""
    if sets_completed <= 0:
        return ItemStatus.PENDING
    if sets_completed >= sets_total:
        return ItemStatus.COMPLETED
    return ItemStatus.IN_PROGRESS


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return math.floor(value + 0.5)
