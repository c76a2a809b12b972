"""Plan item selection and sizing.

Given the items already in today's plan, the survey answers and the
candidate exercises, decide which new items to create. The allocator is
pure: it never touches storage and raises typed errors instead of
returning empty plans.

Two modes:

- fresh: no existing item has progress, so existing items are
  discarded and `target_count` new items are built from order 0.
- append: some progress exists but the plan is short of the target, so
  only the missing items are added, preferring exercises not already in
  the plan and continuing the order_index sequence.
"""

from dataclasses import dataclass, field
from datetime import datetime
from itertools import chain, cycle, islice

from loguru import logger

from ..config import DEFAULT_REST_SECONDS
from ..errors import NoCandidateExercises, PlanHasProgress
from ..models.exercises import CatalogExercise
from ..models.plan import ItemStatus, PlanItem
from ..models.survey import SubscriptionTier, SurveyInput
from ..utils.category_utils import normalize_category_tag
from .rules import estimate_minutes, sets_for_category


@dataclass
class Allocation:
    """Result of an allocation run."""

    items: list[PlanItem] = field(default_factory=list)
    replace_existing: bool = True
    total_estimated_minutes: int = 0

    @property
    def append_mode(self) -> bool:
        return not self.replace_existing


def filter_candidates(
    candidates: list[CatalogExercise],
    survey: SurveyInput,
) -> list[CatalogExercise]:
    """Apply tier and category filters, keeping catalog order.

    Premium exercises are dropped for free users unless the survey comes
    from silent autogeneration. With a category filter, exercises whose
    tag does not resolve are excluded rather than defaulted.
    """
    block_premium = (
        survey.tier == SubscriptionTier.FREE and not survey.allow_premium_during_autogen
    )

    filtered = []
    for exercise in candidates:
        if block_premium and exercise.is_premium:
            continue
        if survey.categories:
            tag = normalize_category_tag(exercise.category_tag)
            if tag is None or tag not in survey.categories:
                continue
        filtered.append(exercise)
    return filtered


def select_exercises(
    ordered: list[CatalogExercise],
    needed: int,
    exclude_ids: set[str] | None = None,
) -> list[CatalogExercise]:
    """Pick `needed` exercises, unique ones first.

    Exercises in `exclude_ids` are skipped on the first pass. When the
    unique pass is short, the full ordered pool is repeated after it, so
    small catalogs produce duplicate references instead of short plans.
    """
    if needed <= 0 or not ordered:
        return []

    exclude_ids = exclude_ids or set()
    unique = [ex for ex in ordered if ex.id not in exclude_ids]
    if len(unique) >= needed:
        return unique[:needed]
    return list(islice(chain(unique, cycle(ordered)), needed))


def allocate(
    existing_items: list[PlanItem],
    survey: SurveyInput,
    candidates: list[CatalogExercise],
    now: datetime | None = None,
    plan_id: int | None = None,
) -> Allocation:
    """Select and size new plan items.

    Args:
        existing_items: Items currently in the plan (any order)
        survey: Survey answers
        candidates: Exercises from the catalog, in catalog order
        now: Timestamp for pre-completed items
        plan_id: Plan the new items belong to

    Returns:
        Allocation with the new items and the plan total across kept and
        new items

    Raises:
        NoCandidateExercises: Nothing survives the filters
        PlanHasProgress: The plan has progress and already meets the target
    """
    now = now or datetime.now().astimezone()

    pool = filter_candidates(candidates, survey)
    if not pool:
        raise NoCandidateExercises(
            f"No candidate exercises for tier={survey.tier.value} "
            f"categories={sorted(survey.categories) or 'any'}"
        )

    # sorted() is stable, so equal durations keep catalog order
    ordered = sorted(pool, key=lambda ex: ex.duration_seconds or 0)

    existing = sorted(existing_items, key=lambda item: item.order_index)
    target = survey.target_count
    has_progress = any(item.sets_completed > 0 for item in existing)

    if has_progress and len(existing) >= target:
        raise PlanHasProgress(
            plan_id=plan_id,
            existing_count=len(existing),
            target_count=target,
        )

    append_mode = has_progress
    if append_mode:
        needed = target - len(existing)
        exclude_ids = {str(item.exercise_ref) for item in existing}
        start_index = max(item.order_index for item in existing) + 1
    else:
        needed = target
        exclude_ids = set()
        start_index = 0

    selected = select_exercises(ordered, needed, exclude_ids)

    new_items = []
    for offset, exercise in enumerate(selected):
        sets_total = sets_for_category(exercise.category_tag)
        estimated = estimate_minutes(exercise.duration_seconds, sets_total, DEFAULT_REST_SECONDS)
        # Free users get premium items pre-completed so the day can reach 100%
        auto_completed = survey.tier == SubscriptionTier.FREE and exercise.is_premium

        new_items.append(
            PlanItem(
                plan_id=plan_id,
                exercise_ref=exercise.id,
                order_index=start_index + offset,
                category_tag=exercise.category_tag,
                sets_total=sets_total,
                sets_completed=sets_total if auto_completed else 0,
                rest_seconds=DEFAULT_REST_SECONDS,
                estimated_minutes=estimated,
                status=ItemStatus.COMPLETED if auto_completed else ItemStatus.PENDING,
                completed_at=now if auto_completed else None,
            )
        )

    kept_minutes = sum(item.estimated_minutes for item in existing) if append_mode else 0
    total = kept_minutes + sum(item.estimated_minutes for item in new_items)

    logger.bind(plan_id=plan_id, append=append_mode).debug(
        f"Allocated {len(new_items)} items from {len(ordered)} candidates "
        f"(target={target}, existing={len(existing)})"
    )

    return Allocation(
        items=new_items,
        replace_existing=not append_mode,
        total_estimated_minutes=total,
    )
