"""Daily plan orchestration.

Wires the pure allocator and state machine to the storage, catalog,
progress and event gateways. Every operation is owner-scoped and safe to
retry: regeneration is guarded by PlanHasProgress, set updates are
clamped and written with a compare-and-swap on the prior set counters
and status, and
the progress rollup is applied only by the writer that moves the plan
into `completed`. History reads fold the recorded training events into
streaks, per-day totals and adherence.
"""

from dataclasses import dataclass
from typing import Callable

from loguru import logger

from ..config import EngineConfig
from ..core.allocator import allocate
from ..core.day_boundary import plan_date_key
from ..core.state_machine import (
    Finalization,
    ItemTransition,
    finalize_if_complete,
    mark_item_completed,
    mark_set,
    skip_item,
    today_summary,
    update_sets_total,
)
from ..core.stats import (
    DEFAULT_ADHERENCE_WINDOW_DAYS,
    activity_dates,
    daily_stats,
    plan_adherence,
    user_streak,
    window_start,
)
from ..errors import ConcurrentUpdate, Forbidden, NotFound, PlanHasProgress, TransientGatewayError
from ..gateways import (
    Clock,
    ExerciseCatalogGateway,
    PersistenceGateway,
    ProgressRollupGateway,
    ProposalLedgerGateway,
    SystemClock,
    TrainingEventLog,
    TrainingEventSink,
)
from ..models.plan import ItemStatus, Plan, PlanItem, PlanStatus, PlanWithItems, TodaySummary
from ..models.progress import (
    DailyTrainingStats,
    PlanAdherence,
    PlanProposal,
    ProposalSource,
    TrainingEvent,
    TrainingEventType,
    UserProgress,
    UserStreak,
)
from ..models.survey import SurveyInput

MAX_CAS_ATTEMPTS = 3


@dataclass(frozen=True)
class ItemUpdate:
    """Result of an item operation."""

    item: PlanItem
    summary: TodaySummary
    plan_completed: bool = False

    def to_dict(self) -> dict:
        return {
            "item": self.item.to_dict(),
            "summary": self.summary.to_dict(),
            "plan_completed": self.plan_completed,
        }


ITEM_WRITE_FIELDS = ("sets_total", "sets_completed", "estimated_minutes", "status", "completed_at")
ITEM_GUARD_FIELDS = ("sets_total", "sets_completed", "status")


def _item_patch(before: PlanItem, after: PlanItem) -> dict:
    """Columns the transition changed."""
    return {
        name: getattr(after, name)
        for name in ITEM_WRITE_FIELDS
        if getattr(after, name) != getattr(before, name)
    }


def _item_guard(item: PlanItem) -> dict:
    return {name: getattr(item, name) for name in ITEM_GUARD_FIELDS}


class PlanOrchestrator:
    """Async façade over the plan engine."""

    def __init__(
        self,
        plans: PersistenceGateway,
        catalog: ExerciseCatalogGateway,
        progress: ProgressRollupGateway,
        proposals: ProposalLedgerGateway,
        events: TrainingEventSink | None = None,
        clock: Clock | None = None,
        config: EngineConfig | None = None,
        history: TrainingEventLog | None = None,
    ):
        self.plans = plans
        self.catalog = catalog
        self.progress = progress
        self.proposals = proposals
        self.events = events
        self.history = history
        self.config = config or EngineConfig()
        self.clock = clock or SystemClock(self.config.timezone)

    @classmethod
    def from_config(cls, config: EngineConfig, clock: Clock | None = None) -> "PlanOrchestrator":
        """Build an orchestrator backed by the SQLite repositories."""
        from ..db.repositories import (
            ExerciseCatalogRepository,
            PlanProposalRepository,
            PlanRepository,
            TrainingEventRepository,
            UserProgressRepository,
        )

        db_path = config.db_path
        events = TrainingEventRepository(db_path)
        return cls(
            plans=PlanRepository(db_path),
            catalog=ExerciseCatalogRepository(db_path),
            progress=UserProgressRepository(db_path),
            proposals=PlanProposalRepository(db_path),
            events=events,
            clock=clock,
            config=config,
            history=events,
        )

    def today_key(self) -> str:
        """App-day key for the current instant."""
        return plan_date_key(self.clock.now(), self.config.day_offset_hours)

    def default_survey(self) -> SurveyInput:
        """Survey used for silent generation."""
        return SurveyInput.autogen_default(
            exercises_count=self.config.default_exercises_count,
            time_minutes=self.config.default_time_minutes,
        )

    # Reads

    async def get_today_plan(self, owner_id: str) -> PlanWithItems | None:
        """Today's plan with its ordered items, or None."""
        plan = await self.plans.get_plan(owner_id, self.today_key())
        if plan is None:
            return None
        items = await self.plans.list_items(plan.id)
        return PlanWithItems(plan=plan, items=items)

    async def get_today_summary(self, owner_id: str) -> TodaySummary:
        """Completion summary for today; zeros when there is no plan."""
        today = await self.get_today_plan(owner_id)
        if today is None:
            return today_summary(None, [])
        return today_summary(today.plan, today.items)

    async def get_user_progress(self, owner_id: str) -> UserProgress:
        """Cumulative progress counters for an owner."""
        return await self.progress.get_progress(owner_id)

    async def get_user_streak(self, owner_id: str) -> UserStreak:
        """Current and best runs of app days with a completed exercise."""
        if self.history is None:
            return UserStreak()
        events = await self.history.list_events_by_day(
            owner_id, event_types=[TrainingEventType.ITEM_COMPLETED]
        )
        return user_streak(activity_dates(events), self.today_key())

    async def get_daily_stats(
        self,
        owner_id: str,
        from_date: str | None = None,
        to_date: str | None = None,
    ) -> list[DailyTrainingStats]:
        """Per-day totals between two app days, inclusive, most recent first."""
        if self.history is None:
            return []
        events = await self.history.list_events_by_day(owner_id, from_date, to_date)
        return daily_stats(events)

    async def get_plan_adherence(
        self,
        owner_id: str,
        window_days: int = DEFAULT_ADHERENCE_WINDOW_DAYS,
        target_per_day: int | None = None,
    ) -> PlanAdherence:
        """Days in the trailing window that met the target.

        Without `target_per_day` a day counts when its plan was completed.
        """
        today = self.today_key()
        stats = await self.get_daily_stats(owner_id, window_start(today, window_days), today)
        return plan_adherence(stats, today, window_days, target_per_day)

    # Generation

    async def generate_from_survey(
        self,
        owner_id: str,
        survey: SurveyInput,
        source: ProposalSource = ProposalSource.USER_SURVEY,
    ) -> PlanWithItems:
        """Create or top up today's plan from survey answers.

        Raises:
            NoCandidateExercises: No exercise survives the filters
            PlanHasProgress: The plan has progress and meets the target
        """
        now = self.clock.now()
        plan_date = plan_date_key(now, self.config.day_offset_hours)
        source = ProposalSource(source)
        log = logger.bind(owner_id=owner_id, plan_date=plan_date, source=source.value)

        plan = await self._get_or_create_plan(owner_id, plan_date)
        existing = await self.plans.list_items(plan.id)
        candidates = await self.catalog.list_exercises(survey.tier)

        allocation = allocate(existing, survey, candidates, now=now, plan_id=plan.id)

        if allocation.replace_existing and existing:
            await self.plans.delete_items(plan.id)
        inserted = await self.plans.insert_items(allocation.items)

        patch = {"total_estimated_minutes": allocation.total_estimated_minutes}
        if allocation.replace_existing:
            patch["status"] = PlanStatus.ACTIVE
        plan = await self.plans.update_plan(plan.id, patch) or plan

        await self.proposals.upsert_proposal(
            PlanProposal(owner_id=owner_id, plan_date=plan_date, source=source, plan_id=plan.id)
        )

        await self._record(
            TrainingEvent(
                event_type=TrainingEventType.PLAN_GENERATED,
                owner_id=owner_id,
                plan_id=plan.id,
                plan_date=plan_date,
                occurred_at=now,
                metadata={
                    "source": source.value,
                    "items_added": len(inserted),
                    "append": allocation.append_mode,
                    "survey": survey.to_dict(),
                },
            )
        )

        items = await self.plans.list_items(plan.id)
        finalization = await self._finalize(plan, items)

        log.info(
            f"Generated plan {plan.id}: {len(inserted)} new items, "
            f"{finalization.plan.total_estimated_minutes} min"
        )
        return PlanWithItems(plan=finalization.plan, items=items)

    async def ensure_today_plan_if_empty(
        self,
        owner_id: str,
        survey: SurveyInput | None = None,
    ) -> PlanWithItems | None:
        """Silently generate today's plan unless it already has enough items.

        Returns None when nothing was generated.
        """
        survey = survey or self.default_survey()
        plan_date = self.today_key()
        log = logger.bind(owner_id=owner_id, plan_date=plan_date)

        plan = await self.plans.get_plan(owner_id, plan_date)
        if plan is not None:
            items = await self.plans.list_items(plan.id)
            if len(items) >= survey.target_count:
                log.debug(f"Plan {plan.id} already has {len(items)} items, nothing to ensure")
                return None

        try:
            return await self.generate_from_survey(owner_id, survey, source=ProposalSource.AUTO_SILENT)
        except PlanHasProgress as e:
            log.debug(f"Skipping silent generation: {e}")
            return None

    # Item operations

    async def mark_set_completed(
        self,
        owner_id: str,
        item_id: int,
        value: int | None = None,
    ) -> ItemUpdate:
        """Increment sets_completed by one, or set it to `value`."""
        return await self._update_item(
            owner_id,
            item_id,
            lambda item: mark_set(item, value, now=self.clock.now()),
        )

    async def mark_item_completed(self, owner_id: str, item_id: int) -> ItemUpdate:
        """Complete every set of an item."""
        return await self._update_item(
            owner_id,
            item_id,
            lambda item: mark_item_completed(item, now=self.clock.now()),
        )

    async def update_item_sets_total(self, owner_id: str, item_id: int, new_total: int) -> ItemUpdate:
        """Resize an item and recompute its estimate and the plan total."""
        item, _ = await self._load_owned_item(owner_id, item_id)
        exercise = await self.catalog.get_exercise(item.exercise_ref)
        duration = exercise.duration_seconds if exercise else 0

        return await self._update_item(
            owner_id,
            item_id,
            lambda current: update_sets_total(current, new_total, duration, now=self.clock.now()),
            recompute_total=True,
        )

    async def skip_item(self, owner_id: str, item_id: int) -> ItemUpdate:
        """Mark a pending or in-progress item as skipped."""
        return await self._update_item(owner_id, item_id, skip_item)

    async def recompute_plan_total(self, plan_id: int) -> Plan | None:
        """Set a plan's total to the sum of its item estimates."""
        items = await self.plans.list_items(plan_id)
        total = sum(item.estimated_minutes for item in items)
        return await self.plans.update_plan(plan_id, {"total_estimated_minutes": total})

    # Internals

    async def _get_or_create_plan(self, owner_id: str, plan_date: str) -> Plan:
        plan = await self.plans.get_plan(owner_id, plan_date)
        if plan is not None:
            return plan
        logger.bind(owner_id=owner_id, plan_date=plan_date).debug("Creating plan")
        return await self.plans.create_plan(
            Plan(
                owner_id=owner_id,
                plan_date=plan_date,
                title=self.config.plan_title,
                status=PlanStatus.ACTIVE,
            )
        )

    async def _load_owned_item(self, owner_id: str, item_id: int) -> tuple[PlanItem, Plan]:
        item = await self.plans.get_item(item_id)
        if item is None:
            raise NotFound(f"Plan item {item_id} not found")
        plan = await self.plans.get_plan_by_id(item.plan_id)
        if plan is None:
            raise NotFound(f"Plan {item.plan_id} for item {item_id} not found")
        if plan.owner_id != owner_id:
            raise Forbidden(f"Plan item {item_id} does not belong to {owner_id}")
        return item, plan

    async def _update_item(
        self,
        owner_id: str,
        item_id: int,
        apply: Callable[[PlanItem], ItemTransition],
        recompute_total: bool = False,
    ) -> ItemUpdate:
        """Load, transition and persist an item, then try to finalize its plan.

        The write is conditional on the set counters and status that were
        read; on a lost race the item is reloaded and the transition
        re-applied.
        """
        log = logger.bind(owner_id=owner_id, item_id=item_id)

        for attempt in range(1, MAX_CAS_ATTEMPTS + 1):
            item, plan = await self._load_owned_item(owner_id, item_id)
            transition = apply(item)
            patch = _item_patch(item, transition.item)

            if not patch:
                updated = item
                break

            updated = await self.plans.update_item(item.id, patch, expected=_item_guard(item))
            if updated is not None:
                break
            log.debug(f"Item changed concurrently, retrying (attempt {attempt}/{MAX_CAS_ATTEMPTS})")
        else:
            raise ConcurrentUpdate(
                f"Plan item {item_id} kept changing; gave up after {MAX_CAS_ATTEMPTS} attempts"
            )

        await self._record_transition(owner_id, plan, item, updated, transition)

        if recompute_total:
            plan = await self.recompute_plan_total(plan.id) or plan

        items = await self.plans.list_items(plan.id)
        finalization = await self._finalize(plan, items)
        return ItemUpdate(
            item=updated,
            summary=today_summary(finalization.plan, items),
            plan_completed=finalization.completed_now,
        )

    async def _finalize(self, plan: Plan, items: list[PlanItem]) -> Finalization:
        """Complete the plan and apply the rollup, at most once.

        The status change and the progress counters are written together,
        so a failed write leaves the plan open and a retry applies both.
        """
        finalization = finalize_if_complete(plan, items, now=self.clock.now())
        if not finalization.completed_now:
            return finalization

        rollup = finalization.rollup
        completed = await self.plans.complete_plan(plan.id, plan.status, rollup)
        if completed is None:
            # Another writer finalized first and already applied the rollup
            current = await self.plans.get_plan_by_id(plan.id)
            return Finalization(plan=current or finalization.plan)

        await self._record(
            TrainingEvent(
                event_type=TrainingEventType.PLAN_COMPLETED,
                owner_id=plan.owner_id,
                plan_id=plan.id,
                plan_date=plan.plan_date,
                occurred_at=self.clock.now(),
                metadata={"active_minutes": rollup.active_minutes},
            )
        )
        logger.bind(owner_id=plan.owner_id, plan_id=plan.id).info(
            f"Plan completed, +{rollup.active_minutes} active minutes"
        )
        return Finalization(plan=completed, rollup=rollup)

    async def _record_transition(
        self,
        owner_id: str,
        plan: Plan,
        before: PlanItem,
        after: PlanItem,
        transition: ItemTransition,
    ) -> None:
        now = self.clock.now()
        base = {
            "owner_id": owner_id,
            "plan_id": after.plan_id,
            "item_id": after.id,
            "exercise_ref": after.exercise_ref,
            "sets_completed": after.sets_completed,
            "plan_date": plan.plan_date,
            "occurred_at": now,
        }

        if transition.set_completed:
            await self._record(
                TrainingEvent(
                    event_type=TrainingEventType.ITEM_SET_COMPLETED,
                    metadata={"previous_sets_completed": before.sets_completed},
                    **base,
                )
            )
        if transition.item_completed:
            await self._record(
                TrainingEvent(
                    event_type=TrainingEventType.ITEM_COMPLETED,
                    metadata={"estimated_minutes": after.estimated_minutes},
                    **base,
                )
            )
        if after.status == ItemStatus.SKIPPED and before.status != ItemStatus.SKIPPED:
            await self._record(TrainingEvent(event_type=TrainingEventType.ITEM_SKIPPED, **base))

    async def _record(self, event: TrainingEvent) -> None:
        if self.events is None:
            return
        try:
            await self.events.record(event)
        except TransientGatewayError as e:
            logger.bind(event_type=event.event_type.value, owner_id=event.owner_id).warning(
                f"Could not record training event: {e}"
            )
