"""Pytest configuration and fixtures."""

import itertools
import tempfile
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
import pytest_asyncio

from daily_trainer.config import EngineConfig
from daily_trainer.db import init_db, seed_catalog
from daily_trainer.models.exercises import DEFAULT_CATALOG, CatalogExercise
from daily_trainer.models.plan import Plan, PlanItem, PlanStatus
from daily_trainer.models.progress import PlanProposal, TrainingEvent, UserProgress
from daily_trainer.services.orchestrator import PlanOrchestrator


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, value: datetime) -> None:
        self.current = value


class InMemoryPlanStore:
    """PersistenceGateway backed by dicts; hands out copies like a real store.

    Plan completion applies its rollup to `progress`, as the SQLite store
    does in the same transaction.
    """

    def __init__(self, progress=None):
        self.progress = progress
        self.plans: dict[int, Plan] = {}
        self.items: dict[int, PlanItem] = {}
        self._plan_ids = itertools.count(1)
        self._item_ids = itertools.count(1)
        self.update_item_calls = 0

    async def get_plan(self, owner_id, plan_date):
        for plan in self.plans.values():
            if (
                plan.owner_id == owner_id
                and plan.plan_date == plan_date
                and plan.status != PlanStatus.ABORTED
            ):
                return replace(plan)
        return None

    async def get_plan_by_id(self, plan_id):
        plan = self.plans.get(plan_id)
        return replace(plan) if plan else None

    async def create_plan(self, plan):
        existing = await self.get_plan(plan.owner_id, plan.plan_date)
        if existing:
            return existing
        created = replace(plan, id=next(self._plan_ids))
        self.plans[created.id] = created
        return replace(created)

    async def update_plan(self, plan_id, patch, expected_status=None):
        plan = self.plans.get(plan_id)
        if plan is None:
            return None
        if expected_status is not None and plan.status != expected_status:
            return None
        updated = replace(plan, **patch)
        self.plans[plan_id] = updated
        return replace(updated)

    async def complete_plan(self, plan_id, expected_status, rollup):
        plan = self.plans.get(plan_id)
        if plan is None or plan.status != expected_status:
            return None
        if self.progress is not None:
            self.progress.apply(rollup)
        updated = replace(plan, status=PlanStatus.COMPLETED)
        self.plans[plan_id] = updated
        return replace(updated)

    async def list_items(self, plan_id):
        items = [item for item in self.items.values() if item.plan_id == plan_id]
        return [replace(item) for item in sorted(items, key=lambda i: i.order_index)]

    async def get_item(self, item_id):
        item = self.items.get(item_id)
        return replace(item) if item else None

    async def insert_items(self, items):
        inserted = []
        for item in items:
            stored = replace(item, id=next(self._item_ids))
            self.items[stored.id] = stored
            inserted.append(replace(stored))
        return inserted

    async def update_item(self, item_id, patch, expected=None):
        self.update_item_calls += 1
        item = self.items.get(item_id)
        if item is None:
            return None
        if expected and any(getattr(item, name) != value for name, value in expected.items()):
            return None
        updated = replace(item, **patch)
        assert 0 <= updated.sets_completed <= updated.sets_total
        self.items[item_id] = updated
        return replace(updated)

    async def delete_items(self, plan_id):
        for item_id in [i.id for i in self.items.values() if i.plan_id == plan_id]:
            del self.items[item_id]


class InMemoryCatalog:
    """ExerciseCatalogGateway over a fixed list."""

    def __init__(self, exercises: list[CatalogExercise]):
        self.exercises = list(exercises)

    async def list_exercises(self, tier):
        return list(self.exercises)

    async def get_exercise(self, exercise_id):
        for exercise in self.exercises:
            if exercise.id == exercise_id:
                return exercise
        return None


class InMemoryProgress:
    """ProgressRollupGateway keeping counters per owner."""

    def __init__(self):
        self.progress: dict[str, UserProgress] = {}

    def _get(self, owner_id):
        return self.progress.setdefault(owner_id, UserProgress(owner_id=owner_id))

    def apply(self, rollup):
        progress = self._get(rollup.owner_id)
        progress.minutes_active += rollup.active_minutes
        progress.training_days += rollup.training_days

    async def add_active_minutes(self, owner_id, minutes):
        self._get(owner_id).minutes_active += minutes

    async def increment_training_days(self, owner_id, n=1):
        self._get(owner_id).training_days += n

    async def get_progress(self, owner_id):
        return replace(self._get(owner_id))


class InMemoryProposals:
    """ProposalLedgerGateway keyed by (owner, plan_date, source)."""

    def __init__(self):
        self.rows: dict[tuple, PlanProposal] = {}

    async def upsert_proposal(self, proposal):
        key = (proposal.owner_id, proposal.plan_date, proposal.source)
        self.rows[key] = proposal
        return proposal


class RecordingEventSink:
    """TrainingEventSink and TrainingEventLog over a list."""

    def __init__(self):
        self.events: list[TrainingEvent] = []

    async def record(self, event):
        self.events.append(event)

    def types(self) -> list[str]:
        return [event.event_type.value for event in self.events]

    async def list_events_by_day(self, owner_id, from_date=None, to_date=None, event_types=None):
        return [
            event
            for event in self.events
            if event.owner_id == owner_id
            and event.plan_date
            and (from_date is None or event.plan_date >= from_date)
            and (to_date is None or event.plan_date <= to_date)
            and (not event_types or event.event_type in event_types)
        ]


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest_asyncio.fixture
async def seeded_db_path(temp_db_path):
    """Initialized database with the built-in catalog."""
    await init_db(temp_db_path)
    await seed_catalog(temp_db_path)
    return temp_db_path


@pytest.fixture
def clock():
    """Clock fixed at 2024-05-10 09:30 UTC."""
    return FakeClock(datetime(2024, 5, 10, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def plan_store(progress_store):
    return InMemoryPlanStore(progress_store)


@pytest.fixture
def catalog():
    return InMemoryCatalog(DEFAULT_CATALOG)


@pytest.fixture
def progress_store():
    return InMemoryProgress()


@pytest.fixture
def proposals():
    return InMemoryProposals()


@pytest.fixture
def event_sink():
    return RecordingEventSink()


@pytest.fixture
def engine_config(tmp_path):
    return EngineConfig(data_dir=tmp_path)


@pytest.fixture
def orchestrator(plan_store, catalog, progress_store, proposals, event_sink, clock, engine_config):
    """Orchestrator wired to in-memory gateways."""
    return PlanOrchestrator(
        plans=plan_store,
        catalog=catalog,
        progress=progress_store,
        proposals=proposals,
        events=event_sink,
        clock=clock,
        config=engine_config,
        history=event_sink,
    )


def make_exercise(
    exercise_id: str,
    duration: int,
    category: str | None = "technique",
    premium: bool = False,
    order_index: int = 0,
) -> CatalogExercise:
    """Build a catalog exercise with a readable name."""
    return CatalogExercise(
        id=exercise_id,
        name=exercise_id.replace("-", " ").title(),
        duration_seconds=duration,
        category_tag=category,
        is_premium=premium,
        order_index=order_index,
    )


@pytest.fixture
def exercise_factory():
    return make_exercise
