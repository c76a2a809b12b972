"""Collaborator interfaces consumed by the plan engine.

The SQLite repositories in `daily_trainer.db` implement these, but any
object with matching coroutines works; tests use in-memory fakes.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable
from zoneinfo import ZoneInfo

from .models.exercises import CatalogExercise
from .models.plan import Plan, PlanItem, PlanStatus
from .models.progress import (
    PlanProposal,
    ProgressRollup,
    TrainingEvent,
    TrainingEventType,
    UserProgress,
)
from .models.survey import SubscriptionTier


@runtime_checkable
class Clock(Protocol):
    """Source of the current instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock returning aware local time.

    With an IANA zone name the datetimes carry a ZoneInfo, so adding a day
    to a local midnight lands on the next local midnight across DST
    changes. Without one the host's current UTC offset is fixed into the
    result, and a boundary computed before a DST change is an hour off
    until the countdown's drift check re-anchors it.
    """

    def __init__(self, timezone: str | None = None):
        self.tz = ZoneInfo(timezone) if timezone else None

    def now(self) -> datetime:
        if self.tz is not None:
            return datetime.now(self.tz)
        return datetime.now().astimezone()


class PersistenceGateway(Protocol):
    """Owner-scoped storage for plans and plan items."""

    async def get_plan(self, owner_id: str, plan_date: str) -> Plan | None: ...

    async def get_plan_by_id(self, plan_id: int) -> Plan | None: ...

    async def create_plan(self, plan: Plan) -> Plan: ...

    async def update_plan(
        self,
        plan_id: int,
        patch: dict,
        expected_status: PlanStatus | None = None,
    ) -> Plan | None:
        """Apply `patch`; return None if `expected_status` did not match."""
        ...

    async def complete_plan(
        self,
        plan_id: int,
        expected_status: PlanStatus,
        rollup: ProgressRollup,
    ) -> Plan | None:
        """Set status `completed` and apply `rollup` to progress, all or nothing.

        Returns None without applying anything if `expected_status` did not match.
        """
        ...

    async def list_items(self, plan_id: int) -> list[PlanItem]: ...

    async def get_item(self, item_id: int) -> PlanItem | None: ...

    async def insert_items(self, items: list[PlanItem]) -> list[PlanItem]: ...

    async def update_item(
        self,
        item_id: int,
        patch: dict,
        expected: dict | None = None,
    ) -> PlanItem | None:
        """Apply `patch`; return None if any `expected` column value did not match."""
        ...

    async def delete_items(self, plan_id: int) -> None: ...


class ExerciseCatalogGateway(Protocol):
    """Read access to candidate exercises."""

    async def list_exercises(self, tier: SubscriptionTier) -> list[CatalogExercise]: ...

    async def get_exercise(self, exercise_id: str) -> CatalogExercise | None: ...


class ProgressRollupGateway(Protocol):
    """Cumulative per-user progress counters."""

    async def add_active_minutes(self, owner_id: str, minutes: int) -> None: ...

    async def increment_training_days(self, owner_id: str, n: int = 1) -> None: ...

    async def get_progress(self, owner_id: str) -> UserProgress: ...


class ProposalLedgerGateway(Protocol):
    """Idempotent record of plan generation attempts."""

    async def upsert_proposal(self, proposal: PlanProposal) -> PlanProposal: ...


class TrainingEventSink(Protocol):
    """Receives training events; recording is best effort."""

    async def record(self, event: TrainingEvent) -> None: ...


class TrainingEventLog(Protocol):
    """Read access to recorded training events."""

    async def list_events_by_day(
        self,
        owner_id: str,
        from_date: str | None = None,
        to_date: str | None = None,
        event_types: list[TrainingEventType] | None = None,
    ) -> list[TrainingEvent]:
        """Events whose app day falls in [from_date, to_date], oldest first."""
        ...
