"""User progress, plan proposals and training events."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass
class UserProgress:
    """Cumulative progress counters for a user."""

    owner_id: str
    minutes_active: int = 0
    training_days: int = 0
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "owner_id": self.owner_id,
            "minutes_active": self.minutes_active,
            "training_days": self.training_days,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass(frozen=True)
class ProgressRollup:
    """Amounts to add to a user's progress when a plan completes."""

    owner_id: str
    plan_id: int | None
    active_minutes: int
    training_days: int = 1


class ProposalSource(str, Enum):
    """What triggered a plan generation."""

    AUTO_SILENT = "auto_silent"
    USER_SURVEY = "user_survey"
    AI_RECOMMENDATION = "ai_recommendation"
    COACH_TEMPLATE = "coach_template"
    OTHER = "other"


def make_idempotency_key(owner_id: str, plan_date: str, source: "ProposalSource | str") -> str:
    """Build the idempotency key for a plan proposal."""
    source_value = source.value if isinstance(source, ProposalSource) else str(source)
    return f"{owner_id}:{plan_date}:{source_value}"


@dataclass
class PlanProposal:
    """Bookkeeping row for a generation attempt.

    Unique on (owner_id, plan_date, source); repeated attempts from the
    same trigger update the same row.
    """

    owner_id: str
    plan_date: str
    source: ProposalSource
    plan_id: int | None = None
    idempotency_key: str | None = None
    id: int | None = None

    def __post_init__(self):
        self.source = ProposalSource(self.source)
        if self.idempotency_key is None:
            self.idempotency_key = make_idempotency_key(self.owner_id, self.plan_date, self.source)


class TrainingEventType(str, Enum):
    """Training events recorded by the engine."""

    PLAN_GENERATED = "plan_generated"
    ITEM_SET_COMPLETED = "item_set_completed"
    ITEM_COMPLETED = "item_completed"
    ITEM_SKIPPED = "item_skipped"
    PLAN_COMPLETED = "plan_completed"


@dataclass
class TrainingEvent:
    """A progress event emitted by plan operations."""

    event_type: TrainingEventType
    owner_id: str
    plan_id: int | None = None
    item_id: int | None = None
    exercise_ref: str | None = None
    sets_completed: int | None = None
    plan_date: str | None = None
    occurred_at: datetime = field(default_factory=datetime.now)
    metadata: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "event_type": self.event_type.value,
            "owner_id": self.owner_id,
            "plan_id": self.plan_id,
            "item_id": self.item_id,
            "exercise_ref": self.exercise_ref,
            "sets_completed": self.sets_completed,
            "plan_date": self.plan_date,
            "occurred_at": self.occurred_at.isoformat(),
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class UserStreak:
    """Consecutive app days with at least one completed exercise.

    `current` counts back from today and is 0 when today has no
    completed exercise yet; `best` is the longest run on record.
    """

    current: int = 0
    best: int = 0

    def to_dict(self) -> dict:
        return {"current": self.current, "best": self.best}


@dataclass(frozen=True)
class DailyTrainingStats:
    """Activity totals for one app day."""

    stat_date: str
    exercises_completed: int = 0
    exercises_skipped: int = 0
    sets_completed: int = 0
    minutes_completed: int = 0
    plan_completed: bool = False

    @property
    def has_activity(self) -> bool:
        return self.exercises_completed > 0

    def to_dict(self) -> dict:
        return {
            "stat_date": self.stat_date,
            "exercises_completed": self.exercises_completed,
            "exercises_skipped": self.exercises_skipped,
            "sets_completed": self.sets_completed,
            "minutes_completed": self.minutes_completed,
            "plan_completed": self.plan_completed,
        }


@dataclass(frozen=True)
class PlanAdherence:
    """How many days of a trailing window met the daily target."""

    window_days: int
    days_with_activity: int = 0
    days_target_achieved: int = 0
    adherence_pct: int = 0

    def to_dict(self) -> dict:
        return {
            "window_days": self.window_days,
            "days_with_activity": self.days_with_activity,
            "days_target_achieved": self.days_target_achieved,
            "adherence_pct": self.adherence_pct,
        }
