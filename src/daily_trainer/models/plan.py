"""Daily plan and plan item models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class PlanStatus(str, Enum):
    """Daily plan lifecycle status."""

    DRAFT = "draft"
    ACTIVE = "active"
    COMPLETED = "completed"
    ABORTED = "aborted"


class ItemStatus(str, Enum):
    """Plan item completion status."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


def _parse_dt(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def _format_dt(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass
class Plan:
    """The set of exercise assignments for one owner on one app day.

    `plan_date` is the app-day key (see core.day_boundary.plan_date_key),
    not the wall-clock date.
    """

    owner_id: str
    plan_date: str
    title: str = "Daily plan"
    total_estimated_minutes: int = 0
    status: PlanStatus = PlanStatus.ACTIVE
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == PlanStatus.COMPLETED

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "plan_date": self.plan_date,
            "title": self.title,
            "total_estimated_minutes": self.total_estimated_minutes,
            "status": self.status.value,
            "created_at": _format_dt(self.created_at),
            "updated_at": _format_dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Plan":
        """Create from dictionary."""
        return cls(
            id=data.get("id"),
            owner_id=data["owner_id"],
            plan_date=data["plan_date"],
            title=data.get("title") or "Daily plan",
            total_estimated_minutes=data.get("total_estimated_minutes") or 0,
            status=PlanStatus(data.get("status", "active")),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
        )


@dataclass
class PlanItem:
    """A single exercise assignment within a plan, tracked by sets."""

    exercise_ref: str
    order_index: int
    sets_total: int
    rest_seconds: int
    estimated_minutes: int
    sets_completed: int = 0
    status: ItemStatus = ItemStatus.PENDING
    category_tag: str | None = None
    completed_at: datetime | None = None
    plan_id: int | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_progress(self) -> bool:
        return self.sets_completed > 0

    @property
    def is_completed(self) -> bool:
        return self.status == ItemStatus.COMPLETED

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "plan_id": self.plan_id,
            "exercise_ref": self.exercise_ref,
            "order_index": self.order_index,
            "category_tag": self.category_tag,
            "sets_total": self.sets_total,
            "sets_completed": self.sets_completed,
            "rest_seconds": self.rest_seconds,
            "estimated_minutes": self.estimated_minutes,
            "status": self.status.value,
            "completed_at": _format_dt(self.completed_at),
            "created_at": _format_dt(self.created_at),
            "updated_at": _format_dt(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PlanItem":
        """Create from dictionary."""
        return cls(
            id=data.get("id"),
            plan_id=data.get("plan_id"),
            exercise_ref=str(data["exercise_ref"]),
            order_index=data["order_index"],
            category_tag=data.get("category_tag"),
            sets_total=data["sets_total"],
            sets_completed=data.get("sets_completed", 0),
            rest_seconds=data.get("rest_seconds", 30),
            estimated_minutes=data.get("estimated_minutes", 0),
            status=ItemStatus(data.get("status", "pending")),
            completed_at=_parse_dt(data.get("completed_at")),
            created_at=_parse_dt(data.get("created_at")),
            updated_at=_parse_dt(data.get("updated_at")),
        )


@dataclass
class PlanWithItems:
    """A plan together with its items in order_index order."""

    plan: Plan
    items: list[PlanItem] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "plan": self.plan.to_dict(),
            "items": [item.to_dict() for item in self.items],
        }


@dataclass
class TodaySummary:
    """Derived completion summary for today's plan."""

    plan_id: int | None = None
    status: PlanStatus | None = None
    total_items: int = 0
    items_completed: int = 0
    total_estimated_minutes: int = 0
    minutes_completed: int = 0

    @property
    def completion_percentage(self) -> float:
        """Items completed as a percentage (0-100)."""
        if self.total_items == 0:
            return 0.0
        return self.items_completed / self.total_items * 100

    def to_dict(self) -> dict:
        return {
            "plan_id": self.plan_id,
            "status": self.status.value if self.status else None,
            "total_items": self.total_items,
            "items_completed": self.items_completed,
            "total_estimated_minutes": self.total_estimated_minutes,
            "minutes_completed": self.minutes_completed,
        }
