"""Data access layer for daily-trainer.

Each repository opens a connection per operation and translates
aiosqlite failures into TransientGatewayError.
"""

import json
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import AsyncIterator

import aiosqlite
from loguru import logger

from ..errors import TransientGatewayError
from ..models.exercises import CatalogExercise
from ..models.plan import ItemStatus, Plan, PlanItem, PlanStatus
from ..models.progress import (
    PlanProposal,
    ProgressRollup,
    ProposalSource,
    TrainingEvent,
    TrainingEventType,
    UserProgress,
)
from ..models.survey import SubscriptionTier
from .engine import get_db_path

PLAN_PATCH_COLUMNS = frozenset({"title", "total_estimated_minutes", "status"})
ITEM_PATCH_COLUMNS = frozenset(
    {
        "sets_total",
        "sets_completed",
        "rest_seconds",
        "estimated_minutes",
        "status",
        "completed_at",
    }
)

# Adds to both counters, creating the row on first use
ADD_PROGRESS_SQL = """
    INSERT INTO user_progress (owner_id, minutes_active, training_days) VALUES (?, ?, ?)
    ON CONFLICT(owner_id) DO UPDATE SET
        minutes_active = minutes_active + excluded.minutes_active,
        training_days = training_days + excluded.training_days,
        updated_at = CURRENT_TIMESTAMP
"""


def _to_db(value):
    """Convert a Python value into a SQLite parameter."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return 1 if value else 0
    return value


def _parse_timestamp(value) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def _build_set_clause(patch: dict, allowed: frozenset[str]) -> tuple[str, list]:
    unknown = set(patch) - allowed
    if unknown:
        raise ValueError(f"Cannot update columns: {sorted(unknown)}")
    columns = sorted(patch)
    clause = ", ".join(f"{col} = ?" for col in columns)
    return clause, [_to_db(patch[col]) for col in columns]


def _build_guard_clause(expected: dict, allowed: frozenset[str]) -> tuple[str, list]:
    unknown = set(expected) - allowed
    if unknown:
        raise ValueError(f"Cannot compare columns: {sorted(unknown)}")
    columns = sorted(expected)
    # IS compares NULLs as equal
    clause = " AND ".join(f"{col} IS ?" for col in columns)
    return clause, [_to_db(expected[col]) for col in columns]


class _Repository:
    """Shared connection handling."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    @asynccontextmanager
    async def _connect(self, operation: str) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self.db_path) as db:
                db.row_factory = aiosqlite.Row
                yield db
        except aiosqlite.Error as e:
            logger.bind(operation=operation, db_path=str(self.db_path)).warning(
                f"Database operation failed: {e}"
            )
            raise TransientGatewayError(operation, e) from e


class PlanRepository(_Repository):
    """Repository for daily plans and their items."""

    async def get_plan(self, owner_id: str, plan_date: str) -> Plan | None:
        """Get the live (non-aborted) plan for an owner and app day."""
        async with self._connect("get_plan") as db:
            cursor = await db.execute(
                """
                SELECT * FROM daily_plans
                WHERE owner_id = ? AND plan_date = ? AND status != ?
                """,
                (owner_id, plan_date, PlanStatus.ABORTED.value),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_plan(row)

    async def get_plan_by_id(self, plan_id: int) -> Plan | None:
        """Get a plan by ID."""
        async with self._connect("get_plan_by_id") as db:
            cursor = await db.execute("SELECT * FROM daily_plans WHERE id = ?", (plan_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_plan(row)

    async def create_plan(self, plan: Plan) -> Plan:
        """Create a plan, or return the live plan that already exists for the day."""
        async with self._connect("create_plan") as db:
            await db.execute(
                """
                INSERT OR IGNORE INTO daily_plans
                (owner_id, plan_date, title, total_estimated_minutes, status)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    plan.owner_id,
                    plan.plan_date,
                    plan.title,
                    plan.total_estimated_minutes,
                    plan.status.value,
                ),
            )
            await db.commit()

        created = await self.get_plan(plan.owner_id, plan.plan_date)
        if created is None:
            raise TransientGatewayError(
                "create_plan", RuntimeError(f"Plan for {plan.plan_date} was not persisted")
            )
        return created

    async def update_plan(
        self,
        plan_id: int,
        patch: dict,
        expected_status: PlanStatus | None = None,
    ) -> Plan | None:
        """Update plan columns.

        Returns None when `expected_status` is given and the stored status
        differs, so callers can detect that another writer got there first.
        """
        clause, params = _build_set_clause(patch, PLAN_PATCH_COLUMNS)
        query = f"UPDATE daily_plans SET {clause}, updated_at = CURRENT_TIMESTAMP WHERE id = ?"
        params.append(plan_id)
        if expected_status is not None:
            query += " AND status = ?"
            params.append(PlanStatus(expected_status).value)

        async with self._connect("update_plan") as db:
            cursor = await db.execute(query, params)
            await db.commit()
            if cursor.rowcount == 0:
                return None

        return await self.get_plan_by_id(plan_id)

    async def complete_plan(
        self,
        plan_id: int,
        expected_status: PlanStatus,
        rollup: ProgressRollup,
    ) -> Plan | None:
        """Mark a plan completed and add its rollup to the owner's progress.

        Both writes share one transaction. Returns None, and adds nothing,
        when the stored status is no longer `expected_status`.
        """
        async with self._connect("complete_plan") as db:
            cursor = await db.execute(
                """
                UPDATE daily_plans SET status = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND status = ?
                """,
                (PlanStatus.COMPLETED.value, plan_id, PlanStatus(expected_status).value),
            )
            if cursor.rowcount == 0:
                await db.rollback()
                return None
            try:
                await db.execute(
                    ADD_PROGRESS_SQL,
                    (rollup.owner_id, rollup.active_minutes, rollup.training_days),
                )
            except aiosqlite.Error:
                await db.rollback()
                raise
            await db.commit()

        return await self.get_plan_by_id(plan_id)

    async def list_items(self, plan_id: int) -> list[PlanItem]:
        """List a plan's items in order."""
        async with self._connect("list_items") as db:
            cursor = await db.execute(
                "SELECT * FROM plan_items WHERE plan_id = ? ORDER BY order_index ASC",
                (plan_id,),
            )
            rows = await cursor.fetchall()
            return [self._row_to_item(row) for row in rows]

    async def get_item(self, item_id: int) -> PlanItem | None:
        """Get a plan item by ID."""
        async with self._connect("get_item") as db:
            cursor = await db.execute("SELECT * FROM plan_items WHERE id = ?", (item_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_item(row)

    async def insert_items(self, items: list[PlanItem]) -> list[PlanItem]:
        """Insert items in one transaction and return them with IDs."""
        if not items:
            return []

        ids = []
        async with self._connect("insert_items") as db:
            for item in items:
                if item.plan_id is None:
                    raise ValueError("Plan item must have a plan_id to insert")
                cursor = await db.execute(
                    """
                    INSERT INTO plan_items
                    (plan_id, exercise_ref, order_index, category_tag, sets_total,
                     sets_completed, rest_seconds, estimated_minutes, status, completed_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        item.plan_id,
                        item.exercise_ref,
                        item.order_index,
                        item.category_tag,
                        item.sets_total,
                        item.sets_completed,
                        item.rest_seconds,
                        item.estimated_minutes,
                        item.status.value,
                        _to_db(item.completed_at),
                    ),
                )
                ids.append(cursor.lastrowid)
            await db.commit()

            placeholders = ", ".join("?" for _ in ids)
            cursor = await db.execute(
                f"SELECT * FROM plan_items WHERE id IN ({placeholders}) ORDER BY order_index ASC",
                ids,
            )
            rows = await cursor.fetchall()
            return [self._row_to_item(row) for row in rows]

    async def update_item(
        self,
        item_id: int,
        patch: dict,
        expected: dict | None = None,
    ) -> PlanItem | None:
        """Update item columns.

        With `expected` the write is a compare-and-swap: it only applies
        if every listed column still holds the given value, otherwise it
        returns None.
        """
        clause, params = _build_set_clause(patch, ITEM_PATCH_COLUMNS)
        query = f"UPDATE plan_items SET {clause}, updated_at = CURRENT_TIMESTAMP WHERE id = ?"
        params.append(item_id)
        if expected:
            guard, guard_params = _build_guard_clause(expected, ITEM_PATCH_COLUMNS)
            query += f" AND {guard}"
            params.extend(guard_params)

        async with self._connect("update_item") as db:
            cursor = await db.execute(query, params)
            await db.commit()
            if cursor.rowcount == 0:
                return None

        return await self.get_item(item_id)

    async def delete_items(self, plan_id: int) -> None:
        """Delete every item of a plan."""
        async with self._connect("delete_items") as db:
            await db.execute("DELETE FROM plan_items WHERE plan_id = ?", (plan_id,))
            await db.commit()

    def _row_to_plan(self, row: aiosqlite.Row) -> Plan:
        """Convert a database row to a Plan."""
        return Plan(
            id=row["id"],
            owner_id=row["owner_id"],
            plan_date=row["plan_date"],
            title=row["title"] or "Daily plan",
            total_estimated_minutes=row["total_estimated_minutes"] or 0,
            status=PlanStatus(row["status"]),
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )

    def _row_to_item(self, row: aiosqlite.Row) -> PlanItem:
        """Convert a database row to a PlanItem."""
        return PlanItem(
            id=row["id"],
            plan_id=row["plan_id"],
            exercise_ref=row["exercise_ref"],
            order_index=row["order_index"],
            category_tag=row["category_tag"],
            sets_total=row["sets_total"],
            sets_completed=row["sets_completed"],
            rest_seconds=row["rest_seconds"],
            estimated_minutes=row["estimated_minutes"],
            status=ItemStatus(row["status"]),
            completed_at=_parse_timestamp(row["completed_at"]),
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )


class ExerciseCatalogRepository(_Repository):
    """Repository for the exercise catalog."""

    async def list_exercises(self, tier: SubscriptionTier = SubscriptionTier.FREE) -> list[CatalogExercise]:
        """List every exercise in catalog order.

        Premium exercises are returned for every tier; gating happens in
        the allocator and at playback.
        """
        async with self._connect("list_exercises") as db:
            cursor = await db.execute(
                "SELECT * FROM exercises ORDER BY order_index ASC, id ASC"
            )
            rows = await cursor.fetchall()
            return [self._row_to_exercise(row) for row in rows]

    async def get_exercise(self, exercise_id: str) -> CatalogExercise | None:
        """Get an exercise by ID."""
        async with self._connect("get_exercise") as db:
            cursor = await db.execute("SELECT * FROM exercises WHERE id = ?", (exercise_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return self._row_to_exercise(row)

    async def upsert_many(self, exercises: list[CatalogExercise]) -> int:
        """Insert or replace catalog exercises."""
        async with self._connect("upsert_exercises") as db:
            for exercise in exercises:
                await db.execute(
                    """
                    INSERT OR REPLACE INTO exercises
                    (id, name, duration_seconds, category_tag, is_premium, order_index)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        exercise.id,
                        exercise.name,
                        exercise.duration_seconds,
                        exercise.category_tag,
                        1 if exercise.is_premium else 0,
                        exercise.order_index,
                    ),
                )
            await db.commit()
        return len(exercises)

    async def count(self) -> int:
        """Number of catalog exercises."""
        async with self._connect("count_exercises") as db:
            cursor = await db.execute("SELECT COUNT(*) FROM exercises")
            row = await cursor.fetchone()
            return row[0]

    def _row_to_exercise(self, row: aiosqlite.Row) -> CatalogExercise:
        """Convert a database row to a CatalogExercise."""
        return CatalogExercise(
            id=row["id"],
            name=row["name"],
            duration_seconds=row["duration_seconds"],
            category_tag=row["category_tag"],
            is_premium=bool(row["is_premium"]),
            order_index=row["order_index"],
        )


class UserProgressRepository(_Repository):
    """Repository for cumulative user progress."""

    async def get_progress(self, owner_id: str) -> UserProgress:
        """Get progress for an owner, initializing it to zero if missing."""
        async with self._connect("get_progress") as db:
            await db.execute(
                "INSERT OR IGNORE INTO user_progress (owner_id) VALUES (?)", (owner_id,)
            )
            await db.commit()
            cursor = await db.execute(
                "SELECT * FROM user_progress WHERE owner_id = ?", (owner_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_progress(row)

    async def add_active_minutes(self, owner_id: str, minutes: int) -> None:
        """Atomically add active minutes."""
        async with self._connect("add_active_minutes") as db:
            await db.execute(ADD_PROGRESS_SQL, (owner_id, minutes, 0))
            await db.commit()

    async def increment_training_days(self, owner_id: str, n: int = 1) -> None:
        """Atomically add completed training days."""
        async with self._connect("increment_training_days") as db:
            await db.execute(ADD_PROGRESS_SQL, (owner_id, 0, n))
            await db.commit()

    def _row_to_progress(self, row: aiosqlite.Row) -> UserProgress:
        """Convert a database row to a UserProgress."""
        return UserProgress(
            id=row["id"],
            owner_id=row["owner_id"],
            minutes_active=row["minutes_active"],
            training_days=row["training_days"],
            created_at=_parse_timestamp(row["created_at"]),
            updated_at=_parse_timestamp(row["updated_at"]),
        )


class PlanProposalRepository(_Repository):
    """Repository for plan generation proposals."""

    async def upsert_proposal(self, proposal: PlanProposal) -> PlanProposal:
        """Create or update the proposal for (owner, plan_date, source)."""
        async with self._connect("upsert_proposal") as db:
            await db.execute(
                """
                INSERT INTO plan_proposals
                (owner_id, plan_date, source, plan_id, idempotency_key)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(owner_id, plan_date, source) DO UPDATE SET
                    plan_id = excluded.plan_id,
                    idempotency_key = excluded.idempotency_key,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (
                    proposal.owner_id,
                    proposal.plan_date,
                    proposal.source.value,
                    proposal.plan_id,
                    proposal.idempotency_key,
                ),
            )
            await db.commit()
            cursor = await db.execute(
                """
                SELECT * FROM plan_proposals
                WHERE owner_id = ? AND plan_date = ? AND source = ?
                """,
                (proposal.owner_id, proposal.plan_date, proposal.source.value),
            )
            row = await cursor.fetchone()
            return self._row_to_proposal(row)

    async def list_for_owner(self, owner_id: str, plan_date: str | None = None) -> list[PlanProposal]:
        """List proposals for an owner, optionally for one app day."""
        async with self._connect("list_proposals") as db:
            if plan_date:
                cursor = await db.execute(
                    "SELECT * FROM plan_proposals WHERE owner_id = ? AND plan_date = ? ORDER BY id",
                    (owner_id, plan_date),
                )
            else:
                cursor = await db.execute(
                    "SELECT * FROM plan_proposals WHERE owner_id = ? ORDER BY id",
                    (owner_id,),
                )
            rows = await cursor.fetchall()
            return [self._row_to_proposal(row) for row in rows]

    def _row_to_proposal(self, row: aiosqlite.Row) -> PlanProposal:
        """Convert a database row to a PlanProposal."""
        return PlanProposal(
            id=row["id"],
            owner_id=row["owner_id"],
            plan_date=row["plan_date"],
            source=ProposalSource(row["source"]),
            plan_id=row["plan_id"],
            idempotency_key=row["idempotency_key"],
        )


class TrainingEventRepository(_Repository):
    """Local store for training events."""

    async def record(self, event: TrainingEvent) -> None:
        """Store a training event."""
        async with self._connect("record_event") as db:
            await db.execute(
                """
                INSERT INTO training_events
                (owner_id, event_type, plan_id, item_id, exercise_ref,
                 sets_completed, plan_date, metadata, occurred_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    event.owner_id,
                    event.event_type.value,
                    event.plan_id,
                    event.item_id,
                    event.exercise_ref,
                    event.sets_completed,
                    event.plan_date,
                    json.dumps(event.metadata),
                    event.occurred_at.isoformat(),
                ),
            )
            await db.commit()

    async def list_events(
        self,
        owner_id: str,
        plan_id: int | None = None,
        limit: int = 100,
    ) -> list[TrainingEvent]:
        """List an owner's events, oldest first."""
        async with self._connect("list_events") as db:
            if plan_id is not None:
                cursor = await db.execute(
                    """
                    SELECT * FROM training_events WHERE owner_id = ? AND plan_id = ?
                    ORDER BY id ASC LIMIT ?
                    """,
                    (owner_id, plan_id, limit),
                )
            else:
                cursor = await db.execute(
                    "SELECT * FROM training_events WHERE owner_id = ? ORDER BY id ASC LIMIT ?",
                    (owner_id, limit),
                )
            rows = await cursor.fetchall()
            return [self._row_to_event(row) for row in rows]

    async def list_events_by_day(
        self,
        owner_id: str,
        from_date: str | None = None,
        to_date: str | None = None,
        event_types: list[TrainingEventType] | None = None,
    ) -> list[TrainingEvent]:
        """List an owner's events within an app-day range, oldest first.

        Both bounds are inclusive YYYY-MM-DD keys. Events recorded
        without a plan_date are left out.
        """
        query = "SELECT * FROM training_events WHERE owner_id = ? AND plan_date IS NOT NULL"
        params: list = [owner_id]
        if from_date:
            query += " AND plan_date >= ?"
            params.append(from_date)
        if to_date:
            query += " AND plan_date <= ?"
            params.append(to_date)
        if event_types:
            query += f" AND event_type IN ({', '.join('?' for _ in event_types)})"
            params.extend(TrainingEventType(t).value for t in event_types)
        query += " ORDER BY id ASC"

        async with self._connect("list_events_by_day") as db:
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_event(row) for row in rows]

    def _row_to_event(self, row: aiosqlite.Row) -> TrainingEvent:
        """Convert a database row to a TrainingEvent."""
        return TrainingEvent(
            event_type=TrainingEventType(row["event_type"]),
            owner_id=row["owner_id"],
            plan_id=row["plan_id"],
            item_id=row["item_id"],
            exercise_ref=row["exercise_ref"],
            sets_completed=row["sets_completed"],
            plan_date=row["plan_date"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else {},
            occurred_at=datetime.fromisoformat(row["occurred_at"]),
        )
