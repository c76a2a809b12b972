"""Database engine setup and initialization."""

from pathlib import Path

import aiosqlite
from loguru import logger

from ..config import DATA_DIR


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    if data_dir is None:
        data_dir = DATA_DIR
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "daily_trainer.db"


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path) as db:
        # Daily plans: one live plan per owner and app day
        await db.execute("""
            CREATE TABLE IF NOT EXISTS daily_plans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                plan_date TEXT NOT NULL,
                title TEXT DEFAULT 'Daily plan',
                total_estimated_minutes INTEGER DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'active',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Plan items
        await db.execute("""
            CREATE TABLE IF NOT EXISTS plan_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                plan_id INTEGER NOT NULL,
                exercise_ref TEXT NOT NULL,
                order_index INTEGER NOT NULL,
                category_tag TEXT,
                sets_total INTEGER NOT NULL CHECK (sets_total >= 1),
                sets_completed INTEGER NOT NULL DEFAULT 0
                    CHECK (sets_completed >= 0 AND sets_completed <= sets_total),
                rest_seconds INTEGER NOT NULL DEFAULT 30,
                estimated_minutes INTEGER NOT NULL DEFAULT 0,
                status TEXT NOT NULL DEFAULT 'pending',
                completed_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (plan_id, order_index),
                FOREIGN KEY (plan_id) REFERENCES daily_plans(id) ON DELETE CASCADE
            )
        """)

        # Exercise catalog
        await db.execute("""
            CREATE TABLE IF NOT EXISTS exercises (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                duration_seconds INTEGER NOT NULL DEFAULT 0,
                category_tag TEXT,
                is_premium INTEGER NOT NULL DEFAULT 0,
                order_index INTEGER NOT NULL DEFAULT 0
            )
        """)

        # Cumulative user progress
        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_progress (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL UNIQUE,
                minutes_active INTEGER NOT NULL DEFAULT 0,
                training_days INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        # Plan generation proposals (idempotent per trigger)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS plan_proposals (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                plan_date TEXT NOT NULL,
                source TEXT NOT NULL,
                plan_id INTEGER,
                idempotency_key TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                UNIQUE (owner_id, plan_date, source),
                FOREIGN KEY (plan_id) REFERENCES daily_plans(id)
            )
        """)

        # Training events
        await db.execute("""
            CREATE TABLE IF NOT EXISTS training_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                event_type TEXT NOT NULL,
                plan_id INTEGER,
                item_id INTEGER,
                exercise_ref TEXT,
                sets_completed INTEGER,
                plan_date TEXT,
                metadata TEXT DEFAULT '{}',
                occurred_at TIMESTAMP NOT NULL
            )
        """)

        # Create indexes for common queries
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_daily_plans_owner_date
            ON daily_plans(owner_id, plan_date) WHERE status != 'aborted'
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_plan_items_plan
            ON plan_items(plan_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_exercises_order
            ON exercises(order_index)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_training_events_owner
            ON training_events(owner_id, occurred_at)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_training_events_owner_day
            ON training_events(owner_id, plan_date)
        """)

        await db.commit()

    logger.debug(f"Database initialized at {db_path}")


async def seed_catalog(db_path: Path | None = None) -> int:
    """Seed the exercise catalog with the built-in exercises.

    Existing rows are left untouched.

    Returns:
        Number of exercises inserted
    """
    from ..models.exercises import DEFAULT_CATALOG

    if db_path is None:
        db_path = get_db_path()

    inserted = 0
    async with aiosqlite.connect(db_path) as db:
        for exercise in DEFAULT_CATALOG:
            cursor = await db.execute(
                """
                INSERT OR IGNORE INTO exercises
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
            inserted += cursor.rowcount

        await db.commit()

    return inserted
