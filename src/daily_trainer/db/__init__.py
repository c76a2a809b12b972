"""Database layer for daily-trainer."""

from .engine import get_db_path, init_db, seed_catalog
from .repositories import (
    ExerciseCatalogRepository,
    PlanProposalRepository,
    PlanRepository,
    TrainingEventRepository,
    UserProgressRepository,
)

__all__ = [
    "ExerciseCatalogRepository",
    "get_db_path",
    "init_db",
    "PlanProposalRepository",
    "PlanRepository",
    "seed_catalog",
    "TrainingEventRepository",
    "UserProgressRepository",
]
