"""Data models for daily-trainer."""

from .exercises import DEFAULT_CATALOG, CatalogExercise
from .plan import ItemStatus, Plan, PlanItem, PlanStatus, PlanWithItems, TodaySummary
from .progress import (
    DailyTrainingStats,
    PlanAdherence,
    PlanProposal,
    ProgressRollup,
    ProposalSource,
    TrainingEvent,
    TrainingEventType,
    UserProgress,
    UserStreak,
)
from .survey import SubscriptionTier, SurveyInput

__all__ = [
    "CatalogExercise",
    "DailyTrainingStats",
    "DEFAULT_CATALOG",
    "ItemStatus",
    "Plan",
    "PlanAdherence",
    "PlanItem",
    "PlanProposal",
    "PlanStatus",
    "PlanWithItems",
    "ProgressRollup",
    "ProposalSource",
    "SubscriptionTier",
    "SurveyInput",
    "TodaySummary",
    "TrainingEvent",
    "TrainingEventType",
    "UserProgress",
    "UserStreak",
]
