"""Plan generation survey."""

from dataclasses import dataclass, field
from enum import Enum

from ..config import (
    DEFAULT_EXERCISES_COUNT,
    DEFAULT_TIME_MINUTES,
    MAX_EXERCISES,
    MIN_EXERCISES,
)
from ..utils.category_utils import normalize_category_tag


class SubscriptionTier(str, Enum):
    """User subscription tier."""

    FREE = "free"
    PREMIUM = "premium"


@dataclass(frozen=True)
class SurveyInput:
    """Answers to the daily plan survey.

    `allow_premium_during_autogen` is only set by silent background
    generation; it lets premium exercises into a free user's plan while
    playback stays gated elsewhere.
    """

    exercises_count: int = DEFAULT_EXERCISES_COUNT
    categories: frozenset[str] = field(default_factory=frozenset)
    time_minutes: int = DEFAULT_TIME_MINUTES
    tier: SubscriptionTier = SubscriptionTier.FREE
    allow_premium_during_autogen: bool = False

    def __post_init__(self):
        normalized = frozenset(
            tag for tag in (normalize_category_tag(c) for c in self.categories) if tag
        )
        object.__setattr__(self, "categories", normalized)
        object.__setattr__(self, "tier", SubscriptionTier(self.tier))

    @property
    def target_count(self) -> int:
        """Desired exercise count clamped to [1, 10]."""
        return max(MIN_EXERCISES, min(self.exercises_count or MIN_EXERCISES, MAX_EXERCISES))

    @classmethod
    def autogen_default(
        cls,
        exercises_count: int = DEFAULT_EXERCISES_COUNT,
        time_minutes: int = DEFAULT_TIME_MINUTES,
    ) -> "SurveyInput":
        """Survey used by silent plan generation."""
        return cls(
            exercises_count=exercises_count,
            categories=frozenset(),
            time_minutes=time_minutes,
            tier=SubscriptionTier.FREE,
            allow_premium_during_autogen=True,
        )

    def to_dict(self) -> dict:
        return {
            "exercises_count": self.exercises_count,
            "categories": sorted(self.categories),
            "time_minutes": self.time_minutes,
            "tier": self.tier.value,
            "allow_premium_during_autogen": self.allow_premium_during_autogen,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SurveyInput":
        return cls(
            exercises_count=data.get("exercises_count", DEFAULT_EXERCISES_COUNT),
            categories=frozenset(data.get("categories", [])),
            time_minutes=data.get("time_minutes", DEFAULT_TIME_MINUTES),
            tier=SubscriptionTier(data.get("tier", "free")),
            allow_premium_during_autogen=data.get("allow_premium_during_autogen", False),
        )
