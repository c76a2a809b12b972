"""CLI commands for daily-trainer."""

from .countdown import countdown
from .init import init
from .plan import plan
from .progress import progress
from .serve import serve

__all__ = [
    "countdown",
    "init",
    "plan",
    "progress",
    "serve",
]
