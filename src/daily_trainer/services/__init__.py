"""Application services for daily-trainer."""

from .orchestrator import ItemUpdate, PlanOrchestrator

__all__ = ["ItemUpdate", "PlanOrchestrator"]
