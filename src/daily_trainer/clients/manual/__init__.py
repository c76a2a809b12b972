"""Interactive survey input."""

from .client import ManualSurveyClient

__all__ = ["ManualSurveyClient"]
