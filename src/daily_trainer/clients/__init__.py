"""Input clients for daily-trainer."""

from .manual import ManualSurveyClient

__all__ = ["ManualSurveyClient"]
