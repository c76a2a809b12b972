"""JSON API for daily-trainer."""

from .app import create_app

__all__ = ["create_app"]
