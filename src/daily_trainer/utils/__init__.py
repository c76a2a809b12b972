"""Shared helpers for daily-trainer."""

from .category_utils import STRENGTH_CATEGORIES, is_strength_category, normalize_category_tag

__all__ = [
    "is_strength_category",
    "normalize_category_tag",
    "STRENGTH_CATEGORIES",
]
