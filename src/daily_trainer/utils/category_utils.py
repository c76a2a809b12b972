"""Utilities for category tag normalization and classification."""

import re

# Category tags that get the heavier strength set scheme
STRENGTH_CATEGORIES = frozenset(
    {
        "physical",
        "fuerza",
        "strength",
        "fuerza-fisica",
        "físico",
        "fisico",
    }
)


def normalize_category_tag(tag: str | None) -> str | None:
    """Normalize a category tag for comparison.

    Lowercases, strips and collapses internal whitespace. Returns None
    for missing or blank tags so callers can treat them as unresolved.
    """
    if tag is None:
        return None
    normalized = re.sub(r"\s+", " ", str(tag).lower().strip())
    return normalized or None


def is_strength_category(tag: str | None) -> bool:
    """Check whether a category tag gets the strength set scheme."""
    return normalize_category_tag(tag) in STRENGTH_CATEGORIES
