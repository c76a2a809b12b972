"""Data loading utilities."""

from .catalog_loader import get_catalog_json_path, load_catalog, seed_catalog_from_json

__all__ = ["get_catalog_json_path", "load_catalog", "seed_catalog_from_json"]
