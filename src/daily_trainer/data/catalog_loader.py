"""Exercise catalog loader from JSON."""

import json
from pathlib import Path

from loguru import logger

from ..db.engine import get_db_path
from ..db.repositories import ExerciseCatalogRepository
from ..models.exercises import DEFAULT_CATALOG, CatalogExercise


def get_catalog_json_path(data_dir: Path | None = None) -> Path:
    """Get the path to the exercise catalog JSON file."""
    if data_dir is None:
        return Path(__file__).parent.parent.parent.parent / "data" / "exercise_catalog.json"
    return data_dir / "exercise_catalog.json"


def load_catalog(json_path: Path | None = None) -> list[CatalogExercise]:
    """Load catalog exercises from a JSON file.

    The file holds either a list of exercises or an object with an
    "exercises" list. Invalid entries are skipped.

    Returns:
        List of CatalogExercise objects, empty if the file is missing
    """
    if json_path is None:
        json_path = get_catalog_json_path()
    if not json_path.exists():
        return []

    with open(json_path) as f:
        data = json.load(f)

    entries = data.get("exercises", []) if isinstance(data, dict) else data

    exercises = []
    for index, entry in enumerate(entries):
        try:
            exercise = CatalogExercise.from_dict(entry)
        except (ValueError, KeyError, TypeError) as e:
            name = entry.get("name", "unknown") if isinstance(entry, dict) else "unknown"
            logger.warning(f"Skipping invalid catalog entry {name}: {e}")
            continue
        if "order_index" not in entry:
            exercise.order_index = index
        exercises.append(exercise)

    return exercises


async def seed_catalog_from_json(
    db_path: Path | None = None,
    json_path: Path | None = None,
) -> int:
    """Seed the catalog table from JSON, falling back to the built-in catalog.

    Existing exercises with the same id are replaced.

    Returns:
        Number of exercises written
    """
    if db_path is None:
        db_path = get_db_path()

    exercises = load_catalog(json_path)
    if not exercises:
        logger.debug("No catalog JSON found, using built-in catalog")
        exercises = DEFAULT_CATALOG

    repo = ExerciseCatalogRepository(db_path)
    count = await repo.upsert_many(exercises)
    logger.info(f"Seeded {count} catalog exercises")
    return count
