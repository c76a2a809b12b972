"""Exercise catalog entries."""

from dataclasses import dataclass


@dataclass
class CatalogExercise:
    """An exercise offered by the catalog, referenced by id from plan items.

    Plan items never copy catalog data beyond the category tag; the
    duration is looked up again whenever an estimate is recomputed.
    """

    id: str
    name: str
    duration_seconds: int
    category_tag: str | None = None
    is_premium: bool = False
    order_index: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "id": self.id,
            "name": self.name,
            "duration_seconds": self.duration_seconds,
            "category_tag": self.category_tag,
            "is_premium": self.is_premium,
            "order_index": self.order_index,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CatalogExercise":
        """Create from dictionary."""
        return cls(
            id=str(data["id"]),
            name=data["name"],
            duration_seconds=int(data.get("duration_seconds") or 0),
            category_tag=data.get("category_tag"),
            is_premium=bool(data.get("is_premium", False)),
            order_index=int(data.get("order_index") or 0),
        )


# Built-in catalog used when no JSON catalog is available.
# Categories: physical (strength-like), technique, tactics, goalkeeping, recovery
DEFAULT_CATALOG: list[CatalogExercise] = [
    # Physical
    CatalogExercise(
        id="physical-sprint-ladder",
        name="Sprint Ladder",
        duration_seconds=90,
        category_tag="physical",
        order_index=0,
    ),
    CatalogExercise(
        id="physical-bodyweight-circuit",
        name="Bodyweight Circuit",
        duration_seconds=150,
        category_tag="physical",
        order_index=1,
    ),
    CatalogExercise(
        id="physical-plyometric-jumps",
        name="Plyometric Box Jumps",
        duration_seconds=120,
        category_tag="physical",
        is_premium=True,
        order_index=2,
    ),
    # Technique
    CatalogExercise(
        id="technique-cone-dribbling",
        name="Cone Dribbling",
        duration_seconds=60,
        category_tag="technique",
        order_index=3,
    ),
    CatalogExercise(
        id="technique-wall-passing",
        name="Wall Passing",
        duration_seconds=75,
        category_tag="technique",
        order_index=4,
    ),
    CatalogExercise(
        id="technique-first-touch",
        name="First Touch Control",
        duration_seconds=100,
        category_tag="technique",
        order_index=5,
    ),
    CatalogExercise(
        id="technique-weak-foot-finishing",
        name="Weak Foot Finishing",
        duration_seconds=140,
        category_tag="technique",
        is_premium=True,
        order_index=6,
    ),
    # Tactics
    CatalogExercise(
        id="tactics-scanning",
        name="Scanning Before Receiving",
        duration_seconds=80,
        category_tag="tactics",
        order_index=7,
    ),
    CatalogExercise(
        id="tactics-pressing-triggers",
        name="Pressing Triggers",
        duration_seconds=180,
        category_tag="tactics",
        is_premium=True,
        order_index=8,
    ),
    # Goalkeeping
    CatalogExercise(
        id="goalkeeping-reaction-saves",
        name="Reaction Saves",
        duration_seconds=110,
        category_tag="goalkeeping",
        order_index=9,
    ),
    # Recovery
    CatalogExercise(
        id="recovery-mobility-flow",
        name="Mobility Flow",
        duration_seconds=240,
        category_tag="recovery",
        order_index=10,
    ),
]
