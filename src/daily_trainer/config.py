"""Engine configuration loaded from the environment."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

# Default data directory
DATA_DIR = Path(__file__).parent.parent.parent / "data"

ENV_PREFIX = "DAILY_TRAINER_"

DEFAULT_PLAN_TITLE = "Daily plan"
DEFAULT_EXERCISES_COUNT = 4
DEFAULT_TIME_MINUTES = 30
DEFAULT_REST_SECONDS = 30
MIN_EXERCISES = 1
MAX_EXERCISES = 10
MIN_SETS = 1
MAX_SETS = 10


def _env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(f"{ENV_PREFIX}{name}", default)


def _env_int(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e


def _env_timezone(name: str) -> str | None:
    raw = _env(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        ZoneInfo(raw.strip())
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"{ENV_PREFIX}{name} must be an IANA time zone, got {raw!r}") from e
    return raw.strip()


@dataclass(frozen=True)
class EngineConfig:
    """Explicit configuration for the plan engine.

    Nothing in the engine reads global state; every component takes the
    values it needs from an EngineConfig passed in by the caller.
    """

    data_dir: Path = field(default_factory=lambda: DATA_DIR)
    day_offset_hours: int = 0
    default_exercises_count: int = DEFAULT_EXERCISES_COUNT
    default_time_minutes: int = DEFAULT_TIME_MINUTES
    plan_title: str = DEFAULT_PLAN_TITLE
    log_level: str = "INFO"
    log_file: str | None = None
    timezone: str | None = None

    @property
    def db_path(self) -> Path:
        """SQLite database file inside the data directory."""
        return self.data_dir / "daily_trainer.db"

    def with_overrides(self, **overrides) -> "EngineConfig":
        """Return a copy with non-None overrides applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)


def load_config() -> EngineConfig:
    """Build an EngineConfig from DAILY_TRAINER_* environment variables."""
    data_dir = _env("DATA_DIR")
    return EngineConfig(
        data_dir=Path(data_dir) if data_dir else DATA_DIR,
        day_offset_hours=_env_int("DAY_OFFSET_HOURS", 0),
        default_exercises_count=_env_int("DEFAULT_EXERCISES", DEFAULT_EXERCISES_COUNT),
        default_time_minutes=_env_int("DEFAULT_MINUTES", DEFAULT_TIME_MINUTES),
        plan_title=_env("PLAN_TITLE", DEFAULT_PLAN_TITLE),
        log_level=_env("LOG_LEVEL", "INFO").upper(),
        log_file=_env("LOG_FILE"),
        timezone=_env_timezone("TIMEZONE"),
    )
