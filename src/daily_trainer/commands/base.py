"""Shared CLI utilities."""

import asyncio
from functools import wraps

import click

from ..config import EngineConfig, load_config
from ..errors import PlanEngineError
from ..services.orchestrator import PlanOrchestrator


def async_command(f):
    """Decorator to run async Click commands."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def report_engine_errors(f):
    """Decorator turning plan engine errors into an [ERROR] line and exit code 1."""

    @wraps(f)
    async def wrapper(*args, **kwargs):
        try:
            return await f(*args, **kwargs)
        except PlanEngineError as e:
            echo_error(str(e))
            raise click.exceptions.Exit(1) from e

    return wrapper


def get_config(ctx: click.Context) -> EngineConfig:
    """Get the engine configuration stored on the root context."""
    obj = ctx.find_root().obj or {}
    return obj.get("config") or load_config()


def get_owner(ctx: click.Context) -> str:
    """Get the owner id selected with --user."""
    obj = ctx.find_root().obj or {}
    return obj.get("owner", "local")


def get_orchestrator(ctx: click.Context) -> PlanOrchestrator:
    """Build an orchestrator for the configured database."""
    return PlanOrchestrator.from_config(get_config(ctx))


def ensure_initialized(ctx: click.Context) -> None:
    """Ensure the database is initialized."""
    db_path = get_config(ctx).db_path
    if not db_path.exists():
        click.echo(
            click.style("Error: ", fg="red")
            + "Project not initialized. Run 'daily-trainer init' first."
        )
        ctx.exit(1)


def echo_success(message: str) -> None:
    """Print a success message."""
    click.echo(click.style("[OK] ", fg="green") + message)


def echo_error(message: str) -> None:
    """Print an error message."""
    click.echo(click.style("[ERROR] ", fg="red") + message)


def echo_info(message: str) -> None:
    """Print an info message."""
    click.echo(click.style("[INFO] ", fg="blue") + message)


def echo_warning(message: str) -> None:
    """Print a warning message."""
    click.echo(click.style("[WARN] ", fg="yellow") + message)


def format_table(headers: list[str], rows: list[list[str]], padding: int = 2) -> str:
    """Format data as a simple table."""
    if not rows:
        return ""

    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))

    lines = [
        "".join(h.ljust(widths[i] + padding) for i, h in enumerate(headers)).rstrip(),
        "".join("-" * w + " " * padding for w in widths).rstrip(),
    ]
    for row in rows:
        lines.append("".join(str(cell).ljust(widths[i] + padding) for i, cell in enumerate(row)).rstrip())

    return "\n".join(lines)
