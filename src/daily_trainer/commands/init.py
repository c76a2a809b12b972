"""Initialize project command."""

from pathlib import Path

import click

from ..data.catalog_loader import get_catalog_json_path, seed_catalog_from_json
from ..db import init_db, seed_catalog
from .base import async_command, echo_info, echo_success, get_config


@click.command()
@click.option(
    "--catalog",
    "catalog_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON exercise catalog to load instead of the built-in one",
)
@click.pass_context
@async_command
async def init(ctx: click.Context, catalog_path: str | None):
    """Initialize the daily-trainer database.

    Creates the data directory, the SQLite schema and the exercise
    catalog.
    """
    config = get_config(ctx)
    data_dir = config.data_dir

    echo_info(f"Initializing daily-trainer in {data_dir}")
    data_dir.mkdir(parents=True, exist_ok=True)

    await init_db(config.db_path)
    echo_success("Database initialized")

    json_path = Path(catalog_path) if catalog_path else get_catalog_json_path(data_dir)
    if json_path.exists():
        count = await seed_catalog_from_json(config.db_path, json_path)
        echo_success(f"Exercise catalog populated ({count} exercises from {json_path.name})")
    else:
        count = await seed_catalog(config.db_path)
        echo_success(f"Exercise catalog populated ({count} built-in exercises)")

    click.echo()
    click.echo("daily-trainer is ready to use!")
    click.echo()
    click.echo("Next steps:")
    click.echo("  daily-trainer plan generate --count 4      # Build today's plan")
    click.echo("  daily-trainer plan generate --interactive  # Answer the survey")
    click.echo("  daily-trainer plan show                    # See today's items")
