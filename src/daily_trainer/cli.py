"""CLI entry point for daily-trainer."""

from pathlib import Path

import click

from . import __version__
from .commands import countdown, init, plan, progress, serve
from .config import load_config
from .logging_setup import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="daily-trainer")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option(
    "--user",
    "-u",
    "owner_id",
    envvar="DAILY_TRAINER_USER",
    default="local",
    show_default=True,
    help="Owner id the plan belongs to",
)
@click.option("--offset", type=int, default=None, help="Day offset in hours for the daily reset")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the database",
)
@click.pass_context
def main(ctx: click.Context, verbose: bool, owner_id: str, offset: int | None, data_dir: Path | None):
    """daily-trainer: daily football training plans.

    Build a short plan of exercises for each app day from a quick survey,
    track sets as you go and accumulate active minutes and training days.

    Example usage:

        # Initialize the database and exercise catalog
        daily-trainer init

        # Generate today's plan
        daily-trainer plan generate --count 4 --category physical

        # Record progress
        daily-trainer plan set 12
        daily-trainer plan complete 13

        # See what's left and when the day resets
        daily-trainer plan summary
        daily-trainer countdown
    """
    config = load_config().with_overrides(day_offset_hours=offset, data_dir=data_dir)
    setup_logging(level="DEBUG" if verbose else config.log_level, log_file=config.log_file)
    ctx.obj = {"config": config, "owner": owner_id}


# Register commands
main.add_command(init)
main.add_command(plan)
main.add_command(progress)
main.add_command(countdown)
main.add_command(serve)


def run():
    """Run the CLI."""
    main()


if __name__ == "__main__":
    run()
