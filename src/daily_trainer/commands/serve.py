"""Web server command."""

import click

from .base import ensure_initialized, get_config


@click.command()
@click.option("--host", default="127.0.0.1", help="Host to bind to (default: 127.0.0.1)")
@click.option("--port", "-p", default=8000, type=int, help="Port to bind to (default: 8000)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, reload: bool):
    """Start the JSON API server.

    Examples:

        # Start on default port (8000)
        daily-trainer serve

        # Expose to network (all interfaces)
        daily-trainer serve --host 0.0.0.0

        # Development mode with auto-reload
        daily-trainer serve --reload
    """
    ensure_initialized(ctx)

    import uvicorn

    from ..web import create_app

    click.echo()
    click.echo(click.style("Starting daily-trainer API server...", fg="green"))
    click.echo()
    click.echo(f"  Local:   http://{host}:{port}")
    click.echo(f"  Docs:    http://{host}:{port}/docs")
    click.echo()
    click.echo("Press Ctrl+C to stop the server.")
    click.echo()

    if reload:
        # The reloader imports the factory itself and reads config from the environment
        uvicorn.run("daily_trainer.web:create_app", host=host, port=port, reload=True, factory=True)
        return

    uvicorn.run(create_app(get_config(ctx)), host=host, port=port)
