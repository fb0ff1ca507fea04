"""Web server command."""

import click

from ..settings import get_settings
from .base import ensure_initialized


@click.command()
@click.option("--host", default=None, help="Host to bind to (default: from settings)")
@click.option("--port", "-p", default=None, type=int, help="Port to bind to (default: from settings)")
@click.option("--reload", is_flag=True, help="Enable auto-reload for development")
@click.pass_context
def serve(ctx: click.Context, host: str | None, port: int | None, reload: bool):
    """Start the JSON API server.

    Examples:

        # Start on default port (8000)
        powerpro serve

        # Expose to network on a custom port
        powerpro serve --host 0.0.0.0 --port 3000
    """
    ensure_initialized(ctx)

    import uvicorn

    from ..web import create_app

    settings = get_settings()
    host = host or settings.host
    port = port or settings.port

    click.echo()
    click.echo(click.style("Starting powerpro API server...", fg="green"))
    click.echo(f"  Local:   http://{host}:{port}")
    click.echo(f"  Docs:    http://{host}:{port}/docs")
    click.echo()

    uvicorn.run(
        create_app() if not reload else "powerpro.web:create_app",
        host=host,
        port=port,
        reload=reload,
        factory=reload,
        log_level=settings.log_level.lower(),
    )
