"""Shared CLI utilities."""

import asyncio
from functools import wraps
from pathlib import Path

import click

from ..db import LiftRepository, get_db_path
from ..settings import get_settings


def async_command(f):
    """Decorator to run async Click commands."""

    @wraps(f)
    def wrapper(*args, **kwargs):
        return asyncio.run(f(*args, **kwargs))

    return wrapper


def get_data_dir() -> Path:
    """Get the data directory path."""
    return get_settings().data_dir


def ensure_initialized(ctx: click.Context) -> None:
    """Ensure the database is initialized."""
    db_path = get_db_path()
    if not db_path.exists():
        click.echo(
            click.style("Error: ", fg="red")
            + "Project not initialized. Run 'powerpro init' first."
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

    lines = ["".join(h.ljust(widths[i] + padding) for i, h in enumerate(headers))]
    lines.append("".join("-" * w + " " * padding for w in widths))
    for row in rows:
        lines.append("".join(str(cell).ljust(widths[i] + padding) for i, cell in enumerate(row)))

    return "\n".join(line.rstrip() for line in lines)


async def resolve_lift_id(ctx: click.Context, slug_or_id: str) -> str:
    """Accept either a lift slug or a lift ID on the command line."""
    repo = LiftRepository()
    lift = await repo.get_by_slug(slug_or_id) or await repo.get(slug_or_id)
    if lift is None:
        echo_error(f"Lift '{slug_or_id}' not found.")
        ctx.exit(1)
    return lift.id
