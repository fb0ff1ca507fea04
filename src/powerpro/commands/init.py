"""Initialize project command."""

import click

from ..data.program_loader import list_bundled_programs, load_program_file
from ..db import get_db_path, init_db, seed_rpe_chart
from ..errors import AlreadyExists
from .base import async_command, echo_info, echo_success, get_data_dir


@click.command()
@click.option("--samples", is_flag=True, help="Also load the bundled sample programs")
@async_command
async def init(samples: bool):
    """Initialize the powerpro database.

    Creates the data directory, the SQLite schema and the default RPE chart.
    """
    data_dir = get_data_dir()
    db_path = get_db_path(data_dir)

    echo_info(f"Initializing powerpro in {data_dir}")

    await init_db(db_path)
    echo_success("Database initialized")

    count = await seed_rpe_chart(db_path)
    echo_success(f"RPE chart seeded ({count} new entries)")

    if samples:
        for path in list_bundled_programs():
            try:
                program = await load_program_file(path, db_path)
            except AlreadyExists as e:
                echo_info(f"Skipped {path.name}: {e}")
                continue
            echo_success(f"Loaded sample program '{program.name}' ({program.id})")

    click.echo()
    click.echo("powerpro is ready to use!")
    click.echo()
    click.echo("Next steps:")
    click.echo("  powerpro programs load <program.json>")
    click.echo("  powerpro maxes set <user> squat 315")
    click.echo("  powerpro enroll <user> <program-slug>")
    click.echo("  powerpro workout current <user>")
