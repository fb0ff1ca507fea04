"""Program management commands."""

import json
from pathlib import Path

import aiosqlite
import click

from ..data.program_loader import load_program_file
from ..db.repositories import (
    DayRepository,
    LiftRepository,
    PrescriptionRepository,
    ProgramRepository,
)
from ..errors import AlreadyExists, PowerProError
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
)


@click.group()
def programs():
    """Load and inspect training programs."""
    pass


@programs.command("load")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
@async_command
async def load(ctx: click.Context, path: Path):
    """Load a program definition from a JSON file."""
    ensure_initialized(ctx)
    try:
        program = await load_program_file(path)
    except AlreadyExists as e:
        echo_error(str(e))
        ctx.exit(1)
    except (PowerProError, ValueError, KeyError) as e:
        echo_error(f"Invalid program definition: {e}")
        ctx.exit(1)
    except aiosqlite.IntegrityError as e:
        echo_error(f"Could not store program: {e}")
        ctx.exit(1)
    echo_success(f"Loaded '{program.name}' as {program.slug} ({program.id})")


@programs.command("list")
@click.pass_context
@async_command
async def list_programs(ctx: click.Context):
    """List all programs."""
    ensure_initialized(ctx)
    all_programs = await ProgramRepository().list_all()
    if not all_programs:
        echo_info("No programs yet. Load one with 'powerpro programs load'.")
        return

    rows = [[p.slug, p.name, p.id] for p in all_programs]
    click.echo(format_table(["Slug", "Name", "ID"], rows))


@programs.command("show")
@click.argument("program")
@click.option("--json", "as_json", is_flag=True, help="Print the cycle structure as JSON")
@click.pass_context
@async_command
async def show(ctx: click.Context, program: str, as_json: bool):
    """Show the week/day structure of PROGRAM (slug or ID)."""
    ensure_initialized(ctx)
    repo = ProgramRepository()
    found = await repo.get_by_slug(program) or await repo.get(program)
    if found is None:
        echo_error(f"Program '{program}' not found.")
        ctx.exit(1)

    cycle = await repo.get_cycle(found.cycle_id)
    if as_json:
        click.echo(json.dumps({"program": found.to_dict(), "cycle": cycle.to_dict()}, indent=2))
        return

    days = DayRepository()
    prescriptions = PrescriptionRepository()
    lift_names = {lift.id: lift.name for lift in await LiftRepository().list_all()}

    click.echo()
    click.echo(click.style(found.name, bold=True))
    click.echo("=" * 50)
    if found.description:
        click.echo(found.description)
    click.echo(f"Cycle: {cycle.name} ({cycle.length_weeks} weeks)")
    for week in cycle.weeks:
        click.echo()
        click.echo(click.style(f"Week {week.week_number}", bold=True))
        for index, day in enumerate(await days.get_many(week.day_ids)):
            click.echo(f"  {index}. {day.name} [{day.slug}]")
            for p in await prescriptions.get_many(day.prescription_ids):
                click.echo(
                    f"       - {lift_names.get(p.lift_id, p.lift_id)}: "
                    f"{p.load_strategy.type} / {p.set_scheme.type}"
                )
