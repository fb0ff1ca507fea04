"""Enrollment and program-position commands."""

import json

import click

from ..db.repositories import ProgramRepository
from ..errors import PowerProError
from ..models.base import decimal_str
from ..models.state import AdvanceResult, AdvanceType
from ..services import EnrollmentService, ProgressionService
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
)


@click.command()
@click.argument("user_id")
@click.argument("program")
@click.pass_context
@async_command
async def enroll(ctx: click.Context, user_id: str, program: str):
    """Enroll USER_ID in PROGRAM (slug or ID).

    Any existing enrollment is replaced and the position resets to
    iteration 1, week 1, first day.
    """
    ensure_initialized(ctx)
    repo = ProgramRepository()
    found = await repo.get_by_slug(program) or await repo.get(program)
    if found is None:
        echo_error(f"Program '{program}' not found.")
        ctx.exit(1)

    result = await EnrollmentService().enroll(user_id, found.id)
    if result.replaced:
        echo_warning(
            f"Replaced previous enrollment ({result.previous.get_position_display()})"
        )
    echo_success(f"Enrolled {user_id} in {found.name}")


@click.command()
@click.argument("user_id")
@click.pass_context
@async_command
async def unenroll(ctx: click.Context, user_id: str):
    """Remove USER_ID's program enrollment."""
    ensure_initialized(ctx)
    try:
        state = await EnrollmentService().unenroll(user_id)
    except PowerProError as e:
        echo_error(e.message)
        ctx.exit(1)
    echo_success(f"Unenrolled {user_id} (was at {state.get_position_display()})")


@click.command()
@click.argument("user_id")
@click.pass_context
@async_command
async def status(ctx: click.Context, user_id: str):
    """Show USER_ID's current program position."""
    ensure_initialized(ctx)
    try:
        state = await EnrollmentService().get_state(user_id)
    except PowerProError as e:
        echo_error(e.message)
        ctx.exit(1)

    program = await ProgramRepository().get(state.program_id)
    click.echo()
    click.echo(click.style(f"User: {user_id}", bold=True))
    click.echo("=" * 50)
    click.echo(f"Program: {program.name if program else state.program_id}")
    click.echo(f"Position: {state.get_position_display()}")
    click.echo(f"Status: {state.status.value}")
    click.echo(f"Enrolled: {state.enrolled_at.strftime('%Y-%m-%d')}")


@click.command()
@click.argument("user_id")
@click.option("--week", "whole_week", is_flag=True, help="Skip to the start of the next week")
@click.option("--json", "as_json", is_flag=True, help="Print the advance result as JSON")
@click.pass_context
@async_command
async def advance(ctx: click.Context, user_id: str, whole_week: bool, as_json: bool):
    """Advance USER_ID to the next day (or week).

    Session, week and cycle progressions fire for every period the advance
    completes.
    """
    ensure_initialized(ctx)
    service = EnrollmentService(progression_service=ProgressionService())
    advance_type = AdvanceType.WEEK if whole_week else AdvanceType.DAY
    try:
        result = await service.advance_state(user_id, advance_type)
    except PowerProError as e:
        echo_error(e.message)
        ctx.exit(1)

    if as_json:
        click.echo(json.dumps(result.to_dict(), indent=2))
        return
    _print_advance(result)


def _print_advance(result: AdvanceResult) -> None:
    echo_success(
        f"{result.previous.get_position_display()} -> {result.state.get_position_display()}"
    )
    if result.cycle_completed:
        echo_info("Cycle complete, starting the next iteration.")
    elif result.week_completed:
        echo_info("Week complete.")

    for summary in result.progressions:
        for r in summary.results:
            if r.applied:
                echo_success(
                    f"  {r.lift_id}: {decimal_str(r.previous_value)} -> {decimal_str(r.new_value)}"
                    f" ({r.reason})"
                )
            elif r.error:
                echo_warning(f"  {r.lift_id}: {r.error.get('message')}")
