"""Workout display commands."""

import json

import click

from ..errors import PowerProError
from ..models.base import decimal_str
from ..models.workout import Workout
from ..services import WorkoutService
from .base import async_command, echo_error, ensure_initialized


@click.group()
def workout():
    """Show resolved workouts."""
    pass


@workout.command("current")
@click.argument("user_id")
@click.option("--json", "as_json", is_flag=True, help="Print the workout as JSON")
@click.pass_context
@async_command
async def current(ctx: click.Context, user_id: str, as_json: bool):
    """Show the workout USER_ID should do next."""
    ensure_initialized(ctx)
    try:
        resolved = await WorkoutService().get_current_workout(user_id)
    except PowerProError as e:
        echo_error(e.message)
        ctx.exit(1)
    _output(resolved, as_json)


@workout.command("preview")
@click.argument("user_id")
@click.argument("week", type=int)
@click.argument("day_slug")
@click.option("--json", "as_json", is_flag=True, help="Print the workout as JSON")
@click.pass_context
@async_command
async def preview(ctx: click.Context, user_id: str, week: int, day_slug: str, as_json: bool):
    """Resolve WEEK and DAY_SLUG of USER_ID's program without moving their position."""
    ensure_initialized(ctx)
    try:
        resolved = await WorkoutService().preview_workout(user_id, week, day_slug)
    except PowerProError as e:
        echo_error(e.message)
        ctx.exit(1)
    _output(resolved, as_json)


def _output(resolved: Workout, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps(resolved.to_dict(), indent=2))
        return

    click.echo()
    click.echo(
        click.style(
            f"{resolved.day_name} (Week {resolved.week_number}, Cycle {resolved.cycle_iteration})",
            bold=True,
        )
    )
    click.echo("=" * 50)
    for exercise in resolved.exercises:
        click.echo()
        click.echo(click.style(exercise.lift_name, bold=True))
        if exercise.target:
            click.echo(f"  Target: {exercise.target}")
        for s in exercise.sets:
            weight = decimal_str(s.weight) if s.weight is not None else "find"
            flags = []
            if not s.is_work_set:
                flags.append("warmup")
            if s.is_amrap:
                flags.append("AMRAP")
            if s.is_provisional:
                flags.append("provisional")
            suffix = f"  [{', '.join(flags)}]" if flags else ""
            reps = f"{s.target_reps}+" if s.is_amrap else str(s.target_reps)
            click.echo(f"  {s.set_number}. {weight} x {reps}{suffix}")
        if exercise.notes:
            click.echo(f"  Notes: {exercise.notes}")
        if exercise.rest_seconds is not None:
            click.echo(f"  Rest: {exercise.rest_seconds}s")
