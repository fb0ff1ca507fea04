"""Lift and lift-max commands."""

import re
from decimal import Decimal

import click

from ..db.repositories import LiftMaxRepository, LiftRepository, LookupRepository
from ..engine.estimate import estimate_max
from ..errors import PowerProError
from ..models.base import decimal_str
from ..models.lift import Lift, LiftMax, MaxKind
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    ensure_initialized,
    format_table,
    resolve_lift_id,
)

KIND_CHOICE = click.Choice([k.value for k in MaxKind])


def slugify(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


@click.group()
def lifts():
    """Manage lifts."""
    pass


@lifts.command("add")
@click.argument("name")
@click.option("--slug", help="Slug (default: derived from the name)")
@click.option("--competition", is_flag=True, help="Mark as a competition lift")
@click.pass_context
@async_command
async def add_lift(ctx: click.Context, name: str, slug: str | None, competition: bool):
    """Add a lift."""
    ensure_initialized(ctx)
    repo = LiftRepository()
    slug = slug or slugify(name)
    if await repo.get_by_slug(slug):
        echo_error(f"A lift with slug '{slug}' already exists.")
        ctx.exit(1)

    lift = Lift(name=name, slug=slug, is_competition_lift=competition)
    await repo.create(lift)
    echo_success(f"Added {lift.name} ({lift.slug}, {lift.id})")


@lifts.command("list")
@click.pass_context
@async_command
async def list_lifts(ctx: click.Context):
    """List all lifts."""
    ensure_initialized(ctx)
    all_lifts = await LiftRepository().list_all()
    if not all_lifts:
        echo_info("No lifts yet. Add one with 'powerpro lifts add'.")
        return

    rows = [
        [lift.slug, lift.name, "yes" if lift.is_competition_lift else "", lift.id]
        for lift in all_lifts
    ]
    click.echo(format_table(["Slug", "Name", "Competition", "ID"], rows))


@click.group()
def maxes():
    """Record and view lift maxes."""
    pass


@maxes.command("set")
@click.argument("user_id")
@click.argument("lift")
@click.argument("value", type=Decimal)
@click.option("--kind", type=KIND_CHOICE, default=MaxKind.TRAINING_MAX.value, show_default=True)
@click.option("--reps", type=int, help="Rep count for a rep max")
@click.pass_context
@async_command
async def set_max(
    ctx: click.Context, user_id: str, lift: str, value: Decimal, kind: str, reps: int | None
):
    """Record a new max for USER_ID on LIFT (slug or ID)."""
    ensure_initialized(ctx)
    lift_id = await resolve_lift_id(ctx, lift)
    try:
        lift_max = LiftMax(
            user_id=user_id, lift_id=lift_id, kind=MaxKind(kind), value=value, reps=reps
        )
    except ValueError as e:
        echo_error(str(e))
        ctx.exit(1)
    await LiftMaxRepository().create(lift_max)
    echo_success(f"Recorded {kind} of {decimal_str(lift_max.value)} for {lift}")


@maxes.command("list")
@click.argument("user_id")
@click.option("--lift", help="Only show this lift (slug or ID)")
@click.pass_context
@async_command
async def list_maxes(ctx: click.Context, user_id: str, lift: str | None):
    """Show max history for a user."""
    ensure_initialized(ctx)
    lift_id = await resolve_lift_id(ctx, lift) if lift else None
    history = await LiftMaxRepository().list_history(user_id, lift_id)
    if not history:
        echo_info(f"No maxes recorded for {user_id}.")
        return

    names = {lift.id: lift.slug for lift in await LiftRepository().list_all()}
    rows = [
        [
            m.effective_date.strftime("%Y-%m-%d %H:%M:%S"),
            names.get(m.lift_id, m.lift_id),
            m.kind.value,
            decimal_str(m.value),
        ]
        for m in history
    ]
    click.echo(format_table(["Effective", "Lift", "Kind", "Value"], rows))


@maxes.command("estimate")
@click.argument("weight", type=Decimal)
@click.argument("reps", type=int)
@click.argument("rpe", type=Decimal)
@click.pass_context
@async_command
async def estimate(ctx: click.Context, weight: Decimal, reps: int, rpe: Decimal):
    """Estimate a true max from WEIGHT x REPS @ RPE."""
    ensure_initialized(ctx)
    chart = await LookupRepository().get_rpe_chart()
    try:
        value = estimate_max(weight, reps, rpe, chart)
    except (PowerProError, ValueError) as e:
        echo_error(str(e))
        ctx.exit(1)
    click.echo(f"Estimated max: {decimal_str(value)}")
