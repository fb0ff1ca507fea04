"""Progression and logged-set commands."""

import json
from decimal import Decimal

import click

from ..errors import PowerProError
from ..models.base import decimal_str
from ..models.lift import LoggedSet
from ..models.progression import TriggerSummary
from ..services import ProgressionService
from .base import (
    async_command,
    echo_error,
    echo_info,
    echo_success,
    echo_warning,
    ensure_initialized,
    format_table,
    resolve_lift_id,
)


@click.group()
def progression():
    """Apply progressions and view their history."""
    pass


@progression.command("trigger")
@click.argument("user_id")
@click.argument("progression_id")
@click.option("--lift", help="Only apply to this lift (slug or ID)")
@click.option("--force", is_flag=True, help="Apply even if already applied this period")
@click.option("--json", "as_json", is_flag=True, help="Print the summary as JSON")
@click.pass_context
@async_command
async def trigger(
    ctx: click.Context,
    user_id: str,
    progression_id: str,
    lift: str | None,
    force: bool,
    as_json: bool,
):
    """Apply PROGRESSION_ID for USER_ID's current period."""
    ensure_initialized(ctx)
    lift_id = await resolve_lift_id(ctx, lift) if lift else None
    try:
        summary = await ProgressionService().trigger_progression(
            user_id, progression_id, lift_id=lift_id, force=force
        )
    except PowerProError as e:
        echo_error(e.message)
        ctx.exit(1)

    if as_json:
        click.echo(json.dumps(summary.to_dict(), indent=2))
        return
    _print_summary(summary)


@progression.command("history")
@click.argument("user_id")
@click.option("--lift", help="Only show this lift (slug or ID)")
@click.pass_context
@async_command
async def history(ctx: click.Context, user_id: str, lift: str | None):
    """Show applied progressions for USER_ID."""
    ensure_initialized(ctx)
    lift_id = await resolve_lift_id(ctx, lift) if lift else None
    entries = await ProgressionService().get_progression_history(user_id, lift_id)
    if not entries:
        echo_info(f"No progressions applied for {user_id}.")
        return

    rows = [
        [
            e.applied_at.strftime("%Y-%m-%d %H:%M"),
            e.lift_id,
            e.trigger_kind.value,
            e.period_key,
            f"{decimal_str(e.previous_value)} -> {decimal_str(e.new_value)}",
            e.reason,
        ]
        for e in entries
    ]
    click.echo(format_table(["Applied", "Lift", "Trigger", "Period", "Change", "Reason"], rows))


@click.command("log-set")
@click.argument("user_id")
@click.argument("lift")
@click.argument("weight", type=Decimal)
@click.argument("reps", type=int)
@click.option("--target", "target_reps", type=int, help="Prescribed rep target")
@click.option("--set-number", type=int, default=1, show_default=True)
@click.option("--amrap", is_flag=True, help="The set was an AMRAP set")
@click.option("--rpe", type=Decimal, help="Rate of perceived exertion")
@click.option("--prescription", "prescription_id", help="Prescription the set belongs to")
@click.pass_context
@async_command
async def log_set(
    ctx: click.Context,
    user_id: str,
    lift: str,
    weight: Decimal,
    reps: int,
    target_reps: int | None,
    set_number: int,
    amrap: bool,
    rpe: Decimal | None,
    prescription_id: str | None,
):
    """Record a performed set: WEIGHT x REPS of LIFT."""
    ensure_initialized(ctx)
    lift_id = await resolve_lift_id(ctx, lift)
    try:
        logged = LoggedSet(
            user_id=user_id,
            lift_id=lift_id,
            weight=weight,
            reps_performed=reps,
            target_reps=target_reps,
            set_number=set_number,
            is_amrap=amrap,
            rpe=rpe,
            prescription_id=prescription_id,
        )
        summaries = await ProgressionService().record_logged_set(logged)
    except (PowerProError, ValueError) as e:
        echo_error(str(e))
        ctx.exit(1)

    echo_success(f"Logged {decimal_str(logged.weight)} x {reps} ({logged.id})")
    for summary in summaries:
        _print_summary(summary)


def _print_summary(summary: TriggerSummary) -> None:
    for r in summary.results:
        if r.applied:
            echo_success(
                f"{r.lift_id}: {decimal_str(r.previous_value)} -> {decimal_str(r.new_value)}"
                f" ({r.reason})"
            )
        elif r.error:
            echo_warning(f"{r.lift_id}: {r.error.get('message')}")
        else:
            echo_info(f"{r.lift_id}: skipped ({r.reason})")
    click.echo(
        f"Applied {summary.total_applied}, skipped {summary.total_skipped}, "
        f"errors {summary.total_errors}"
    )
