"""Resolve a day's prescriptions into workout exercises."""

import logging
from decimal import Decimal

from ..errors import ForwardReference, InvalidDescriptor, NotFound
from ..models.lift import Lift, MaxKind
from ..models.program import Prescription
from ..models.strategies import LinearAdd, PercentOf, RelativeTo, RPETarget
from ..models.workout import WorkoutExercise
from .loads import ResolutionContext, resolve_load
from .sets import resolve_sets

logger = logging.getLogger(__name__)


def validate_day_order(prescriptions: list[Prescription]) -> None:
    """Check that every RelativeTo points at an earlier prescription.

    Declared order is the resolution order, so a reference to a later
    prescription (or to itself, or to one outside the day) can never be
    satisfied. Any cycle contains at least one such reference.

    Raises:
        ForwardReference: On the first unsatisfiable reference
        InvalidDescriptor: If a prescription appears twice in the day
    """
    position: dict[str, int] = {}
    for index, prescription in enumerate(prescriptions):
        if prescription.id in position:
            raise InvalidDescriptor(f"Prescription {prescription.id} appears twice in the day")
        position[prescription.id] = index

    for index, prescription in enumerate(prescriptions):
        strategy = prescription.load_strategy
        if not isinstance(strategy, RelativeTo):
            continue
        source_index = position.get(strategy.source_prescription_id)
        if source_index is None:
            raise ForwardReference(
                f"Prescription {prescription.id} is relative to "
                f"{strategy.source_prescription_id}, which is not in the day"
            )
        if source_index >= index:
            raise ForwardReference(
                f"Prescription {prescription.id} is relative to "
                f"{strategy.source_prescription_id}, which is not declared before it"
            )


def required_maxes(prescriptions: list[Prescription]) -> set[tuple[str, MaxKind]]:
    """(lift, kind) pairs the day's strategies will read."""
    needed = set()
    for p in prescriptions:
        if isinstance(p.load_strategy, PercentOf):
            needed.add((p.lift_id, p.load_strategy.reference_kind))
        elif isinstance(p.load_strategy, RPETarget):
            needed.add((p.lift_id, MaxKind.TRUE_MAX))
    return needed


def required_last_weights(prescriptions: list[Prescription]) -> set[str]:
    """Lift ids whose most recent logged weight is needed."""
    return {p.lift_id for p in prescriptions if isinstance(p.load_strategy, LinearAdd)}


def needs_rpe_chart(prescriptions: list[Prescription]) -> bool:
    return any(isinstance(p.load_strategy, RPETarget) for p in prescriptions)


def resolve_prescriptions(
    prescriptions: list[Prescription],
    lifts: dict[str, Lift],
    ctx: ResolutionContext,
    increment: Decimal,
) -> list[WorkoutExercise]:
    """Resolve prescriptions in declared order.

    Any error propagates immediately; no partial list is returned.

    Args:
        prescriptions: The day's prescriptions, in order
        lifts: Lifts by id
        ctx: Prefetched maxes, logged weights and lookups
        increment: Rounding increment

    Returns:
        One WorkoutExercise per prescription, in the same order
    """
    validate_day_order(prescriptions)

    exercises = []
    for prescription in prescriptions:
        load = resolve_load(prescription.load_strategy, prescription.lift_id, ctx)
        plan = resolve_sets(prescription.set_scheme, load, increment)

        ctx.base_weights[prescription.id] = load.base
        ctx.set_weights[prescription.id] = plan.raw_weights

        target = plan.target
        if load.is_discovery:
            target = f"Work up to a {load.discovery_reps}-rep max"

        lift = lifts.get(prescription.lift_id)
        if lift is None:
            raise NotFound(f"Lift {prescription.lift_id} not found")
        exercises.append(
            WorkoutExercise(
                prescription_id=prescription.id,
                lift_id=lift.id,
                lift_name=lift.name,
                lift_slug=lift.slug,
                sets=plan.sets,
                notes=prescription.notes,
                rest_seconds=prescription.rest_seconds,
                target=target,
            )
        )
        logger.debug(
            "Resolved %s: %d sets for %s", prescription.id, len(plan.sets), lift.slug
        )

    return exercises
