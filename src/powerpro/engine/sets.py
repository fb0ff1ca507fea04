"""SetScheme resolution: scheme descriptor + load -> ordered sets."""

from dataclasses import dataclass, field
from decimal import Decimal

from ..errors import InvalidDescriptor
from ..models.base import decimal_str
from ..models.lift import LoggedSet
from ..models.schemes import AMRAP, MRS, FatigueDrop, Fixed, Ramp, TopBackoff, TotalReps
from ..models.workout import ResolvedSet
from .loads import LoadResult
from .rounding import RoundingDirection, round_weight


@dataclass
class SetPlan:
    """Resolved sets plus the unrounded weights they came from.

    ``target`` describes how session-variable schemes continue after the
    seed set.
    """

    sets: list[ResolvedSet] = field(default_factory=list)
    raw_weights: list[Decimal | None] = field(default_factory=list)
    target: str | None = None


def _scale(weight: Decimal | None, factor: Decimal) -> Decimal | None:
    return None if weight is None else weight * factor


def _describe(weight: Decimal | None) -> str:
    return "your working weight" if weight is None else decimal_str(weight)


class _PlanBuilder:
    def __init__(self, increment: Decimal):
        self.increment = increment
        self.plan = SetPlan()

    def add(self, raw: Decimal | None, reps: int, **flags) -> None:
        self.plan.raw_weights.append(raw)
        self.plan.sets.append(
            ResolvedSet(
                set_number=len(self.plan.sets) + 1,
                weight=round_weight(raw, self.increment),
                target_reps=reps,
                **flags,
            )
        )


def _resolve_fixed(scheme: Fixed, load: LoadResult, builder: _PlanBuilder) -> None:
    for i in range(scheme.sets):
        builder.add(load.weight_for(i), load.reps_for(i, scheme.reps))


def _resolve_ramp(scheme: Ramp, load: LoadResult, builder: _PlanBuilder) -> None:
    for pct in scheme.percentages:
        builder.add(
            _scale(load.base, pct),
            scheme.reps,
            is_work_set=pct >= scheme.work_set_threshold,
        )


def _resolve_top_backoff(scheme: TopBackoff, load: LoadResult, builder: _PlanBuilder) -> None:
    for _ in range(scheme.top_sets):
        builder.add(load.base, scheme.top_reps)
    backoff = _scale(load.base, scheme.backoff_percent)
    for _ in range(scheme.backoff_sets):
        builder.add(backoff, scheme.backoff_reps)


def _resolve_amrap(scheme: AMRAP, load: LoadResult, builder: _PlanBuilder) -> None:
    for i in range(scheme.sets):
        builder.add(
            load.weight_for(i),
            load.reps_for(i, scheme.min_reps),
            is_amrap=i == scheme.sets - 1,
        )


def _resolve_mrs(scheme: MRS, load: LoadResult, builder: _PlanBuilder) -> None:
    builder.add(load.base, scheme.initial_reps, is_provisional=True)
    weight = builder.plan.sets[0].weight
    builder.plan.target = (
        f"Repeat sets of {scheme.initial_reps} at {_describe(weight)} until a set falls "
        f"short of {scheme.initial_reps} reps (max {scheme.max_sets} sets)"
    )


def _resolve_fatigue_drop(scheme: FatigueDrop, load: LoadResult, builder: _PlanBuilder) -> None:
    builder.add(load.base, scheme.target_reps, is_provisional=True)
    weight = builder.plan.sets[0].weight
    drop = decimal_str(scheme.drop_percent * 100)
    start = f" @ RPE {decimal_str(scheme.start_rpe)}" if scheme.start_rpe is not None else ""
    builder.plan.target = (
        f"{scheme.target_reps} reps at {_describe(weight)}{start}, then drop {drop}% per set "
        f"until RPE {decimal_str(scheme.stop_rpe)} (max {scheme.max_sets} sets)"
    )


def _resolve_total_reps(scheme: TotalReps, load: LoadResult, builder: _PlanBuilder) -> None:
    builder.add(
        load.base,
        min(scheme.suggested_reps_per_set, scheme.target),
        is_provisional=True,
    )
    weight = builder.plan.sets[0].weight
    builder.plan.target = (
        f"Accumulate {scheme.target} total reps at {_describe(weight)} "
        f"in as few sets as possible"
    )


_RESOLVERS = {
    Fixed: _resolve_fixed,
    Ramp: _resolve_ramp,
    TopBackoff: _resolve_top_backoff,
    AMRAP: _resolve_amrap,
    MRS: _resolve_mrs,
    FatigueDrop: _resolve_fatigue_drop,
    TotalReps: _resolve_total_reps,
}


def resolve_sets(scheme, load: LoadResult, increment: Decimal) -> SetPlan:
    """Expand a set scheme against a resolved load.

    Each set's weight is rounded exactly once, here. MRS, FatigueDrop and
    TotalReps produce a single provisional seed set plus a textual target,
    because their set count depends on live performance.

    Args:
        scheme: SetScheme descriptor
        load: Raw weights from the load strategy
        increment: Rounding increment for the program

    Returns:
        SetPlan with ordered sets
    """
    try:
        resolver = _RESOLVERS[type(scheme)]
    except KeyError:
        raise InvalidDescriptor(f"Unsupported set scheme: {type(scheme).__name__}") from None

    builder = _PlanBuilder(increment)
    resolver(scheme, load, builder)
    return builder.plan


def next_set(scheme, performed: list[LoggedSet], increment: Decimal) -> ResolvedSet | None:
    """Work out the next set of a session-variable scheme from live results.

    Args:
        scheme: An MRS, FatigueDrop or TotalReps scheme
        performed: Sets performed so far for this prescription, in order
        increment: Rounding increment for the program

    Returns:
        The next set to perform, or None when the block is finished
    """
    if not performed:
        raise ValueError("next_set needs at least the seed set to have been performed")
    last = performed[-1]
    set_number = len(performed) + 1

    if isinstance(scheme, MRS):
        if len(performed) >= scheme.max_sets or last.reps_performed < scheme.initial_reps:
            return None
        return ResolvedSet(set_number, last.weight, scheme.initial_reps, is_provisional=True)

    if isinstance(scheme, FatigueDrop):
        if len(performed) >= scheme.max_sets:
            return None
        if last.rpe is not None and last.rpe >= scheme.stop_rpe:
            return None
        weight = round_weight(
            last.weight * (1 - scheme.drop_percent), increment, RoundingDirection.DOWN
        )
        if weight <= 0:
            return None
        return ResolvedSet(set_number, weight, scheme.target_reps, is_provisional=True)

    if isinstance(scheme, TotalReps):
        done = sum(s.reps_performed for s in performed)
        if done >= scheme.target or len(performed) >= scheme.max_sets:
            return None
        reps = min(scheme.suggested_reps_per_set, scheme.target - done)
        return ResolvedSet(set_number, last.weight, reps, is_provisional=True)

    raise InvalidDescriptor(f"{type(scheme).__name__} has a fixed set count")
