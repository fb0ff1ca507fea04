"""LoadStrategy resolution: strategy descriptor -> raw (unrounded) weights."""

from dataclasses import dataclass, field
from decimal import Decimal

from ..errors import (
    ForwardReference,
    InvalidDescriptor,
    LookupMiss,
    MissingLiftMax,
    NoPriorPerformance,
)
from ..models.lift import MaxKind
from ..models.lookups import DailyLookup, RPEChart, WeeklyLookup
from ..models.strategies import FindRM, LinearAdd, PercentOf, RelativeTo, RPETarget


@dataclass
class LoadResult:
    """Raw weights produced by a load strategy.

    ``weights`` holds one weight, or one per set when a weekly lookup
    supplies a percentage set. It is None for find-your-max prescriptions.
    ``reps`` carries per-set rep targets from a weekly lookup, if any.
    """

    weights: list[Decimal] | None
    reps: list[int] = field(default_factory=list)
    discovery_reps: int | None = None

    @property
    def is_discovery(self) -> bool:
        return self.weights is None

    @property
    def base(self) -> Decimal | None:
        """The heaviest weight, used by single-weight schemes."""
        if self.weights is None:
            return None
        return max(self.weights)

    def weight_for(self, index: int) -> Decimal | None:
        if self.weights is None:
            return None
        return self.weights[min(index, len(self.weights) - 1)]

    def reps_for(self, index: int, default: int) -> int:
        if not self.reps:
            return default
        return self.reps[min(index, len(self.reps) - 1)]


@dataclass
class ResolutionContext:
    """Everything a resolution pass reads, fetched up front.

    ``set_weights`` is filled in as prescriptions resolve, in declared
    order, and is what RelativeTo reads from.
    """

    user_id: str
    week_number: int
    day_slug: str
    lift_maxes: dict[tuple[str, MaxKind], Decimal] = field(default_factory=dict)
    last_weights: dict[str, Decimal] = field(default_factory=dict)
    rpe_chart: RPEChart | None = None
    weekly_lookup: WeeklyLookup | None = None
    daily_lookup: DailyLookup | None = None
    base_weights: dict[str, Decimal | None] = field(default_factory=dict)
    set_weights: dict[str, list[Decimal | None]] = field(default_factory=dict)

    def lift_max(self, lift_id: str, kind: MaxKind) -> Decimal:
        try:
            return self.lift_maxes[(lift_id, kind)]
        except KeyError:
            raise MissingLiftMax(lift_id, kind.value) from None


def _resolve_percent_of(strategy: PercentOf, lift_id: str, ctx: ResolutionContext) -> LoadResult:
    reference = ctx.lift_max(lift_id, strategy.reference_kind)
    if not strategy.uses_lookup:
        return LoadResult(weights=[reference * strategy.percentage])

    if ctx.weekly_lookup is None and ctx.daily_lookup is None:
        raise LookupMiss("Prescription uses a looked-up percentage but the program has no lookups")

    percentages = [Decimal(1)]
    reps: list[int] = []
    if ctx.weekly_lookup is not None:
        entry = ctx.weekly_lookup.entry_for(ctx.week_number)
        percentages = list(entry.percentages)
        reps = list(entry.reps)
    if ctx.daily_lookup is not None:
        daily = ctx.daily_lookup.percentage_for(ctx.day_slug)
        percentages = [p * daily for p in percentages]

    return LoadResult(weights=[reference * p for p in percentages], reps=reps)


def _resolve_rpe_target(strategy: RPETarget, lift_id: str, ctx: ResolutionContext) -> LoadResult:
    if ctx.rpe_chart is None:
        raise LookupMiss("No RPE chart is available")
    percentage = ctx.rpe_chart.percentage_for(strategy.reps, strategy.rpe)
    true_max = ctx.lift_max(lift_id, MaxKind.TRUE_MAX)
    return LoadResult(weights=[true_max * percentage])


def _resolve_linear_add(strategy: LinearAdd, lift_id: str, ctx: ResolutionContext) -> LoadResult:
    last = ctx.last_weights.get(lift_id)
    if last is None:
        raise NoPriorPerformance(lift_id)
    # Negative increments floor at zero.
    return LoadResult(weights=[max(last + strategy.increment, Decimal(0))])


def _resolve_find_rm(strategy: FindRM, lift_id: str, ctx: ResolutionContext) -> LoadResult:
    return LoadResult(weights=None, discovery_reps=strategy.target_reps)


def _resolve_relative_to(strategy: RelativeTo, lift_id: str, ctx: ResolutionContext) -> LoadResult:
    source = strategy.source_prescription_id
    if source not in ctx.base_weights:
        raise ForwardReference(f"Prescription {source} has not been resolved yet")

    if strategy.source_set_number is None:
        weight = ctx.base_weights[source]
    else:
        sets = ctx.set_weights[source]
        if strategy.source_set_number > len(sets):
            raise ForwardReference(
                f"Prescription {source} has no set {strategy.source_set_number}"
            )
        weight = sets[strategy.source_set_number - 1]

    if weight is None:
        raise InvalidDescriptor(f"Prescription {source} has no weight to be relative to")
    return LoadResult(weights=[weight * strategy.percentage])


_RESOLVERS = {
    PercentOf: _resolve_percent_of,
    RPETarget: _resolve_rpe_target,
    LinearAdd: _resolve_linear_add,
    FindRM: _resolve_find_rm,
    RelativeTo: _resolve_relative_to,
}


def resolve_load(strategy, lift_id: str, ctx: ResolutionContext) -> LoadResult:
    """Resolve a load strategy to raw weights.

    Raises:
        MissingLiftMax, LookupMiss, NoPriorPerformance, ForwardReference
    """
    try:
        resolver = _RESOLVERS[type(strategy)]
    except KeyError:
        raise InvalidDescriptor(f"Unsupported load strategy: {type(strategy).__name__}") from None
    return resolver(strategy, lift_id, ctx)
