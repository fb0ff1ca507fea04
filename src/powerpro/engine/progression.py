"""Progression rule evaluation.

Each rule kind has one evaluator. Evaluators are pure: they take the
current reference value and what the athlete did, and return the outcome
without touching storage.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from ..errors import InvalidDescriptor
from ..models.base import decimal_str
from ..models.lift import LoggedSet
from ..models.progression import (
    AMRAPProgression,
    CycleProgression,
    DeloadOnFailure,
    DoubleProgression,
    LinearProgression,
    ProgressionState,
    StageProgression,
    TriggerKind,
)
from ..models.state import UserProgramState

CENT = Decimal("0.01")


@dataclass
class PerformanceContext:
    """What the athlete did, as seen by a rule."""

    latest_set: LoggedSet | None
    state: ProgressionState


@dataclass
class RuleOutcome:
    applied: bool
    new_value: Decimal
    delta: Decimal
    reason: str
    new_stage: int | None = None
    reset_failures: bool = False

    @classmethod
    def skip(cls, current: Decimal, reason: str) -> "RuleOutcome":
        return cls(applied=False, new_value=current, delta=Decimal(0), reason=reason)


def _apply(current: Decimal, new_value: Decimal, reason: str, **extra) -> RuleOutcome:
    new_value = max(new_value, Decimal(0)).quantize(CENT, rounding=ROUND_HALF_UP)
    return RuleOutcome(
        applied=True,
        new_value=new_value,
        delta=new_value - current,
        reason=reason,
        **extra,
    )


def _evaluate_linear(rule: LinearProgression, current, perf) -> RuleOutcome:
    return _apply(current, current + rule.increment, f"linear +{decimal_str(rule.increment)}")


def _evaluate_cycle(rule: CycleProgression, current, perf) -> RuleOutcome:
    return _apply(current, current + rule.increment, f"cycle +{decimal_str(rule.increment)}")


def _evaluate_amrap(rule: AMRAPProgression, current, perf) -> RuleOutcome:
    logged = perf.latest_set
    if logged is None or not logged.is_amrap:
        return RuleOutcome.skip(current, "no AMRAP set logged")
    threshold = rule.threshold_for(logged.reps_performed)
    if threshold is None:
        return RuleOutcome.skip(current, f"{logged.reps_performed} reps met no threshold")
    return _apply(
        current,
        current + threshold.increment,
        f"AMRAP {logged.reps_performed} reps >= {threshold.min_reps}: "
        f"+{decimal_str(threshold.increment)}",
    )


def _evaluate_deload(rule: DeloadOnFailure, current, perf) -> RuleOutcome:
    failures = perf.state.consecutive_failures
    if failures < rule.failure_count:
        return RuleOutcome.skip(
            current, f"{failures} of {rule.failure_count} consecutive failures"
        )
    return _apply(
        current,
        current * rule.multiplier,
        f"deload x{decimal_str(rule.multiplier)} after {failures} consecutive failures",
        reset_failures=True,
    )


def _evaluate_stage(rule: StageProgression, current, perf) -> RuleOutcome:
    stage = perf.state.current_stage
    if stage + 1 < len(rule.stages):
        return RuleOutcome(
            applied=True,
            new_value=current,
            delta=Decimal(0),
            reason=f"stage {rule.stages[stage].name} -> {rule.stages[stage + 1].name}",
            new_stage=stage + 1,
            reset_failures=True,
        )
    if not rule.reset_on_exhaustion:
        return RuleOutcome.skip(current, "all stages exhausted")

    new_value = current
    reason = f"stages exhausted, reset to {rule.stages[0].name}"
    if rule.deload_multiplier is not None:
        new_value = current * rule.deload_multiplier
        reason += f" with deload x{decimal_str(rule.deload_multiplier)}"
    return _apply(current, new_value, reason, new_stage=0, reset_failures=True)


def _evaluate_double(rule: DoubleProgression, current, perf) -> RuleOutcome:
    logged = perf.latest_set
    if logged is None:
        return RuleOutcome.skip(current, "no set logged")
    if logged.reps_performed < rule.max_reps:
        return RuleOutcome.skip(
            current,
            f"rep target not yet reached ({logged.reps_performed}/{rule.max_reps})",
        )
    return _apply(
        current,
        current + rule.increment,
        f"hit {logged.reps_performed} reps at top of {rule.min_reps}-{rule.max_reps}: "
        f"+{decimal_str(rule.increment)}",
    )


_EVALUATORS = {
    LinearProgression: _evaluate_linear,
    AMRAPProgression: _evaluate_amrap,
    DeloadOnFailure: _evaluate_deload,
    StageProgression: _evaluate_stage,
    DoubleProgression: _evaluate_double,
    CycleProgression: _evaluate_cycle,
}


def evaluate_rule(rule, current: Decimal, perf: PerformanceContext) -> RuleOutcome:
    """Compute what a progression rule does to the current value.

    New values are floored at zero.
    """
    try:
        evaluator = _EVALUATORS[type(rule)]
    except KeyError:
        raise InvalidDescriptor(f"Unsupported progression rule: {type(rule).__name__}") from None
    return evaluator(rule, current, perf)


def session_key(state: UserProgramState) -> str:
    return (
        f"{state.enrollment_id}:session:"
        f"{state.cycle_iteration}:{state.current_week}:{state.current_day_index}"
    )


def period_key(
    kind: TriggerKind,
    state: UserProgramState,
    logged_set_id: str | None = None,
) -> str:
    """Identify the trigger period a progression application belongs to.

    At most one non-forced application per (user, lift, progression,
    period key) is allowed. Keys start with the enrollment id, so a user
    who re-enrolls gets fresh periods.
    """
    if kind == TriggerKind.AFTER_SESSION:
        return session_key(state)
    enrollment = state.enrollment_id
    if kind == TriggerKind.AFTER_WEEK:
        return f"{enrollment}:week:{state.cycle_iteration}:{state.current_week}"
    if kind == TriggerKind.AFTER_CYCLE:
        return f"{enrollment}:cycle:{state.cycle_iteration}"
    if kind == TriggerKind.ON_FAILURE:
        return (
            f"{enrollment}:failure:"
            f"{state.cycle_iteration}:{state.current_week}:{state.current_day_index}"
        )
    if logged_set_id is not None:
        return f"{enrollment}:set:{logged_set_id}"
    return session_key(state)
