"""Pure resolution and progression logic (no I/O)."""

from .loads import LoadResult, ResolutionContext, resolve_load
from .pipeline import resolve_prescriptions, validate_day_order
from .progression import PerformanceContext, RuleOutcome, evaluate_rule, period_key
from .rounding import RoundingDirection, round_weight
from .sets import SetPlan, next_set, resolve_sets

__all__ = [
    "evaluate_rule",
    "LoadResult",
    "next_set",
    "PerformanceContext",
    "period_key",
    "ResolutionContext",
    "resolve_load",
    "resolve_prescriptions",
    "resolve_sets",
    "round_weight",
    "RoundingDirection",
    "RuleOutcome",
    "SetPlan",
    "validate_day_order",
]
