"""Estimated one-rep max from a set performed at a known RPE."""

from decimal import Decimal

from ..models.base import to_decimal
from ..models.lookups import RPEChart
from .rounding import round_weight

ESTIMATE_INCREMENT = Decimal("2.5")


def estimate_max(weight, reps: int, rpe, chart: RPEChart) -> Decimal:
    """Estimate a true max as weight / chart percentage, rounded to 2.5.

    Raises:
        LookupMiss: If the chart has no entry for the reps/RPE pair
        ValueError: If the weight is not positive
    """
    weight = to_decimal(weight)
    if weight <= 0:
        raise ValueError("Weight must be positive to estimate a max")
    percentage = chart.percentage_for(reps, rpe)
    return round_weight(weight / percentage, ESTIMATE_INCREMENT)
