"""Weight rounding to a loadable increment."""

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal
from enum import Enum

from ..models.base import to_decimal


class RoundingDirection(str, Enum):
    NEAREST = "nearest"
    DOWN = "down"
    UP = "up"


_MODES = {
    RoundingDirection.NEAREST: ROUND_HALF_UP,
    RoundingDirection.DOWN: ROUND_FLOOR,
    RoundingDirection.UP: ROUND_CEILING,
}


def round_weight(
    weight: Decimal | None,
    increment: Decimal,
    direction: RoundingDirection = RoundingDirection.NEAREST,
) -> Decimal | None:
    """Round a weight to a multiple of ``increment``.

    Ties round up, so 172.5 rounds to 175 with an increment of 5. Call this
    once per set, after all percentage math.

    Args:
        weight: The computed weight, or None for open-ended sets
        increment: Smallest loadable step (e.g. 5 lb, 2.5 kg)
        direction: NEAREST, DOWN or UP

    Returns:
        The rounded weight, or None if ``weight`` was None

    Raises:
        ValueError: If the increment is not positive or the weight is negative
    """
    if weight is None:
        return None
    weight = to_decimal(weight)
    increment = to_decimal(increment)
    if increment <= 0:
        raise ValueError("Rounding increment must be positive")
    if weight < 0:
        raise ValueError("Cannot round a negative weight")

    steps = (weight / increment).quantize(Decimal(1), rounding=_MODES[direction])
    return steps * increment
