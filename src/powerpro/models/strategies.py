"""LoadStrategy descriptors: rules for computing a weight.

The set of strategies is closed. Each variant is a frozen dataclass with a
``type`` tag used for storage, and the resolver in ``engine.loads`` has one
function per variant.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Union

from ..errors import InvalidDescriptor
from .base import decimal_str, optional_decimal, to_decimal
from .lift import MaxKind

# Marker for PercentOf percentages taken from the program's lookup tables.
LOOKUP = "lookup"


def _set(obj, name, value):
    object.__setattr__(obj, name, value)


@dataclass(frozen=True)
class PercentOf:
    """A percentage of one of the athlete's reference numbers.

    A ``percentage`` of None means "use the looked-up percentage" from the
    program's weekly and daily lookups.
    """

    reference_kind: MaxKind
    percentage: Decimal | None = None

    type: ClassVar[str] = "percent_of"

    def __post_init__(self):
        _set(self, "reference_kind", MaxKind(self.reference_kind))
        _set(self, "percentage", optional_decimal(self.percentage))
        if self.percentage is not None and self.percentage <= 0:
            raise InvalidDescriptor("PercentOf percentage must be positive")

    @property
    def uses_lookup(self) -> bool:
        return self.percentage is None

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "reference_kind": self.reference_kind.value,
            "percentage": LOOKUP if self.uses_lookup else decimal_str(self.percentage),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PercentOf":
        percentage = data.get("percentage", LOOKUP)
        return cls(
            reference_kind=MaxKind(data["reference_kind"]),
            percentage=None if percentage == LOOKUP else percentage,
        )


@dataclass(frozen=True)
class RPETarget:
    """Weight for a rep count at a target RPE, from the RPE chart."""

    reps: int
    rpe: Decimal

    type: ClassVar[str] = "rpe_target"

    def __post_init__(self):
        _set(self, "rpe", to_decimal(self.rpe))
        if self.reps < 1:
            raise InvalidDescriptor("RPETarget reps must be >= 1")

    def to_dict(self) -> dict:
        return {"type": self.type, "reps": self.reps, "rpe": decimal_str(self.rpe)}

    @classmethod
    def from_dict(cls, data: dict) -> "RPETarget":
        return cls(reps=int(data["reps"]), rpe=data["rpe"])


@dataclass(frozen=True)
class LinearAdd:
    """Last logged weight for the lift plus a fixed increment."""

    increment: Decimal

    type: ClassVar[str] = "linear_add"

    def __post_init__(self):
        _set(self, "increment", to_decimal(self.increment))

    def to_dict(self) -> dict:
        return {"type": self.type, "increment": decimal_str(self.increment)}

    @classmethod
    def from_dict(cls, data: dict) -> "LinearAdd":
        return cls(increment=data["increment"])


@dataclass(frozen=True)
class FindRM:
    """No computed weight; the athlete works up to an N-rep max."""

    target_reps: int

    type: ClassVar[str] = "find_rm"

    def __post_init__(self):
        if not 1 <= self.target_reps <= 12:
            raise InvalidDescriptor("FindRM target_reps must be between 1 and 12")

    def to_dict(self) -> dict:
        return {"type": self.type, "target_reps": self.target_reps}

    @classmethod
    def from_dict(cls, data: dict) -> "FindRM":
        return cls(target_reps=int(data["target_reps"]))


@dataclass(frozen=True)
class RelativeTo:
    """A percentage of a weight resolved earlier in the same day.

    ``source_set_number`` selects one set of the source prescription;
    without it the source's base weight is used.
    """

    source_prescription_id: str
    percentage: Decimal
    source_set_number: int | None = None

    type: ClassVar[str] = "relative_to"

    def __post_init__(self):
        _set(self, "percentage", to_decimal(self.percentage))
        if self.percentage <= 0:
            raise InvalidDescriptor("RelativeTo percentage must be positive")
        if self.source_set_number is not None and self.source_set_number < 1:
            raise InvalidDescriptor("RelativeTo source_set_number must be >= 1")

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "source_prescription_id": self.source_prescription_id,
            "percentage": decimal_str(self.percentage),
            "source_set_number": self.source_set_number,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RelativeTo":
        return cls(
            source_prescription_id=data["source_prescription_id"],
            percentage=data["percentage"],
            source_set_number=data.get("source_set_number"),
        )


LoadStrategy = Union[PercentOf, RPETarget, LinearAdd, FindRM, RelativeTo]

LOAD_STRATEGY_TYPES: dict[str, type] = {
    cls.type: cls for cls in (PercentOf, RPETarget, LinearAdd, FindRM, RelativeTo)
}


def load_strategy_from_dict(data: dict) -> LoadStrategy:
    """Deserialize a tagged load strategy."""
    try:
        cls = LOAD_STRATEGY_TYPES[data["type"]]
    except KeyError:
        raise InvalidDescriptor(f"Unknown load strategy: {data.get('type')!r}") from None
    return cls.from_dict(data)
