"""SetScheme descriptors: rules for structuring sets and reps."""

from dataclasses import dataclass
from decimal import Decimal
from typing import ClassVar, Union

from ..errors import InvalidDescriptor
from .base import decimal_str, optional_decimal, to_decimal

DEFAULT_WORK_SET_THRESHOLD = Decimal("0.80")


def _set(obj, name, value):
    object.__setattr__(obj, name, value)


def _require_positive(**values):
    for name, value in values.items():
        if value < 1:
            raise InvalidDescriptor(f"{name} must be >= 1")


@dataclass(frozen=True)
class Fixed:
    """``sets`` identical sets of ``reps``."""

    sets: int
    reps: int

    type: ClassVar[str] = "fixed"

    def __post_init__(self):
        _require_positive(sets=self.sets, reps=self.reps)

    def to_dict(self) -> dict:
        return {"type": self.type, "sets": self.sets, "reps": self.reps}

    @classmethod
    def from_dict(cls, data: dict) -> "Fixed":
        return cls(sets=int(data["sets"]), reps=int(data["reps"]))


@dataclass(frozen=True)
class Ramp:
    """One set per percentage of the resolved weight.

    Sets at or above ``work_set_threshold`` count as work sets.
    """

    percentages: tuple[Decimal, ...]
    reps: int
    work_set_threshold: Decimal = DEFAULT_WORK_SET_THRESHOLD

    type: ClassVar[str] = "ramp"

    def __post_init__(self):
        _set(self, "percentages", tuple(to_decimal(p) for p in self.percentages))
        _set(self, "work_set_threshold", to_decimal(self.work_set_threshold))
        if not self.percentages:
            raise InvalidDescriptor("Ramp needs at least one percentage")
        if any(p <= 0 for p in self.percentages):
            raise InvalidDescriptor("Ramp percentages must be positive")
        _require_positive(reps=self.reps)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "percentages": [decimal_str(p) for p in self.percentages],
            "reps": self.reps,
            "work_set_threshold": decimal_str(self.work_set_threshold),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Ramp":
        return cls(
            percentages=tuple(data["percentages"]),
            reps=int(data["reps"]),
            work_set_threshold=data.get("work_set_threshold", DEFAULT_WORK_SET_THRESHOLD),
        )


@dataclass(frozen=True)
class TopBackoff:
    """Top sets at full weight followed by lighter backoff sets."""

    top_sets: int
    top_reps: int
    backoff_sets: int
    backoff_reps: int
    backoff_percent: Decimal

    type: ClassVar[str] = "top_backoff"

    def __post_init__(self):
        _set(self, "backoff_percent", to_decimal(self.backoff_percent))
        _require_positive(
            top_sets=self.top_sets, top_reps=self.top_reps, backoff_reps=self.backoff_reps
        )
        if self.backoff_sets < 0:
            raise InvalidDescriptor("backoff_sets must not be negative")
        if not 0 < self.backoff_percent <= 1:
            raise InvalidDescriptor("backoff_percent must be in (0, 1]")

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "top_sets": self.top_sets,
            "top_reps": self.top_reps,
            "backoff_sets": self.backoff_sets,
            "backoff_reps": self.backoff_reps,
            "backoff_percent": decimal_str(self.backoff_percent),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TopBackoff":
        return cls(
            top_sets=int(data["top_sets"]),
            top_reps=int(data["top_reps"]),
            backoff_sets=int(data["backoff_sets"]),
            backoff_reps=int(data["backoff_reps"]),
            backoff_percent=data["backoff_percent"],
        )


@dataclass(frozen=True)
class AMRAP:
    """``sets`` sets at ``min_reps``; the last one is as-many-reps-as-possible."""

    sets: int
    min_reps: int

    type: ClassVar[str] = "amrap"

    def __post_init__(self):
        _require_positive(sets=self.sets, min_reps=self.min_reps)

    def to_dict(self) -> dict:
        return {"type": self.type, "sets": self.sets, "min_reps": self.min_reps}

    @classmethod
    def from_dict(cls, data: dict) -> "AMRAP":
        return cls(sets=int(data["sets"]), min_reps=int(data["min_reps"]))


@dataclass(frozen=True)
class MRS:
    """Max rep sets: repeat ``initial_reps`` until a set falls short."""

    initial_reps: int
    max_sets: int = 10

    type: ClassVar[str] = "mrs"

    def __post_init__(self):
        _require_positive(initial_reps=self.initial_reps, max_sets=self.max_sets)

    def to_dict(self) -> dict:
        return {"type": self.type, "initial_reps": self.initial_reps, "max_sets": self.max_sets}

    @classmethod
    def from_dict(cls, data: dict) -> "MRS":
        return cls(initial_reps=int(data["initial_reps"]), max_sets=int(data.get("max_sets", 10)))


@dataclass(frozen=True)
class FatigueDrop:
    """Drop the weight by ``drop_percent`` each set until ``stop_rpe`` is hit."""

    drop_percent: Decimal
    stop_rpe: Decimal
    target_reps: int = 1
    start_rpe: Decimal | None = None
    max_sets: int = 10

    type: ClassVar[str] = "fatigue_drop"

    def __post_init__(self):
        _set(self, "drop_percent", to_decimal(self.drop_percent))
        _set(self, "stop_rpe", to_decimal(self.stop_rpe))
        _set(self, "start_rpe", optional_decimal(self.start_rpe))
        if not 0 < self.drop_percent < 1:
            raise InvalidDescriptor("drop_percent must be in (0, 1)")
        if self.start_rpe is not None and self.start_rpe > self.stop_rpe:
            raise InvalidDescriptor("start_rpe must not exceed stop_rpe")
        _require_positive(target_reps=self.target_reps, max_sets=self.max_sets)

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "drop_percent": decimal_str(self.drop_percent),
            "stop_rpe": decimal_str(self.stop_rpe),
            "target_reps": self.target_reps,
            "start_rpe": decimal_str(self.start_rpe),
            "max_sets": self.max_sets,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FatigueDrop":
        return cls(
            drop_percent=data["drop_percent"],
            stop_rpe=data["stop_rpe"],
            target_reps=int(data.get("target_reps", 1)),
            start_rpe=data.get("start_rpe"),
            max_sets=int(data.get("max_sets", 10)),
        )


@dataclass(frozen=True)
class TotalReps:
    """Accumulate ``target`` reps in as many sets as it takes."""

    target: int
    suggested_reps_per_set: int = 10
    max_sets: int = 20

    type: ClassVar[str] = "total_reps"

    def __post_init__(self):
        _require_positive(
            target=self.target,
            suggested_reps_per_set=self.suggested_reps_per_set,
            max_sets=self.max_sets,
        )

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "target": self.target,
            "suggested_reps_per_set": self.suggested_reps_per_set,
            "max_sets": self.max_sets,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TotalReps":
        return cls(
            target=int(data["target"]),
            suggested_reps_per_set=int(data.get("suggested_reps_per_set", 10)),
            max_sets=int(data.get("max_sets", 20)),
        )


SetScheme = Union[Fixed, Ramp, TopBackoff, AMRAP, MRS, FatigueDrop, TotalReps]

SET_SCHEME_TYPES: dict[str, type] = {
    cls.type: cls for cls in (Fixed, Ramp, TopBackoff, AMRAP, MRS, FatigueDrop, TotalReps)
}

# Schemes whose set count depends on live performance.
SESSION_VARIABLE_SCHEMES = (MRS, FatigueDrop, TotalReps)


def set_scheme_from_dict(data: dict) -> SetScheme:
    """Deserialize a tagged set scheme."""
    try:
        cls = SET_SCHEME_TYPES[data["type"]]
    except KeyError:
        raise InvalidDescriptor(f"Unknown set scheme: {data.get('type')!r}") from None
    return cls.from_dict(data)
