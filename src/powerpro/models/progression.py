"""Progression descriptors, triggers and audit records."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Union

from ..errors import InvalidDescriptor
from .base import decimal_str, new_id, optional_decimal, to_decimal
from .lift import MaxKind


class TriggerKind(str, Enum):
    """Events that can fire a progression."""

    AFTER_SET = "after_set"
    AFTER_SESSION = "after_session"
    AFTER_WEEK = "after_week"
    AFTER_CYCLE = "after_cycle"
    ON_FAILURE = "on_failure"


@dataclass(frozen=True)
class Trigger:
    """When a progression fires.

    ``amrap_only`` restricts AFTER_SET triggers to AMRAP sets.
    """

    kind: TriggerKind
    amrap_only: bool = False

    def __post_init__(self):
        object.__setattr__(self, "kind", TriggerKind(self.kind))
        if self.amrap_only and self.kind != TriggerKind.AFTER_SET:
            raise InvalidDescriptor("amrap_only only applies to after_set triggers")

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "amrap_only": self.amrap_only}

    @classmethod
    def from_dict(cls, data: dict) -> "Trigger":
        return cls(kind=TriggerKind(data["kind"]), amrap_only=bool(data.get("amrap_only", False)))


def _set(obj, name, value):
    object.__setattr__(obj, name, value)


@dataclass(frozen=True)
class LinearProgression:
    """Flat increment every session or every week."""

    increment: Decimal
    frequency: TriggerKind = TriggerKind.AFTER_SESSION

    type: ClassVar[str] = "linear"
    triggers: ClassVar[tuple] = (TriggerKind.AFTER_SESSION, TriggerKind.AFTER_WEEK)

    def __post_init__(self):
        _set(self, "increment", to_decimal(self.increment))
        _set(self, "frequency", TriggerKind(self.frequency))
        if self.frequency not in self.triggers:
            raise InvalidDescriptor("Linear progression frequency must be after_session or after_week")

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "increment": decimal_str(self.increment),
            "frequency": self.frequency.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LinearProgression":
        return cls(
            increment=data["increment"],
            frequency=TriggerKind(data.get("frequency", TriggerKind.AFTER_SESSION.value)),
        )


@dataclass(frozen=True)
class AMRAPThreshold:
    min_reps: int
    increment: Decimal

    def __post_init__(self):
        _set(self, "increment", to_decimal(self.increment))
        if self.min_reps < 0:
            raise InvalidDescriptor("AMRAP threshold min_reps must not be negative")


@dataclass(frozen=True)
class AMRAPProgression:
    """Increment chosen by the reps hit on an AMRAP set.

    The highest threshold whose ``min_reps`` was reached applies.
    """

    thresholds: tuple[AMRAPThreshold, ...]

    type: ClassVar[str] = "amrap"
    triggers: ClassVar[tuple] = (TriggerKind.AFTER_SET,)

    def __post_init__(self):
        if not self.thresholds:
            raise InvalidDescriptor("AMRAP progression needs at least one threshold")
        ordered = tuple(sorted(self.thresholds, key=lambda t: t.min_reps))
        if len({t.min_reps for t in ordered}) != len(ordered):
            raise InvalidDescriptor("AMRAP thresholds must have distinct min_reps")
        _set(self, "thresholds", ordered)

    def threshold_for(self, reps: int) -> AMRAPThreshold | None:
        met = None
        for threshold in self.thresholds:
            if reps >= threshold.min_reps:
                met = threshold
        return met

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "thresholds": [
                {"min_reps": t.min_reps, "increment": decimal_str(t.increment)}
                for t in self.thresholds
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AMRAPProgression":
        return cls(
            thresholds=tuple(
                AMRAPThreshold(min_reps=int(t["min_reps"]), increment=t["increment"])
                for t in data["thresholds"]
            )
        )


@dataclass(frozen=True)
class DeloadOnFailure:
    """Multiply the max after ``failure_count`` consecutive failures."""

    failure_count: int
    multiplier: Decimal

    type: ClassVar[str] = "deload_on_failure"
    triggers: ClassVar[tuple] = (TriggerKind.ON_FAILURE,)

    def __post_init__(self):
        _set(self, "multiplier", to_decimal(self.multiplier))
        if self.failure_count < 1:
            raise InvalidDescriptor("failure_count must be >= 1")
        if not 0 < self.multiplier < 1:
            raise InvalidDescriptor("Deload multiplier must be in (0, 1)")

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "failure_count": self.failure_count,
            "multiplier": decimal_str(self.multiplier),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeloadOnFailure":
        return cls(failure_count=int(data["failure_count"]), multiplier=data["multiplier"])


@dataclass(frozen=True)
class Stage:
    name: str
    sets: int
    reps: int
    is_amrap: bool = False

    def to_dict(self) -> dict:
        return {"name": self.name, "sets": self.sets, "reps": self.reps, "is_amrap": self.is_amrap}


@dataclass(frozen=True)
class StageProgression:
    """Move to the next set/rep stage on failure.

    When the last stage fails, either restart at stage 0 (optionally
    deloading the max) or stop progressing.
    """

    stages: tuple[Stage, ...]
    reset_on_exhaustion: bool = True
    deload_multiplier: Decimal | None = None

    type: ClassVar[str] = "stage"
    triggers: ClassVar[tuple] = (TriggerKind.ON_FAILURE,)

    def __post_init__(self):
        _set(self, "stages", tuple(self.stages))
        _set(self, "deload_multiplier", optional_decimal(self.deload_multiplier))
        if len(self.stages) < 2:
            raise InvalidDescriptor("Stage progression needs at least two stages")
        if self.deload_multiplier is not None and not 0 < self.deload_multiplier <= 1:
            raise InvalidDescriptor("Stage deload multiplier must be in (0, 1]")

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "stages": [s.to_dict() for s in self.stages],
            "reset_on_exhaustion": self.reset_on_exhaustion,
            "deload_multiplier": decimal_str(self.deload_multiplier),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StageProgression":
        return cls(
            stages=tuple(
                Stage(
                    name=s["name"],
                    sets=int(s["sets"]),
                    reps=int(s["reps"]),
                    is_amrap=bool(s.get("is_amrap", False)),
                )
                for s in data["stages"]
            ),
            reset_on_exhaustion=bool(data.get("reset_on_exhaustion", True)),
            deload_multiplier=data.get("deload_multiplier"),
        )


@dataclass(frozen=True)
class DoubleProgression:
    """Add reps within a range, then weight once the top is reached."""

    min_reps: int
    max_reps: int
    increment: Decimal

    type: ClassVar[str] = "double"
    triggers: ClassVar[tuple] = (TriggerKind.AFTER_SET, TriggerKind.AFTER_SESSION)

    def __post_init__(self):
        _set(self, "increment", to_decimal(self.increment))
        if not 1 <= self.min_reps <= self.max_reps:
            raise InvalidDescriptor("Double progression needs 1 <= min_reps <= max_reps")

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "min_reps": self.min_reps,
            "max_reps": self.max_reps,
            "increment": decimal_str(self.increment),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DoubleProgression":
        return cls(
            min_reps=int(data["min_reps"]),
            max_reps=int(data["max_reps"]),
            increment=data["increment"],
        )


@dataclass(frozen=True)
class CycleProgression:
    """Flat increment at the end of each cycle."""

    increment: Decimal

    type: ClassVar[str] = "cycle"
    triggers: ClassVar[tuple] = (TriggerKind.AFTER_CYCLE,)

    def __post_init__(self):
        _set(self, "increment", to_decimal(self.increment))

    def to_dict(self) -> dict:
        return {"type": self.type, "increment": decimal_str(self.increment)}

    @classmethod
    def from_dict(cls, data: dict) -> "CycleProgression":
        return cls(increment=data["increment"])


ProgressionRule = Union[
    LinearProgression,
    AMRAPProgression,
    DeloadOnFailure,
    StageProgression,
    DoubleProgression,
    CycleProgression,
]

PROGRESSION_RULE_TYPES: dict[str, type] = {
    cls.type: cls
    for cls in (
        LinearProgression,
        AMRAPProgression,
        DeloadOnFailure,
        StageProgression,
        DoubleProgression,
        CycleProgression,
    )
}


def progression_rule_from_dict(data: dict) -> ProgressionRule:
    """Deserialize a tagged progression rule."""
    try:
        cls = PROGRESSION_RULE_TYPES[data["type"]]
    except KeyError:
        raise InvalidDescriptor(f"Unknown progression rule: {data.get('type')!r}") from None
    return cls.from_dict(data)


def gzclp_t1(deload_multiplier: Decimal = Decimal("0.85")) -> StageProgression:
    """GZCLP tier 1: 5x3+, 6x2+, 10x1+, then reset with a deload."""
    return StageProgression(
        stages=(
            Stage("5x3+", sets=5, reps=3, is_amrap=True),
            Stage("6x2+", sets=6, reps=2, is_amrap=True),
            Stage("10x1+", sets=10, reps=1, is_amrap=True),
        ),
        reset_on_exhaustion=True,
        deload_multiplier=deload_multiplier,
    )


def gzclp_t2() -> StageProgression:
    """GZCLP tier 2: 3x10, 3x8, 3x6."""
    return StageProgression(
        stages=(
            Stage("3x10", sets=3, reps=10),
            Stage("3x8", sets=3, reps=8),
            Stage("3x6", sets=3, reps=6),
        ),
        reset_on_exhaustion=True,
    )


@dataclass
class Progression:
    """A rule plus the trigger that fires it."""

    name: str
    rule: ProgressionRule
    trigger: Trigger
    max_kind: MaxKind = MaxKind.TRAINING_MAX
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        if self.trigger.kind not in self.rule.triggers:
            allowed = ", ".join(t.value for t in self.rule.triggers)
            raise InvalidDescriptor(
                f"{self.rule.type} progression cannot fire on {self.trigger.kind.value} "
                f"(allowed: {allowed})"
            )
        if isinstance(self.rule, LinearProgression) and self.rule.frequency != self.trigger.kind:
            raise InvalidDescriptor("Linear progression frequency must match its trigger")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "rule": self.rule.to_dict(),
            "trigger": self.trigger.to_dict(),
            "max_kind": self.max_kind.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Progression":
        """Create from dictionary."""
        kwargs = {"id": data["id"]} if data.get("id") else {}
        return cls(
            name=data["name"],
            rule=progression_rule_from_dict(data["rule"]),
            trigger=Trigger.from_dict(data["trigger"]),
            max_kind=MaxKind(data.get("max_kind", MaxKind.TRAINING_MAX.value)),
            **kwargs,
        )


@dataclass
class ProgressionState:
    """Per (user, lift, progression) failure counter and stage position."""

    user_id: str
    lift_id: str
    progression_id: str
    consecutive_failures: int = 0
    current_stage: int = 0
    last_failure_at: datetime | None = None
    last_success_at: datetime | None = None

    def record_failure(self) -> None:
        self.consecutive_failures += 1
        self.last_failure_at = datetime.now()

    def record_success(self) -> None:
        self.consecutive_failures = 0
        self.last_success_at = datetime.now()


@dataclass
class ProgressionHistoryEntry:
    """Append-only audit record of an applied progression."""

    user_id: str
    lift_id: str
    progression_id: str
    trigger_kind: TriggerKind
    period_key: str
    previous_value: Decimal
    new_value: Decimal
    delta: Decimal
    reason: str
    cycle_iteration: int
    week_number: int
    forced: bool = False
    applied_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "lift_id": self.lift_id,
            "progression_id": self.progression_id,
            "trigger_kind": self.trigger_kind.value,
            "period_key": self.period_key,
            "previous_value": decimal_str(self.previous_value),
            "new_value": decimal_str(self.new_value),
            "delta": decimal_str(self.delta),
            "reason": self.reason,
            "cycle_iteration": self.cycle_iteration,
            "week_number": self.week_number,
            "forced": self.forced,
            "applied_at": self.applied_at.isoformat(),
        }


@dataclass
class LiftProgressionResult:
    """Outcome of a progression trigger for one lift."""

    lift_id: str
    applied: bool = False
    skipped: bool = False
    previous_value: Decimal | None = None
    new_value: Decimal | None = None
    delta: Decimal | None = None
    reason: str = ""
    error: dict | None = None

    def to_dict(self) -> dict:
        return {
            "lift_id": self.lift_id,
            "applied": self.applied,
            "skipped": self.skipped,
            "previous_value": decimal_str(self.previous_value),
            "new_value": decimal_str(self.new_value),
            "delta": decimal_str(self.delta),
            "reason": self.reason,
            "error": self.error,
        }


@dataclass
class TriggerSummary:
    """Per-lift results of one trigger call plus aggregate counts."""

    user_id: str
    progression_id: str
    results: list[LiftProgressionResult] = field(default_factory=list)

    @property
    def total_applied(self) -> int:
        return sum(1 for r in self.results if r.applied)

    @property
    def total_skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def total_errors(self) -> int:
        return sum(1 for r in self.results if r.error is not None)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "progression_id": self.progression_id,
            "results": [r.to_dict() for r in self.results],
            "total_applied": self.total_applied,
            "total_skipped": self.total_skipped,
            "total_errors": self.total_errors,
        }
