"""Lift, reference-number and logged-performance models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from .base import decimal_str, new_id, optional_decimal, to_decimal


class MaxKind(str, Enum):
    """Kinds of reference number an athlete can hold for a lift."""

    TRUE_MAX = "true_max"
    TRAINING_MAX = "training_max"
    REP_MAX = "rep_max"
    ESTIMATED_MAX = "estimated_max"


@dataclass
class Lift:
    """An exercise identity referenced by id everywhere else."""

    name: str
    slug: str
    is_competition_lift: bool = False
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        if not self.name.strip():
            raise ValueError("Lift name must not be empty")
        if not self.slug.strip():
            raise ValueError("Lift slug must not be empty")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "is_competition_lift": self.is_competition_lift,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Lift":
        """Create from dictionary."""
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = data["id"]
        return cls(
            name=data["name"],
            slug=data["slug"],
            is_competition_lift=bool(data.get("is_competition_lift", False)),
            **kwargs,
        )


@dataclass
class LiftMax:
    """A dated reference number for a (user, lift, kind).

    Rows are append-only; a new value is a new row with a later
    effective date.
    """

    user_id: str
    lift_id: str
    kind: MaxKind
    value: Decimal
    effective_date: datetime = field(default_factory=datetime.now)
    reps: int | None = None  # only meaningful for REP_MAX
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.value = to_decimal(self.value)
        if self.value < 0:
            raise ValueError("LiftMax value must not be negative")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "lift_id": self.lift_id,
            "kind": self.kind.value,
            "value": decimal_str(self.value),
            "effective_date": self.effective_date.isoformat(),
            "reps": self.reps,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LiftMax":
        """Create from dictionary."""
        effective = data.get("effective_date")
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = data["id"]
        if effective:
            kwargs["effective_date"] = (
                effective if isinstance(effective, datetime)
                else datetime.fromisoformat(effective)
            )
        return cls(
            user_id=data["user_id"],
            lift_id=data["lift_id"],
            kind=MaxKind(data["kind"]),
            value=to_decimal(data["value"]),
            reps=data.get("reps"),
            **kwargs,
        )


@dataclass
class LoggedSet:
    """A set the athlete actually performed."""

    user_id: str
    lift_id: str
    weight: Decimal
    reps_performed: int
    target_reps: int | None = None
    set_number: int = 1
    is_amrap: bool = False
    rpe: Decimal | None = None
    prescription_id: str | None = None
    logged_at: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.weight = to_decimal(self.weight)
        self.rpe = optional_decimal(self.rpe)
        if self.reps_performed < 0:
            raise ValueError("reps_performed must not be negative")

    @property
    def is_failure(self) -> bool:
        """True when fewer reps were performed than targeted."""
        return self.target_reps is not None and self.reps_performed < self.target_reps

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "lift_id": self.lift_id,
            "prescription_id": self.prescription_id,
            "set_number": self.set_number,
            "weight": decimal_str(self.weight),
            "target_reps": self.target_reps,
            "reps_performed": self.reps_performed,
            "is_amrap": self.is_amrap,
            "rpe": decimal_str(self.rpe),
            "logged_at": self.logged_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LoggedSet":
        """Create from dictionary."""
        kwargs = {}
        if data.get("id"):
            kwargs["id"] = data["id"]
        if data.get("logged_at"):
            logged_at = data["logged_at"]
            kwargs["logged_at"] = (
                logged_at if isinstance(logged_at, datetime)
                else datetime.fromisoformat(logged_at)
            )
        return cls(
            user_id=data["user_id"],
            lift_id=data["lift_id"],
            weight=to_decimal(data["weight"]),
            reps_performed=int(data["reps_performed"]),
            target_reps=data.get("target_reps"),
            set_number=data.get("set_number", 1),
            is_amrap=bool(data.get("is_amrap", False)),
            rpe=optional_decimal(data.get("rpe")),
            prescription_id=data.get("prescription_id"),
            **kwargs,
        )
