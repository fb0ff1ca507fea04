"""Resolved workout output."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from .base import decimal_str


@dataclass
class ResolvedSet:
    """One prescribed set. ``weight`` is None for find-your-max sets."""

    set_number: int
    weight: Decimal | None
    target_reps: int
    is_work_set: bool = True
    is_amrap: bool = False
    is_provisional: bool = False

    def to_dict(self) -> dict:
        return {
            "set_number": self.set_number,
            "weight": decimal_str(self.weight),
            "target_reps": self.target_reps,
            "is_work_set": self.is_work_set,
            "is_amrap": self.is_amrap,
            "is_provisional": self.is_provisional,
        }


@dataclass
class WorkoutExercise:
    """A prescription resolved for one athlete."""

    prescription_id: str
    lift_id: str
    lift_name: str
    lift_slug: str
    sets: list[ResolvedSet] = field(default_factory=list)
    notes: str = ""
    rest_seconds: int | None = None
    target: str | None = None

    def to_dict(self) -> dict:
        return {
            "prescription_id": self.prescription_id,
            "lift": {"id": self.lift_id, "name": self.lift_name, "slug": self.lift_slug},
            "sets": [s.to_dict() for s in self.sets],
            "notes": self.notes,
            "rest_seconds": self.rest_seconds,
            "target": self.target,
        }


@dataclass
class Workout:
    """The fully resolved output of a Day at a point in time."""

    user_id: str
    program_id: str
    cycle_iteration: int
    week_number: int
    day_slug: str
    day_name: str
    exercises: list[WorkoutExercise] = field(default_factory=list)
    resolved_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "program_id": self.program_id,
            "cycle_iteration": self.cycle_iteration,
            "week_number": self.week_number,
            "day_slug": self.day_slug,
            "day_name": self.day_name,
            "resolved_at": self.resolved_at.isoformat(),
            "exercises": [e.to_dict() for e in self.exercises],
        }
