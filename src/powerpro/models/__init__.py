"""Data models for powerpro."""

from .lift import Lift, LiftMax, LoggedSet, MaxKind
from .lookups import DailyLookup, RPEChart, WeeklyLookup, WeeklyLookupEntry
from .program import Cycle, Day, Prescription, Program, Week
from .progression import Progression, Trigger, TriggerKind
from .state import AdvanceType, EnrollmentStatus, UserProgramState
from .workout import ResolvedSet, Workout, WorkoutExercise

__all__ = [
    "AdvanceType",
    "Cycle",
    "DailyLookup",
    "Day",
    "EnrollmentStatus",
    "Lift",
    "LiftMax",
    "LoggedSet",
    "MaxKind",
    "Prescription",
    "Program",
    "Progression",
    "ResolvedSet",
    "RPEChart",
    "Trigger",
    "TriggerKind",
    "UserProgramState",
    "Week",
    "WeeklyLookup",
    "WeeklyLookupEntry",
    "Workout",
    "WorkoutExercise",
]
