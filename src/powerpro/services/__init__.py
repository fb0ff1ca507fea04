"""Async services that orchestrate repositories and the engine."""

from .enrollment import EnrollmentService
from .progression import ProgressionService
from .workouts import WorkoutService

__all__ = ["EnrollmentService", "ProgressionService", "WorkoutService"]
