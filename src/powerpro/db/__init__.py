"""Database layer for powerpro."""

from .engine import get_db_path, init_db, seed_rpe_chart
from .repositories import (
    DayRepository,
    LiftMaxRepository,
    LiftRepository,
    LoggedSetRepository,
    LookupRepository,
    PrescriptionRepository,
    ProgramRepository,
    ProgressionHistoryRepository,
    ProgressionRepository,
    ProgressionStateRepository,
    UserProgramStateRepository,
)

__all__ = [
    "DayRepository",
    "get_db_path",
    "init_db",
    "LiftMaxRepository",
    "LiftRepository",
    "LoggedSetRepository",
    "LookupRepository",
    "PrescriptionRepository",
    "ProgramRepository",
    "ProgressionHistoryRepository",
    "ProgressionRepository",
    "ProgressionStateRepository",
    "seed_rpe_chart",
    "UserProgramStateRepository",
]
