"""CLI commands for powerpro."""

from .enrollment import advance, enroll, status, unenroll
from .init import init
from .lifts import lifts, maxes
from .programs import programs
from .progression import log_set, progression
from .serve import serve
from .workout import workout

__all__ = [
    "advance",
    "enroll",
    "init",
    "lifts",
    "log_set",
    "maxes",
    "programs",
    "progression",
    "serve",
    "status",
    "unenroll",
    "workout",
]
