"""Request dependencies shared by the routers."""

from fastapi import HTTPException, Request

from ..errors import PowerProError
from ..services import EnrollmentService, ProgressionService, WorkoutService


def get_workout_service(request: Request) -> WorkoutService:
    return WorkoutService(request.app.state.db_path)


def get_progression_service(request: Request) -> ProgressionService:
    return ProgressionService(request.app.state.db_path)


def get_enrollment_service(request: Request) -> EnrollmentService:
    """Enrollment service wired to fire progressions on advance."""
    db_path = request.app.state.db_path
    return EnrollmentService(db_path, progression_service=ProgressionService(db_path))


def http_error(err: PowerProError) -> HTTPException:
    """Convert an engine error into the HTTP error it maps to."""
    return HTTPException(status_code=err.http_status, detail=err.to_dict())
