"""Workout resolution routes."""

from fastapi import APIRouter, Depends, Query

from ...errors import PowerProError
from ...services import WorkoutService
from ..deps import get_workout_service, http_error

router = APIRouter(prefix="/workouts", tags=["workouts"])


@router.get("/{user_id}/current")
async def current_workout(
    user_id: str,
    service: WorkoutService = Depends(get_workout_service),
) -> dict:
    """Resolve the day the user is currently on."""
    try:
        workout = await service.get_current_workout(user_id)
    except PowerProError as e:
        raise http_error(e)
    return workout.to_dict()


@router.get("/{user_id}/preview")
async def preview_workout(
    user_id: str,
    week: int = Query(..., ge=1, description="Week number (1-based)"),
    day: str = Query(..., min_length=1, description="Day slug"),
    service: WorkoutService = Depends(get_workout_service),
) -> dict:
    """Resolve any (week, day) of the user's program without changing state."""
    try:
        workout = await service.preview_workout(user_id, week, day)
    except PowerProError as e:
        raise http_error(e)
    return workout.to_dict()
