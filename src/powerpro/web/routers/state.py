"""Enrollment and program-position routes."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ...errors import PowerProError
from ...models.state import AdvanceType
from ...services import EnrollmentService
from ..deps import get_enrollment_service, http_error

router = APIRouter(prefix="/state", tags=["state"])


class EnrollRequest(BaseModel):
    """Request body for enrollment."""
    program_id: str


class AdvanceRequest(BaseModel):
    """Request body for advancing a user's position."""
    advance_type: AdvanceType = AdvanceType.DAY


@router.get("/{user_id}")
async def get_state(
    user_id: str,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict:
    try:
        state = await service.get_state(user_id)
    except PowerProError as e:
        raise http_error(e)
    return state.to_dict()


@router.post("/{user_id}/enroll")
async def enroll(
    user_id: str,
    body: EnrollRequest,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict:
    """Enroll a user, replacing and reporting any previous enrollment."""
    try:
        result = await service.enroll(user_id, body.program_id)
    except PowerProError as e:
        raise http_error(e)
    return result.to_dict()


@router.post("/{user_id}/advance")
async def advance(
    user_id: str,
    body: AdvanceRequest | None = None,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict:
    """Advance by a day (default) or a week, firing calendar progressions."""
    advance_type = body.advance_type if body else AdvanceType.DAY
    try:
        result = await service.advance_state(user_id, advance_type)
    except PowerProError as e:
        raise http_error(e)
    return result.to_dict()


@router.delete("/{user_id}")
async def unenroll(
    user_id: str,
    service: EnrollmentService = Depends(get_enrollment_service),
) -> dict:
    try:
        state = await service.unenroll(user_id)
    except PowerProError as e:
        raise http_error(e)
    return {"deleted": True, "state": state.to_dict()}
