"""Progression and logged-set routes."""

from decimal import Decimal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ...errors import PowerProError
from ...models.lift import LoggedSet
from ...services import ProgressionService
from ..deps import get_progression_service, http_error

router = APIRouter(tags=["progressions"])


class TriggerRequest(BaseModel):
    """Request body for a manual progression trigger."""
    user_id: str
    lift_id: str | None = None
    force: bool = False


class LoggedSetRequest(BaseModel):
    """A performed set reported by a client."""
    user_id: str
    lift_id: str
    weight: Decimal = Field(..., ge=0)
    reps_performed: int = Field(..., ge=0)
    target_reps: int | None = Field(None, ge=1)
    set_number: int = Field(1, ge=1)
    is_amrap: bool = False
    rpe: Decimal | None = None
    prescription_id: str | None = None


@router.post("/progressions/{progression_id}/trigger")
async def trigger_progression(
    progression_id: str,
    body: TriggerRequest,
    service: ProgressionService = Depends(get_progression_service),
) -> dict:
    """Apply a progression for the user's current period.

    Per-lift failures are reported in the summary rather than failing the
    request.
    """
    try:
        summary = await service.trigger_progression(
            body.user_id, progression_id, lift_id=body.lift_id, force=body.force
        )
    except PowerProError as e:
        raise http_error(e)
    return summary.to_dict()


@router.get("/progressions/history/{user_id}")
async def progression_history(
    user_id: str,
    lift_id: str | None = Query(None, description="Only entries for this lift"),
    service: ProgressionService = Depends(get_progression_service),
) -> dict:
    entries = await service.get_progression_history(user_id, lift_id)
    return {"entries": [e.to_dict() for e in entries], "total": len(entries)}


@router.post("/logged-sets", status_code=201)
async def log_set(
    body: LoggedSetRequest,
    service: ProgressionService = Depends(get_progression_service),
) -> dict:
    """Store a performed set and fire any set- or failure-driven progressions."""
    try:
        logged = LoggedSet(**body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    try:
        summaries = await service.record_logged_set(logged)
    except PowerProError as e:
        raise http_error(e)
    return {
        "logged_set": logged.to_dict(),
        "progressions": [s.to_dict() for s in summaries],
    }
