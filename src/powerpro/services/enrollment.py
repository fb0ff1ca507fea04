"""Enrollment and program-position service."""

import logging
from pathlib import Path

from ..db.engine import get_db_path
from ..db.repositories import ProgramRepository, UserProgramStateRepository
from ..errors import InvalidAdvance, NotEnrolled, NotFound
from ..models.state import AdvanceResult, AdvanceType, EnrollmentResult, UserProgramState
from .progression import ProgressionService

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Owns UserProgramState: enroll, unenroll and advance."""

    def __init__(
        self,
        db_path: Path | None = None,
        progression_service: ProgressionService | None = None,
    ):
        """Initialize the service.

        Args:
            db_path: Optional database path. Uses default if not provided.
            progression_service: If given, calendar-triggered progressions
                fire for every period an advance completes
        """
        self.db_path = db_path or get_db_path()
        self.programs = ProgramRepository(self.db_path)
        self.states = UserProgramStateRepository(self.db_path)
        self.progression_service = progression_service

    async def enroll(self, user_id: str, program_id: str) -> EnrollmentResult:
        """Enroll a user, replacing any existing state.

        Re-enrolling (even in the same program) resets the position to
        iteration 1, week 1, day 0. The result's ``replaced`` flag and
        ``previous`` state tell the caller what was discarded.
        """
        program = await self.programs.get(program_id)
        if program is None:
            raise NotFound(f"Program {program_id} not found")

        previous = await self.states.get(user_id)
        state = UserProgramState(user_id=user_id, program_id=program_id)
        await self.states.replace(state)

        if previous is not None:
            logger.warning(
                "Replaced enrollment for %s (was %s at %s)",
                user_id, previous.program_id, previous.get_position_display(),
            )
        else:
            logger.info("Enrolled %s in %s", user_id, program.slug)
        return EnrollmentResult(state=state, replaced=previous is not None, previous=previous)

    async def unenroll(self, user_id: str) -> UserProgramState:
        """Delete a user's state and return what was deleted."""
        state = await self.states.get(user_id)
        if state is None:
            raise NotEnrolled(user_id)
        await self.states.delete(user_id)
        logger.info("Unenrolled %s from %s", user_id, state.program_id)
        return state

    async def get_state(self, user_id: str) -> UserProgramState:
        state = await self.states.get(user_id)
        if state is None:
            raise NotEnrolled(user_id)
        return state

    async def advance_state(
        self, user_id: str, advance_type: AdvanceType = AdvanceType.DAY
    ) -> AdvanceResult:
        """Advance the user's position by a day or a week.

        Raises:
            NotEnrolled: If the user has no state
            InvalidAdvance: If the program structure cannot be advanced
        """
        state = await self.get_state(user_id)
        program = await self.programs.get(state.program_id)
        if program is None:
            raise InvalidAdvance(f"Enrolled program {state.program_id} no longer exists")
        cycle = await self.programs.get_cycle(program.cycle_id)
        if cycle is None:
            raise InvalidAdvance(f"Cycle {program.cycle_id} no longer exists")

        result = state.advance(AdvanceType(advance_type), cycle.days_per_week(), cycle.length_weeks)
        await self.states.update(result.state)

        logger.info(
            "Advanced %s by %s: %s -> %s",
            user_id, result.advance_type.value,
            result.previous.get_position_display(), result.state.get_position_display(),
        )
        if self.progression_service is not None:
            result.progressions = await self.progression_service.on_state_advanced(result)
        return result
