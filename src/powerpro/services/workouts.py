"""Workout resolution service."""

import logging
from decimal import Decimal
from pathlib import Path

from ..db.engine import get_db_path
from ..db.repositories import (
    DayRepository,
    LiftMaxRepository,
    LiftRepository,
    LoggedSetRepository,
    LookupRepository,
    PrescriptionRepository,
    ProgramRepository,
    UserProgramStateRepository,
)
from ..engine.loads import ResolutionContext
from ..engine.pipeline import (
    needs_rpe_chart,
    required_last_weights,
    required_maxes,
    resolve_prescriptions,
)
from ..errors import DayNotFound, LookupMiss, NotEnrolled, NotFound
from ..models.program import Cycle, Day, Program
from ..models.workout import Workout
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)


class WorkoutService:
    """Resolves program days into concrete workouts for an athlete."""

    def __init__(self, db_path: Path | None = None, settings: Settings | None = None):
        """Initialize the service.

        Args:
            db_path: Optional database path. Uses default if not provided.
            settings: Optional settings; supplies the default rounding increment
        """
        self.db_path = db_path or get_db_path()
        self.settings = settings or get_settings()
        self.programs = ProgramRepository(self.db_path)
        self.days = DayRepository(self.db_path)
        self.prescriptions = PrescriptionRepository(self.db_path)
        self.lifts = LiftRepository(self.db_path)
        self.maxes = LiftMaxRepository(self.db_path)
        self.logged_sets = LoggedSetRepository(self.db_path)
        self.lookups = LookupRepository(self.db_path)
        self.states = UserProgramStateRepository(self.db_path)

    async def get_current_workout(self, user_id: str) -> Workout:
        """Resolve the day the user is currently on.

        Raises:
            NotEnrolled: If the user has no program state
            MissingLiftMax, LookupMiss, NoPriorPerformance: From resolution
        """
        state = await self.states.get(user_id)
        if state is None:
            raise NotEnrolled(user_id)

        program, cycle = await self._load_program(state.program_id)
        week = cycle.get_week(state.current_week)
        if week is None or state.current_day_index >= len(week.day_ids):
            raise DayNotFound(
                f"No day at week {state.current_week}, index {state.current_day_index}"
            )
        day = await self.days.get(week.day_ids[state.current_day_index])
        if day is None:
            raise DayNotFound(f"Day {week.day_ids[state.current_day_index]} not found")

        return await self._resolve(user_id, program, state.cycle_iteration, state.current_week, day)

    async def preview_workout(self, user_id: str, week_number: int, day_slug: str) -> Workout:
        """Resolve an arbitrary (week, day) of the user's program.

        Only the enrolled program is read from the user's state; the current
        position is ignored and nothing is written.
        """
        state = await self.states.get(user_id)
        if state is None:
            raise NotEnrolled(user_id)
        return await self.resolve_day(
            user_id, state.program_id, week_number, day_slug, state.cycle_iteration
        )

    async def resolve_day(
        self,
        user_id: str,
        program_id: str,
        week_number: int,
        day_slug: str,
        cycle_iteration: int = 1,
    ) -> Workout:
        """Resolve one day of a program for a user.

        Args:
            user_id: Athlete whose maxes and logged sets are used
            program_id: Program to resolve from
            week_number: Week of the cycle (1-based)
            day_slug: Slug of a day in that week
            cycle_iteration: Reported on the workout; does not affect weights

        Returns:
            The complete workout; resolution is all-or-nothing
        """
        program, cycle = await self._load_program(program_id)
        day = await self._find_day(cycle, week_number, day_slug)
        return await self._resolve(user_id, program, cycle_iteration, week_number, day)

    async def _load_program(self, program_id: str) -> tuple[Program, Cycle]:
        program = await self.programs.get(program_id)
        if program is None:
            raise NotFound(f"Program {program_id} not found")
        cycle = await self.programs.get_cycle(program.cycle_id)
        if cycle is None:
            raise NotFound(f"Cycle {program.cycle_id} not found")
        return program, cycle

    async def _find_day(self, cycle: Cycle, week_number: int, day_slug: str) -> Day:
        week = cycle.get_week(week_number)
        if week is None:
            raise DayNotFound(f"Week {week_number} does not exist in cycle {cycle.name}")
        for day in await self.days.get_many(week.day_ids):
            if day.slug.lower() == day_slug.lower():
                return day
        raise DayNotFound(f"Day '{day_slug}' not found in week {week_number}")

    async def _resolve(
        self,
        user_id: str,
        program: Program,
        cycle_iteration: int,
        week_number: int,
        day: Day,
    ) -> Workout:
        prescriptions = await self.prescriptions.get_many(day.prescription_ids)
        if len(prescriptions) != len(day.prescription_ids):
            raise NotFound(f"Day {day.slug} references unknown prescriptions")

        ctx = ResolutionContext(user_id=user_id, week_number=week_number, day_slug=day.slug)
        current = await self.maxes.get_current_values(user_id, required_maxes(prescriptions))
        ctx.lift_maxes = {key: lift_max.value for key, lift_max in current.items()}
        ctx.last_weights = await self.logged_sets.get_latest_weights(
            user_id, required_last_weights(prescriptions)
        )
        if needs_rpe_chart(prescriptions):
            ctx.rpe_chart = await self.lookups.get_rpe_chart()
        if program.weekly_lookup_id:
            ctx.weekly_lookup = await self.lookups.get_weekly(program.weekly_lookup_id)
            if ctx.weekly_lookup is None:
                raise LookupMiss(f"Weekly lookup {program.weekly_lookup_id} not found")
        if program.daily_lookup_id:
            ctx.daily_lookup = await self.lookups.get_daily(program.daily_lookup_id)
            if ctx.daily_lookup is None:
                raise LookupMiss(f"Daily lookup {program.daily_lookup_id} not found")

        lifts = await self.lifts.get_many(sorted({p.lift_id for p in prescriptions}))
        exercises = resolve_prescriptions(prescriptions, lifts, ctx, self._increment(program))

        logger.debug(
            "Resolved %s week %d day %s for user %s",
            program.slug, week_number, day.slug, user_id,
        )
        return Workout(
            user_id=user_id,
            program_id=program.id,
            cycle_iteration=cycle_iteration,
            week_number=week_number,
            day_slug=day.slug,
            day_name=day.name,
            exercises=exercises,
        )

    def _increment(self, program: Program) -> Decimal:
        return program.rounding_increment or self.settings.default_rounding_increment
