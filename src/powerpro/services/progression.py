"""Progression service: applies progression rules to lift maxes."""

import logging
from datetime import datetime, timedelta
from pathlib import Path

import aiosqlite

from ..db.engine import get_db_path
from ..db.repositories import (
    DayRepository,
    LiftMaxRepository,
    LiftRepository,
    LoggedSetRepository,
    PrescriptionRepository,
    ProgramRepository,
    ProgressionHistoryRepository,
    ProgressionRepository,
    ProgressionStateRepository,
    UserProgramStateRepository,
)
from ..engine.progression import PerformanceContext, evaluate_rule, period_key
from ..errors import NoApplicableProgressions, NotEnrolled, NotFound, PowerProError
from ..models.base import new_id
from ..models.lift import LiftMax, LoggedSet
from ..models.progression import (
    AMRAPProgression,
    LiftProgressionResult,
    Progression,
    ProgressionHistoryEntry,
    TriggerKind,
    TriggerSummary,
)
from ..models.state import AdvanceResult, AdvanceType, UserProgramState

logger = logging.getLogger(__name__)


class ProgressionService:
    """Evaluates progressions and records their effect on lift maxes."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()
        self.progressions = ProgressionRepository(self.db_path)
        self.history = ProgressionHistoryRepository(self.db_path)
        self.progression_states = ProgressionStateRepository(self.db_path)
        self.maxes = LiftMaxRepository(self.db_path)
        self.lifts = LiftRepository(self.db_path)
        self.logged_sets = LoggedSetRepository(self.db_path)
        self.states = UserProgramStateRepository(self.db_path)
        self.programs = ProgramRepository(self.db_path)
        self.days = DayRepository(self.db_path)
        self.prescriptions = PrescriptionRepository(self.db_path)

    async def trigger_progression(
        self,
        user_id: str,
        progression_id: str,
        lift_id: str | None = None,
        force: bool = False,
    ) -> TriggerSummary:
        """Apply a progression for the user's current trigger period.

        Args:
            user_id: Enrolled user
            progression_id: Progression to apply
            lift_id: Single lift to apply to; defaults to every lift the
                progression governs under the user's program
            force: Apply even if this period already had an application

        Returns:
            Per-lift results with aggregate counts

        Raises:
            NotEnrolled: If the user has no program state
            NotFound: If the progression does not exist
            NoApplicableProgressions: If no lifts are governed by it
        """
        state = await self.states.get(user_id)
        if state is None:
            raise NotEnrolled(user_id)
        progression = await self.progressions.get(progression_id)
        if progression is None:
            raise NotFound(f"Progression {progression_id} not found")

        if lift_id is not None:
            lift_ids = [lift_id]
        else:
            lift_ids = await self.progressions.list_lift_ids(state.program_id, progression_id)
        if not lift_ids:
            raise NoApplicableProgressions(
                f"Progression {progression.name} governs no lifts in program {state.program_id}"
            )

        summary = TriggerSummary(user_id=user_id, progression_id=progression_id)
        for target in lift_ids:
            logged = await self._latest_set(user_id, target, progression)
            key = period_key(progression.trigger.kind, state, logged.id if logged else None)
            result = await self._apply_to_lift(
                user_id, progression, target, state, key, force, logged, check_lift=True
            )
            summary.results.append(result)

        logger.info(
            "Triggered %s for %s: %d applied, %d skipped, %d errors",
            progression.name, user_id,
            summary.total_applied, summary.total_skipped, summary.total_errors,
        )
        return summary

    async def record_logged_set(self, logged_set: LoggedSet) -> list[TriggerSummary]:
        """Store a performed set and fire set- and failure-driven progressions.

        Failure counters for failure-triggered progressions on the lift are
        updated before anything fires. Users without a program only get the
        set stored.
        """
        await self.logged_sets.create(logged_set)

        state = await self.states.get(logged_set.user_id)
        if state is None:
            return []

        summaries = []
        links = await self.progressions.list_for_program(state.program_id, logged_set.lift_id)
        for progression, lift_id in links:
            kind = progression.trigger.kind
            if kind == TriggerKind.ON_FAILURE:
                counter = await self.progression_states.get(
                    logged_set.user_id, lift_id, progression.id
                )
                if logged_set.is_failure:
                    counter.record_failure()
                else:
                    counter.record_success()
                await self.progression_states.save(counter)
                if not logged_set.is_failure:
                    continue
            elif kind == TriggerKind.AFTER_SET:
                if progression.trigger.amrap_only and not logged_set.is_amrap:
                    continue
            else:
                continue

            key = period_key(kind, state, logged_set.id)
            result = await self._apply_to_lift(
                logged_set.user_id, progression, lift_id, state, key, False, logged_set
            )
            summaries.append(
                TriggerSummary(logged_set.user_id, progression.id, results=[result])
            )
        return summaries

    async def on_state_advanced(self, advance: AdvanceResult) -> list[TriggerSummary]:
        """Fire calendar progressions for the periods an advance completed.

        A day advance completes a session; week and cycle completions fire
        their own triggers. Keys use the position before the advance.
        """
        kinds = set()
        if advance.advance_type == AdvanceType.DAY:
            kinds.add(TriggerKind.AFTER_SESSION)
        if advance.week_completed:
            kinds.add(TriggerKind.AFTER_WEEK)
        if advance.cycle_completed:
            kinds.add(TriggerKind.AFTER_CYCLE)

        previous = advance.previous
        session_lifts = None
        if TriggerKind.AFTER_SESSION in kinds:
            session_lifts = await self._session_lift_ids(previous)

        by_progression: dict[str, TriggerSummary] = {}
        for progression, lift_id in await self.progressions.list_for_program(previous.program_id):
            if progression.trigger.kind not in kinds:
                continue
            summary = by_progression.setdefault(
                progression.id, TriggerSummary(previous.user_id, progression.id)
            )
            if progression.trigger.kind == TriggerKind.AFTER_SESSION and lift_id not in session_lifts:
                summary.results.append(
                    LiftProgressionResult(lift_id, skipped=True, reason="not in completed session")
                )
                continue
            logged = await self._latest_set(previous.user_id, lift_id, progression)
            key = period_key(progression.trigger.kind, previous)
            result = await self._apply_to_lift(
                previous.user_id, progression, lift_id, previous, key, False, logged
            )
            summary.results.append(result)
        return list(by_progression.values())

    async def get_progression_history(
        self, user_id: str, lift_id: str | None = None
    ) -> list[ProgressionHistoryEntry]:
        """List applied progressions for a user, oldest first."""
        return await self.history.list_for_user(user_id, lift_id)

    async def _session_lift_ids(self, state: UserProgramState) -> set[str]:
        """Lifts prescribed on the day at the given position."""
        program = await self.programs.get(state.program_id)
        cycle = await self.programs.get_cycle(program.cycle_id) if program else None
        week = cycle.get_week(state.current_week) if cycle else None
        if week is None or state.current_day_index >= len(week.day_ids):
            return set()
        day = await self.days.get(week.day_ids[state.current_day_index])
        if day is None:
            return set()
        prescriptions = await self.prescriptions.get_many(day.prescription_ids)
        return {p.lift_id for p in prescriptions}

    async def _latest_set(
        self, user_id: str, lift_id: str, progression: Progression
    ) -> LoggedSet | None:
        amrap_only = isinstance(progression.rule, AMRAPProgression) or (
            progression.trigger.amrap_only
        )
        return await self.logged_sets.get_latest(user_id, lift_id, amrap_only=amrap_only)

    async def _apply_to_lift(
        self,
        user_id: str,
        progression: Progression,
        lift_id: str,
        state: UserProgramState,
        key: str,
        force: bool,
        logged: LoggedSet | None,
        check_lift: bool = False,
    ) -> LiftProgressionResult:
        result = LiftProgressionResult(lift_id=lift_id)
        try:
            if check_lift and await self.lifts.get(lift_id) is None:
                raise NotFound(f"Lift {lift_id} not found")

            if not force and await self.history.exists(user_id, lift_id, progression.id, key):
                return self._skip(result, "already applied for this period")

            current = await self.maxes.get_current(user_id, lift_id, progression.max_kind)
            if current is None:
                return self._skip(result, f"no current {progression.max_kind.value}")

            counter = await self.progression_states.get(user_id, lift_id, progression.id)
            outcome = evaluate_rule(
                progression.rule, current.value, PerformanceContext(logged, counter)
            )
            result.previous_value = current.value
            if not outcome.applied:
                return self._skip(result, outcome.reason)

            if outcome.new_stage is not None:
                counter.current_stage = outcome.new_stage
            if outcome.reset_failures:
                counter.consecutive_failures = 0

            new_max = None
            if outcome.delta != 0:
                new_max = LiftMax(
                    user_id=user_id,
                    lift_id=lift_id,
                    kind=progression.max_kind,
                    value=outcome.new_value,
                    effective_date=await self._next_effective_date(user_id, lift_id, progression),
                )

            entry = ProgressionHistoryEntry(
                user_id=user_id,
                lift_id=lift_id,
                progression_id=progression.id,
                trigger_kind=progression.trigger.kind,
                period_key=f"{key}:forced:{new_id()}" if force else key,
                previous_value=current.value,
                new_value=outcome.new_value,
                delta=outcome.delta,
                reason=outcome.reason,
                cycle_iteration=state.cycle_iteration,
                week_number=state.current_week,
                forced=force,
            )
            if not await self.history.record_application(entry, new_max, counter):
                return self._skip(result, "already applied for this period")

            result.applied = True
            result.new_value = outcome.new_value
            result.delta = outcome.delta
            result.reason = outcome.reason
            logger.info(
                "Applied %s to lift %s for %s: %s -> %s (%s)",
                progression.name, lift_id, user_id,
                current.value, outcome.new_value, outcome.reason,
            )
        except PowerProError as e:
            result.error = e.to_dict()
            result.reason = e.message
        except aiosqlite.Error as e:
            logger.exception("Storage error applying %s to lift %s", progression.name, lift_id)
            result.error = {"code": "storage_error", "message": str(e)}
            result.reason = str(e)
        return result

    def _skip(self, result: LiftProgressionResult, reason: str) -> LiftProgressionResult:
        result.skipped = True
        result.reason = reason
        logger.info("Skipped lift %s: %s", result.lift_id, reason)
        return result

    async def _next_effective_date(
        self, user_id: str, lift_id: str, progression: Progression
    ) -> datetime:
        """Now, or just after the latest row if that is not earlier than now."""
        effective = datetime.now()
        latest = await self.maxes.get_latest(user_id, lift_id, progression.max_kind)
        if latest is not None and latest.effective_date >= effective:
            effective = latest.effective_date + timedelta(microseconds=1)
        return effective
