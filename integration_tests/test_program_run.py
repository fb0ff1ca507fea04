"""End-to-end runs through whole program cycles.

These tests drive the services the way a client would: resolve the current
workout, log what was performed, advance, and repeat.
"""

import tempfile
from decimal import Decimal
from pathlib import Path

import pytest
import pytest_asyncio

from powerpro.data.program_loader import get_programs_dir, load_program_file
from powerpro.db import LiftMaxRepository, LiftRepository, UserProgramStateRepository
from powerpro.db import init_db, seed_rpe_chart
from powerpro.models.lift import LiftMax, LoggedSet, MaxKind
from powerpro.models.state import AdvanceType
from powerpro.services import EnrollmentService, ProgressionService, WorkoutService

TM = MaxKind.TRAINING_MAX


@pytest_asyncio.fixture
async def db_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "run.db"
        await init_db(path)
        await seed_rpe_chart(path)
        yield path


async def enroll_with_maxes(db_path, filename: str, maxes: dict[str, str]):
    program = await load_program_file(get_programs_dir() / filename, db_path)
    lift_ids = {lift.slug: lift.id for lift in await LiftRepository(db_path).list_all()}
    repo = LiftMaxRepository(db_path)
    for slug, value in maxes.items():
        await repo.create(LiftMax(user_id="athlete", lift_id=lift_ids[slug], kind=TM, value=value))

    progression = ProgressionService(db_path)
    enrollment = EnrollmentService(db_path, progression_service=progression)
    await enrollment.enroll("athlete", program.id)
    return lift_ids, WorkoutService(db_path), enrollment, progression


async def current_maxes(db_path, lift_ids: dict[str, str]) -> dict[str, Decimal]:
    repo = LiftMaxRepository(db_path)
    values = {}
    for slug, lift_id in lift_ids.items():
        lift_max = await repo.get_current("athlete", lift_id, TM)
        values[slug] = lift_max.value
    return values


async def perform(progression: ProgressionService, workout, extra_reps: int = 0) -> None:
    """Log every work set as prescribed, with extra reps on AMRAP sets."""
    for exercise in workout.exercises:
        for s in exercise.sets:
            if not s.is_work_set:
                continue
            await progression.record_logged_set(
                LoggedSet(
                    user_id="athlete",
                    lift_id=exercise.lift_id,
                    weight=s.weight,
                    reps_performed=s.target_reps + (extra_reps if s.is_amrap else 0),
                    target_reps=s.target_reps,
                    set_number=s.set_number,
                    is_amrap=s.is_amrap,
                    prescription_id=exercise.prescription_id,
                )
            )


class TestStartingStrengthRun:
    """Six sessions of A/B alternation."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, db_path):
        lift_ids, workouts, enrollment, progression = await enroll_with_maxes(
            db_path,
            "starting_strength.json",
            {"squat": "225", "bench": "155", "deadlift": "275", "press": "95"},
        )

        seen_days = []
        squat_tops = []
        for _ in range(6):
            workout = await workouts.get_current_workout("athlete")
            seen_days.append(workout.day_slug)
            squat_tops.append(workout.exercises[1].sets[0].weight)
            await perform(progression, workout)
            result = await enrollment.advance_state("athlete")

        assert seen_days == ["a", "b", "a", "b", "a", "b"]
        assert squat_tops == [225, 230, 235, 240, 245, 250]
        assert result.cycle_completed
        assert result.state.cycle_iteration == 2
        assert (result.state.current_week, result.state.current_day_index) == (1, 0)

        assert await current_maxes(db_path, lift_ids) == {
            "squat": Decimal("255"),
            "bench": Decimal("170"),
            "deadlift": Decimal("335"),
            "press": Decimal("110"),
        }

        state = await UserProgramStateRepository(db_path).get("athlete")
        history = await progression.get_progression_history("athlete", lift_ids["squat"])
        assert [e.period_key for e in history] == [
            f"{state.enrollment_id}:session:{position}"
            for position in ("1:1:0", "1:1:1", "1:1:2", "1:2:0", "1:2:1", "1:2:2")
        ]
        assert len(await progression.get_progression_history("athlete")) == 18

    @pytest.mark.asyncio
    async def test_skipping_weeks_does_not_progress(self, db_path):
        lift_ids, _, enrollment, progression = await enroll_with_maxes(
            db_path,
            "starting_strength.json",
            {"squat": "225", "bench": "155", "deadlift": "275", "press": "95"},
        )

        await enrollment.advance_state("athlete", AdvanceType.WEEK)
        result = await enrollment.advance_state("athlete", AdvanceType.WEEK)

        assert result.cycle_completed
        assert await progression.get_progression_history("athlete") == []
        assert (await current_maxes(db_path, lift_ids))["squat"] == Decimal("225")


class TestWendlerRun:
    """A full four-week 5/3/1 wave followed by the cycle bump."""

    @pytest.mark.asyncio
    async def test_full_cycle(self, db_path):
        lift_ids, workouts, enrollment, progression = await enroll_with_maxes(
            db_path,
            "wendler_531.json",
            {"squat": "300", "bench": "200", "deadlift": "400", "press": "150"},
        )

        top_sets = {}
        results = []
        for _ in range(16):
            workout = await workouts.get_current_workout("athlete")
            main = workout.exercises[0]
            top_sets[(workout.week_number, workout.day_slug)] = (
                main.sets[-1].weight, main.sets[-1].target_reps, main.sets[-1].is_amrap
            )
            await perform(progression, workout, extra_reps=3)
            results.append(await enrollment.advance_state("athlete"))

        assert top_sets[(1, "squat")] == (255, 5, True)
        assert top_sets[(2, "squat")] == (270, 3, True)
        assert top_sets[(3, "squat")] == (285, 1, True)
        assert top_sets[(4, "deadlift")] == (240, 5, True)
        assert top_sets[(3, "press")] == (145, 1, True)

        assert [r.week_completed for r in results].count(True) == 4
        assert all(r.progressions == [] for r in results[:-1])
        assert results[-1].cycle_completed

        assert await current_maxes(db_path, lift_ids) == {
            "squat": Decimal("310"),
            "bench": Decimal("205"),
            "deadlift": Decimal("410"),
            "press": Decimal("155"),
        }
        state = await UserProgramStateRepository(db_path).get("athlete")
        history = await progression.get_progression_history("athlete")
        assert {e.period_key for e in history} == {f"{state.enrollment_id}:cycle:1"}

        next_cycle = await workouts.get_current_workout("athlete")
        assert next_cycle.cycle_iteration == 2
        assert next_cycle.exercises[0].sets[0].weight == 100
