"""Tests for the powerpro command line."""

import asyncio
import json

import pytest
from click.testing import CliRunner

from powerpro.cli import main
from powerpro.db import ProgramRepository, ProgressionRepository

MAXES = {"squat": "300", "bench": "200", "deadlift": "400", "press": "135"}


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def initialized(runner, isolated_settings):
    """A fresh data directory with the sample programs loaded."""
    result = runner.invoke(main, ["init", "--samples"])
    assert result.exit_code == 0, result.output
    return isolated_settings


@pytest.fixture
def enrolled(runner, initialized):
    for slug, value in MAXES.items():
        result = runner.invoke(main, ["maxes", "set", "u1", slug, value])
        assert result.exit_code == 0, result.output
    result = runner.invoke(main, ["enroll", "u1", "starting-strength"])
    assert result.exit_code == 0, result.output
    return initialized


def progression_id(name: str) -> str:
    async def _find():
        program = await ProgramRepository().get_by_slug("starting-strength")
        links = await ProgressionRepository().list_for_program(program.id)
        return next(p.id for p, _ in links if p.name == name)

    return asyncio.run(_find())


class TestInit:
    """Tests for powerpro init."""

    def test_requires_init(self, runner, isolated_settings):
        result = runner.invoke(main, ["lifts", "list"])

        assert result.exit_code == 1
        assert "not initialized" in result.output

    def test_init_with_samples(self, runner, isolated_settings):
        result = runner.invoke(main, ["init", "--samples"])

        assert result.exit_code == 0
        assert "Database initialized" in result.output
        assert "Loaded sample program 'Starting Strength'" in result.output
        assert "Loaded sample program 'Wendler 5/3/1 BBB'" in result.output
        assert (isolated_settings.data_dir / "powerpro.db").exists()

    def test_init_twice_skips_loaded_samples(self, runner, isolated_settings):
        runner.invoke(main, ["init", "--samples"])

        result = runner.invoke(main, ["init", "--samples"])
        listing = runner.invoke(main, ["programs", "list"])

        assert result.exit_code == 0, result.output
        assert "Skipped starting_strength.json" in result.output
        assert listing.output.count("starting-strength") == 1

    def test_version(self, runner):
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert "powerpro" in result.output


class TestLiftCommands:
    """Tests for lifts and maxes."""

    def test_add_and_list(self, runner, initialized):
        result = runner.invoke(main, ["lifts", "add", "Front Squat"])
        assert result.exit_code == 0
        assert "front-squat" in result.output

        listing = runner.invoke(main, ["lifts", "list"])
        assert "front-squat" in listing.output
        assert "deadlift" in listing.output

    def test_duplicate_slug(self, runner, initialized):
        result = runner.invoke(main, ["lifts", "add", "Squat"])

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_set_and_list_maxes(self, runner, initialized):
        result = runner.invoke(main, ["maxes", "set", "u1", "squat", "315"])
        assert "Recorded training_max of 315 for squat" in result.output

        runner.invoke(main, ["maxes", "set", "u1", "bench", "225", "--kind", "true_max"])
        listing = runner.invoke(main, ["maxes", "list", "u1", "--lift", "bench"])

        assert "true_max" in listing.output
        assert "225" in listing.output
        assert "squat" not in listing.output

    def test_set_max_unknown_lift(self, runner, initialized):
        result = runner.invoke(main, ["maxes", "set", "u1", "curl", "100"])

        assert result.exit_code == 1
        assert "Lift 'curl' not found" in result.output

    def test_estimate(self, runner, initialized):
        result = runner.invoke(main, ["maxes", "estimate", "315", "5", "8"])

        assert result.exit_code == 0
        assert "Estimated max: 410" in result.output

    def test_estimate_off_chart(self, runner, initialized):
        result = runner.invoke(main, ["maxes", "estimate", "315", "5", "5"])

        assert result.exit_code == 1


class TestProgramCommands:
    """Tests for program loading and display."""

    def test_list(self, runner, initialized):
        result = runner.invoke(main, ["programs", "list"])

        assert "starting-strength" in result.output
        assert "wendler-531-bbb" in result.output

    def test_show(self, runner, initialized):
        result = runner.invoke(main, ["programs", "show", "starting-strength"])

        assert result.exit_code == 0
        assert "Week 2" in result.output
        assert "Workout B [b]" in result.output

    def test_show_json(self, runner, initialized):
        result = runner.invoke(main, ["programs", "show", "wendler-531-bbb", "--json"])
        data = json.loads(result.output)

        assert data["program"]["slug"] == "wendler-531-bbb"
        assert data["cycle"]["length_weeks"] == 4

    def test_show_missing(self, runner, initialized):
        result = runner.invoke(main, ["programs", "show", "nope"])

        assert result.exit_code == 1

    def test_load_file(self, runner, initialized, tmp_path):
        path = tmp_path / "squats.json"
        path.write_text(
            json.dumps(
                {
                    "program": {"name": "Squats", "slug": "squats"},
                    "lifts": [{"slug": "squat", "name": "Squat"}],
                    "prescriptions": {
                        "work": {
                            "lift": "squat",
                            "load_strategy": {"type": "percent_of",
                                              "reference_kind": "training_max",
                                              "percentage": "0.8"},
                            "set_scheme": {"type": "fixed", "sets": 5, "reps": 5},
                        }
                    },
                    "days": [{"slug": "d1", "prescriptions": ["work"]}],
                    "cycle": {"name": "Week", "length_weeks": 1,
                              "weeks": [{"week_number": 1, "days": ["d1"]}]},
                }
            )
        )

        result = runner.invoke(main, ["programs", "load", str(path)])
        again = runner.invoke(main, ["programs", "load", str(path)])

        assert result.exit_code == 0
        assert "Loaded 'Squats' as squats" in result.output
        assert again.exit_code == 1
        assert "already exists" in again.output

    def test_load_invalid_file(self, runner, initialized, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text(json.dumps({"program": {"name": "Broken", "slug": "broken"}}))

        result = runner.invoke(main, ["programs", "load", str(path)])

        assert result.exit_code == 1
        assert "Invalid program definition" in result.output


class TestTrainingFlow:
    """Tests for enrollment, workouts and progressions."""

    def test_current_workout(self, runner, enrolled):
        result = runner.invoke(main, ["workout", "current", "u1"])

        assert result.exit_code == 0
        assert "Workout A (Week 1, Cycle 1)" in result.output
        assert "1. 120 x 5  [warmup]" in result.output
        assert "3. 300 x 5" in result.output

    def test_preview_json(self, runner, enrolled):
        result = runner.invoke(main, ["workout", "preview", "u1", "2", "b", "--json"])
        data = json.loads(result.output)

        assert data["week_number"] == 2
        assert data["day_slug"] == "b"

    def test_preview_unknown_day(self, runner, enrolled):
        result = runner.invoke(main, ["workout", "preview", "u1", "1", "z"])

        assert result.exit_code == 1

    def test_workout_not_enrolled(self, runner, initialized):
        result = runner.invoke(main, ["workout", "current", "u1"])

        assert result.exit_code == 1
        assert "not enrolled" in result.output

    def test_status(self, runner, enrolled):
        result = runner.invoke(main, ["status", "u1"])

        assert "Program: Starting Strength" in result.output
        assert "Position: Cycle 1, Week 1, Day 1" in result.output

    def test_advance_applies_progressions(self, runner, enrolled):
        result = runner.invoke(main, ["advance", "u1"])

        assert result.exit_code == 0
        assert "Cycle 1, Week 1, Day 1 -> Cycle 1, Week 1, Day 2" in result.output
        assert "300 -> 305" in result.output
        assert "400 -> 410" in result.output

        workout = runner.invoke(main, ["workout", "current", "u1"])
        assert "Workout B" in workout.output
        assert "1. 305 x 5" in workout.output

        history = runner.invoke(main, ["progression", "history", "u1", "--lift", "squat"])
        assert "session:1:1:0" in history.output
        assert "after_session" in history.output

    def test_advance_week_json(self, runner, enrolled):
        result = runner.invoke(main, ["advance", "u1", "--week", "--json"])
        data = json.loads(result.output)

        assert data["week_completed"] is True
        assert data["state"]["current_week"] == 2

    def test_trigger(self, runner, enrolled):
        deadlift = progression_id("Deadlift +10")

        first = runner.invoke(main, ["progression", "trigger", "u1", deadlift])
        second = runner.invoke(main, ["progression", "trigger", "u1", deadlift])
        forced = runner.invoke(main, ["progression", "trigger", "u1", deadlift, "--force"])

        assert "400 -> 410" in first.output
        assert "Applied 1, skipped 0, errors 0" in first.output
        assert "already applied for this period" in second.output
        assert "410 -> 420" in forced.output

    def test_trigger_unknown(self, runner, enrolled):
        result = runner.invoke(main, ["progression", "trigger", "u1", "missing"])

        assert result.exit_code == 1

    def test_log_set(self, runner, enrolled):
        result = runner.invoke(
            main, ["log-set", "u1", "squat", "300", "4", "--target", "5", "--rpe", "9.5"]
        )

        assert result.exit_code == 0
        assert "Logged 300 x 4" in result.output

    def test_unenroll(self, runner, enrolled):
        result = runner.invoke(main, ["unenroll", "u1"])
        status = runner.invoke(main, ["status", "u1"])

        assert result.exit_code == 0
        assert "Unenrolled u1" in result.output
        assert status.exit_code == 1
