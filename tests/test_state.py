"""Tests for the program position state machine."""

import pytest

from powerpro.errors import InvalidAdvance
from powerpro.models.state import AdvanceType, EnrollmentStatus, UserProgramState

# Two weeks of three days, like an A/B novice program.
DAYS = {1: 3, 2: 3}


def make_state(**kwargs) -> UserProgramState:
    return UserProgramState(user_id="u1", program_id="p1", **kwargs)


class TestAdvanceDay:
    """Tests for day advances."""

    def test_moves_to_next_day(self):
        state = make_state()

        result = state.advance(AdvanceType.DAY, DAYS, 2)

        assert (state.current_week, state.current_day_index) == (1, 1)
        assert not result.week_completed
        assert result.transitions == [EnrollmentStatus.ACTIVE]
        assert result.previous.current_day_index == 0

    def test_last_day_rolls_into_next_week(self):
        state = make_state(current_day_index=2)

        result = state.advance(AdvanceType.DAY, DAYS, 2)

        assert (state.current_week, state.current_day_index) == (2, 0)
        assert result.week_completed
        assert not result.cycle_completed
        assert result.transitions == [EnrollmentStatus.BETWEEN_WEEKS, EnrollmentStatus.ACTIVE]

    def test_last_day_of_cycle_starts_next_iteration(self):
        state = make_state(current_week=2, current_day_index=2)

        result = state.advance(AdvanceType.DAY, DAYS, 2)

        assert (state.cycle_iteration, state.current_week, state.current_day_index) == (2, 1, 0)
        assert result.cycle_completed
        assert result.transitions == [
            EnrollmentStatus.BETWEEN_WEEKS,
            EnrollmentStatus.BETWEEN_CYCLES,
            EnrollmentStatus.ACTIVE,
        ]
        assert state.status == EnrollmentStatus.ACTIVE

    def test_full_cycle_of_day_advances(self):
        """Six day advances through a 2x3 cycle land on iteration 2."""
        state = make_state()
        positions = []
        for _ in range(6):
            state.advance(AdvanceType.DAY, DAYS, 2)
            positions.append((state.cycle_iteration, state.current_week, state.current_day_index))

        assert positions == [
            (1, 1, 1),
            (1, 1, 2),
            (1, 2, 0),
            (1, 2, 1),
            (1, 2, 2),
            (2, 1, 0),
        ]


class TestAdvanceWeek:
    """Tests for week advances."""

    def test_skips_rest_of_week(self):
        state = make_state(current_day_index=1)

        result = state.advance(AdvanceType.WEEK, DAYS, 2)

        assert (state.current_week, state.current_day_index) == (2, 0)
        assert result.week_completed

    def test_week_advance_wraps_cycle(self):
        state = make_state(current_week=2)

        result = state.advance(AdvanceType.WEEK, DAYS, 2)

        assert (state.cycle_iteration, state.current_week) == (2, 1)
        assert result.cycle_completed

    def test_single_week_cycle(self):
        state = make_state()

        result = state.advance(AdvanceType.WEEK, {1: 4}, 1)

        assert state.cycle_iteration == 2
        assert result.cycle_completed


class TestInvalidAdvance:
    """Tests for positions that cannot be advanced."""

    def test_day_index_out_of_range(self):
        state = make_state(current_day_index=5)

        with pytest.raises(InvalidAdvance):
            state.advance(AdvanceType.DAY, DAYS, 2)

    def test_missing_next_week(self):
        state = make_state(current_day_index=2)

        with pytest.raises(InvalidAdvance):
            state.advance(AdvanceType.DAY, {1: 3}, 2)

    def test_empty_week(self):
        with pytest.raises(InvalidAdvance):
            make_state().advance(AdvanceType.DAY, {1: 0}, 1)

    def test_no_weeks(self):
        with pytest.raises(InvalidAdvance):
            make_state().advance(AdvanceType.DAY, {}, 0)


class TestStateSerialization:
    """Tests for state helpers."""

    def test_round_trip(self):
        state = make_state(current_week=2, current_day_index=1, cycle_iteration=3)

        assert UserProgramState.from_dict(state.to_dict()) == state

    def test_position_display(self):
        state = make_state(current_week=2, current_day_index=1, cycle_iteration=3)

        assert state.get_position_display() == "Cycle 3, Week 2, Day 2"

    def test_reset(self):
        state = make_state(current_week=2, current_day_index=1, cycle_iteration=3)

        state.reset()

        assert (state.cycle_iteration, state.current_week, state.current_day_index) == (1, 1, 0)

    def test_reset_starts_new_enrollment(self):
        state = make_state(current_week=2)
        before = state.enrollment_id

        state.reset()

        assert state.enrollment_id != before

    def test_each_state_has_its_own_enrollment_id(self):
        assert make_state().enrollment_id != make_state().enrollment_id
