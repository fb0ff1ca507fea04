"""Tests for load strategy, set scheme and day resolution."""

from decimal import Decimal

import pytest

from powerpro.engine.loads import LoadResult, ResolutionContext, resolve_load
from powerpro.engine.pipeline import (
    needs_rpe_chart,
    required_last_weights,
    required_maxes,
    resolve_prescriptions,
    validate_day_order,
)
from powerpro.engine.sets import next_set, resolve_sets
from powerpro.errors import (
    ForwardReference,
    InvalidDescriptor,
    LookupMiss,
    MissingLiftMax,
    NoPriorPerformance,
    NotFound,
)
from powerpro.models.lift import Lift, LoggedSet, MaxKind
from powerpro.models.lookups import DailyLookup, RPEChart, WeeklyLookup, WeeklyLookupEntry
from powerpro.models.program import Prescription
from powerpro.models.schemes import AMRAP, MRS, FatigueDrop, Fixed, Ramp, TopBackoff, TotalReps
from powerpro.models.strategies import FindRM, LinearAdd, PercentOf, RelativeTo, RPETarget

FIVE = Decimal("5")
TM = MaxKind.TRAINING_MAX


def make_ctx(**kwargs) -> ResolutionContext:
    defaults = {"user_id": "u1", "week_number": 1, "day_slug": "heavy"}
    defaults.update(kwargs)
    return ResolutionContext(**defaults)


def weights(plan) -> list:
    return [s.weight for s in plan.sets]


@pytest.fixture
def wave():
    return WeeklyLookup(
        name="5/3/1",
        entries=[
            WeeklyLookupEntry(1, ["0.65", "0.75", "0.85"], [5, 5, 5]),
            WeeklyLookupEntry(3, ["0.75", "0.85", "0.95"], [5, 3, 1]),
        ],
    )


class TestResolveLoad:
    """Tests for resolve_load."""

    def test_percent_of(self):
        ctx = make_ctx(lift_maxes={("squat", TM): Decimal("300")})

        load = resolve_load(PercentOf(TM, Decimal("0.85")), "squat", ctx)

        assert load.weights == [Decimal("255.00")]
        assert load.base == Decimal("255")

    def test_percent_of_missing_max(self):
        ctx = make_ctx(lift_maxes={("squat", MaxKind.TRUE_MAX): Decimal("300")})

        with pytest.raises(MissingLiftMax) as exc_info:
            resolve_load(PercentOf(TM, Decimal("0.85")), "squat", ctx)

        assert exc_info.value.lift_id == "squat"
        assert exc_info.value.kind == "training_max"

    def test_weekly_lookup(self, wave):
        ctx = make_ctx(week_number=3, lift_maxes={("press", TM): Decimal("200")}, weekly_lookup=wave)

        load = resolve_load(PercentOf(TM), "press", ctx)

        assert load.weights == [Decimal("150"), Decimal("170"), Decimal("190")]
        assert load.reps == [5, 3, 1]

    def test_weekly_and_daily_lookup_multiply(self, wave):
        daily = DailyLookup(name="hlm", entries={"heavy": "1.0", "light": "0.8"})
        ctx = make_ctx(
            day_slug="light",
            lift_maxes={("press", TM): Decimal("200")},
            weekly_lookup=wave,
            daily_lookup=daily,
        )

        load = resolve_load(PercentOf(TM), "press", ctx)

        assert load.weights == [Decimal("104"), Decimal("120"), Decimal("136")]

    def test_daily_lookup_alone(self):
        daily = DailyLookup(name="hlm", entries={"heavy": "0.9"})
        ctx = make_ctx(lift_maxes={("squat", TM): Decimal("400")}, daily_lookup=daily)

        load = resolve_load(PercentOf(TM), "squat", ctx)

        assert load.weights == [Decimal("360")]

    def test_lookup_without_tables(self):
        ctx = make_ctx(lift_maxes={("squat", TM): Decimal("400")})

        with pytest.raises(LookupMiss):
            resolve_load(PercentOf(TM), "squat", ctx)

    def test_week_missing_from_lookup(self, wave):
        ctx = make_ctx(week_number=2, lift_maxes={("squat", TM): Decimal("400")}, weekly_lookup=wave)

        with pytest.raises(LookupMiss):
            resolve_load(PercentOf(TM), "squat", ctx)

    def test_rpe_target_uses_true_max(self):
        ctx = make_ctx(
            lift_maxes={("squat", MaxKind.TRUE_MAX): Decimal("400")},
            rpe_chart=RPEChart.default(),
        )

        load = resolve_load(RPETarget(reps=5, rpe=Decimal("8")), "squat", ctx)

        assert load.weights == [Decimal("308.00")]

    def test_rpe_target_without_chart(self):
        ctx = make_ctx(lift_maxes={("squat", MaxKind.TRUE_MAX): Decimal("400")})

        with pytest.raises(LookupMiss):
            resolve_load(RPETarget(reps=5, rpe=Decimal("8")), "squat", ctx)

    def test_linear_add(self):
        ctx = make_ctx(last_weights={"squat": Decimal("225")})

        load = resolve_load(LinearAdd(FIVE), "squat", ctx)

        assert load.weights == [Decimal("230")]

    def test_linear_add_floors_at_zero(self):
        ctx = make_ctx(last_weights={"squat": Decimal("20")})

        load = resolve_load(LinearAdd(Decimal("-50")), "squat", ctx)
        plan = resolve_sets(Fixed(1, 5), load, FIVE)

        assert load.weights == [Decimal("0")]
        assert weights(plan) == [0]

    def test_linear_add_without_history(self):
        with pytest.raises(NoPriorPerformance):
            resolve_load(LinearAdd(FIVE), "squat", make_ctx())

    def test_find_rm_has_no_weight(self):
        load = resolve_load(FindRM(3), "squat", make_ctx())

        assert load.is_discovery
        assert load.base is None
        assert load.discovery_reps == 3

    def test_relative_to_requires_resolved_source(self):
        with pytest.raises(ForwardReference):
            resolve_load(RelativeTo("p1", Decimal("0.9")), "squat", make_ctx())


class TestResolveSets:
    """Tests for resolve_sets."""

    def test_fixed(self):
        plan = resolve_sets(Fixed(3, 5), LoadResult([Decimal("255")]), FIVE)

        assert weights(plan) == [255, 255, 255]
        assert [s.set_number for s in plan.sets] == [1, 2, 3]
        assert all(s.target_reps == 5 and s.is_work_set for s in plan.sets)

    def test_fixed_rounds_each_set_once(self):
        plan = resolve_sets(Fixed(2, 5), LoadResult([Decimal("172.5")]), FIVE)

        assert weights(plan) == [175, 175]
        assert plan.raw_weights == [Decimal("172.5"), Decimal("172.5")]

    def test_amrap_with_lookup_weights(self):
        load = LoadResult(
            [Decimal("139.75"), Decimal("161.25"), Decimal("182.75")], reps=[5, 3, 1]
        )

        plan = resolve_sets(AMRAP(3, 5), load, FIVE)

        assert weights(plan) == [140, 160, 185]
        assert [s.target_reps for s in plan.sets] == [5, 3, 1]
        assert [s.is_amrap for s in plan.sets] == [False, False, True]

    def test_ramp_work_sets(self):
        scheme = Ramp((Decimal("0.5"), Decimal("0.7"), Decimal("0.8"), Decimal("0.9")), 3)

        plan = resolve_sets(scheme, LoadResult([Decimal("300")]), FIVE)

        assert weights(plan) == [150, 210, 240, 270]
        assert [s.is_work_set for s in plan.sets] == [False, False, True, True]

    def test_ramp_keeps_raw_weights(self):
        scheme = Ramp(("0.5", "0.65", "0.75", "0.88", "1.0"), 5)

        plan = resolve_sets(scheme, LoadResult([Decimal("200")]), FIVE)

        assert plan.raw_weights == [100, 130, 150, 176, 200]
        assert weights(plan) == [100, 130, 150, 175, 200]
        assert [s.is_work_set for s in plan.sets] == [False, False, False, True, True]

    def test_top_backoff(self):
        scheme = TopBackoff(1, 3, 3, 5, Decimal("0.9"))

        plan = resolve_sets(scheme, LoadResult([Decimal("300")]), FIVE)

        assert weights(plan) == [300, 270, 270, 270]
        assert [s.target_reps for s in plan.sets] == [3, 5, 5, 5]

    def test_find_rm_sets_have_no_weight(self):
        plan = resolve_sets(Fixed(1, 3), LoadResult(None, discovery_reps=3), FIVE)

        assert weights(plan) == [None]

    @pytest.mark.parametrize(
        "scheme",
        [
            MRS(3),
            FatigueDrop(Decimal("0.05"), Decimal("9"), target_reps=3),
            TotalReps(50),
        ],
    )
    def test_session_variable_seed_set(self, scheme):
        """Session-variable schemes resolve to one provisional set and a target."""
        plan = resolve_sets(scheme, LoadResult([Decimal("200")]), FIVE)

        assert len(plan.sets) == 1
        assert plan.sets[0].is_provisional
        assert plan.sets[0].weight == 200
        assert "200" in plan.target

    def test_total_reps_seed_capped_by_target(self):
        plan = resolve_sets(TotalReps(6, suggested_reps_per_set=10), LoadResult([FIVE]), FIVE)

        assert plan.sets[0].target_reps == 6


class TestNextSet:
    """Tests for continuing session-variable schemes."""

    def performed(self, *sets):
        return [
            LoggedSet(user_id="u1", lift_id="l1", weight=w, reps_performed=r, rpe=rpe)
            for w, r, rpe in sets
        ]

    def test_mrs_continues_until_short(self):
        scheme = MRS(3)

        following = next_set(scheme, self.performed((200, 3, None)), FIVE)
        assert following.set_number == 2
        assert following.weight == 200
        assert following.target_reps == 3

        assert next_set(scheme, self.performed((200, 3, None), (200, 2, None)), FIVE) is None

    def test_mrs_respects_max_sets(self):
        scheme = MRS(3, max_sets=2)

        assert next_set(scheme, self.performed((200, 3, None), (200, 3, None)), FIVE) is None

    def test_fatigue_drop_rounds_down(self):
        scheme = FatigueDrop(Decimal("0.05"), Decimal("9"), target_reps=3)

        following = next_set(scheme, self.performed((315, 3, Decimal("8"))), FIVE)

        assert following.weight == 295

    def test_fatigue_drop_stops_at_rpe(self):
        scheme = FatigueDrop(Decimal("0.05"), Decimal("9"), target_reps=3)

        assert next_set(scheme, self.performed((315, 3, Decimal("9"))), FIVE) is None

    def test_total_reps_remaining(self):
        scheme = TotalReps(50)
        done = self.performed(*[(100, 15, None)] * 3)

        following = next_set(scheme, done, FIVE)
        assert following.target_reps == 5

        assert next_set(scheme, done + self.performed((100, 5, None)), FIVE) is None

    def test_fixed_scheme_has_no_next_set(self):
        with pytest.raises(InvalidDescriptor):
            next_set(Fixed(3, 5), self.performed((100, 5, None)), FIVE)

    def test_requires_seed_set(self):
        with pytest.raises(ValueError):
            next_set(MRS(3), [], FIVE)


class TestDayResolution:
    """Tests for validate_day_order and resolve_prescriptions."""

    @pytest.fixture
    def lifts(self):
        return {
            "squat": Lift(name="Squat", slug="squat", id="squat"),
            "bench": Lift(name="Bench Press", slug="bench", id="bench"),
        }

    def test_forward_reference(self):
        backoff = Prescription("squat", RelativeTo("top", Decimal("0.9")), Fixed(3, 5), id="back")
        top = Prescription("squat", PercentOf(TM, Decimal("0.85")), Fixed(1, 3), id="top")

        with pytest.raises(ForwardReference):
            validate_day_order([backoff, top])

    def test_self_reference(self):
        me = Prescription("squat", RelativeTo("me", Decimal("0.9")), Fixed(3, 5), id="me")

        with pytest.raises(ForwardReference):
            validate_day_order([me])

    def test_reference_outside_day(self):
        orphan = Prescription("squat", RelativeTo("gone", Decimal("0.9")), Fixed(3, 5), id="x")

        with pytest.raises(ForwardReference):
            validate_day_order([orphan])

    def test_duplicate_prescription(self):
        top = Prescription("squat", PercentOf(TM, Decimal("0.85")), Fixed(1, 3), id="top")

        with pytest.raises(InvalidDescriptor):
            validate_day_order([top, top])

    def test_relative_to_reads_unrounded_weight(self, lifts):
        """The backoff is 90% of 172.55, not 90% of the rounded 175."""
        top = Prescription("squat", PercentOf(TM, Decimal("0.85")), Fixed(1, 3), id="top")
        backoff = Prescription("squat", RelativeTo("top", Decimal("0.9")), Fixed(3, 5), id="back")
        ctx = make_ctx(lift_maxes={("squat", TM): Decimal("203")})

        exercises = resolve_prescriptions([top, backoff], lifts, ctx, FIVE)

        assert [s.weight for s in exercises[0].sets] == [175]
        assert [s.weight for s in exercises[1].sets] == [155, 155, 155]

    def test_relative_to_specific_set(self, lifts):
        ramp = Prescription(
            "squat",
            PercentOf(TM, Decimal("1")),
            Ramp((Decimal("0.5"), Decimal("0.8")), 3),
            id="ramp",
        )
        follow = Prescription(
            "squat", RelativeTo("ramp", Decimal("1"), source_set_number=1), Fixed(1, 5), id="f"
        )
        ctx = make_ctx(lift_maxes={("squat", TM): Decimal("300")})

        exercises = resolve_prescriptions([ramp, follow], lifts, ctx, FIVE)

        assert exercises[1].sets[0].weight == 150

    def test_order_and_metadata(self, lifts):
        squat = Prescription(
            "squat", PercentOf(TM, Decimal("0.8")), Fixed(5, 5), notes="Belt", rest_seconds=180
        )
        bench = Prescription("bench", FindRM(3), Fixed(1, 3))
        ctx = make_ctx(lift_maxes={("squat", TM): Decimal("300")})

        exercises = resolve_prescriptions([squat, bench], lifts, ctx, FIVE)

        assert [e.lift_slug for e in exercises] == ["squat", "bench"]
        assert exercises[0].notes == "Belt"
        assert exercises[0].rest_seconds == 180
        assert exercises[1].target == "Work up to a 3-rep max"
        assert exercises[1].sets[0].weight is None

    def test_error_aborts_whole_day(self, lifts):
        squat = Prescription("squat", PercentOf(TM, Decimal("0.8")), Fixed(5, 5))
        bench = Prescription("bench", PercentOf(TM, Decimal("0.8")), Fixed(5, 5))
        ctx = make_ctx(lift_maxes={("squat", TM): Decimal("300")})

        with pytest.raises(MissingLiftMax):
            resolve_prescriptions([squat, bench], lifts, ctx, FIVE)

    def test_unknown_lift(self):
        squat = Prescription("squat", PercentOf(TM, Decimal("0.8")), Fixed(5, 5))
        ctx = make_ctx(lift_maxes={("squat", TM): Decimal("300")})

        with pytest.raises(NotFound):
            resolve_prescriptions([squat], {}, ctx, FIVE)

    def test_prefetch_requirements(self):
        day = [
            Prescription("squat", PercentOf(TM, Decimal("0.8")), Fixed(5, 5)),
            Prescription("bench", RPETarget(reps=3, rpe=Decimal("8")), Fixed(1, 3)),
            Prescription("press", LinearAdd(FIVE), Fixed(3, 5)),
        ]

        assert required_maxes(day) == {("squat", TM), ("bench", MaxKind.TRUE_MAX)}
        assert required_last_weights(day) == {"press"}
        assert needs_rpe_chart(day)
