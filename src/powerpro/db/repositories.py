"""Data access layer for powerpro."""

import json
from datetime import datetime
from pathlib import Path

import aiosqlite

from ..engine.pipeline import validate_day_order
from ..errors import NotFound
from ..models.base import decimal_str, optional_decimal, to_decimal
from ..models.lift import Lift, LiftMax, LoggedSet, MaxKind
from ..models.lookups import DailyLookup, RPEChart, WeeklyLookup
from ..models.program import Cycle, Day, Prescription, Program, Week
from ..models.progression import (
    Progression,
    ProgressionHistoryEntry,
    ProgressionState,
    TriggerKind,
)
from ..models.state import EnrollmentStatus, UserProgramState
from .engine import get_db_path


def _ts(value: datetime | None) -> str | None:
    """Fixed-width timestamp text so string order matches time order."""
    if value is None:
        return None
    return value.isoformat(timespec="microseconds")


def _parse_ts(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


async def _insert_lift_max(db: aiosqlite.Connection, lift_max: LiftMax) -> None:
    await db.execute(
        """
        INSERT INTO lift_maxes (id, user_id, lift_id, kind, value, reps, effective_date)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            lift_max.id,
            lift_max.user_id,
            lift_max.lift_id,
            lift_max.kind.value,
            decimal_str(lift_max.value),
            lift_max.reps,
            _ts(lift_max.effective_date),
        ),
    )


async def _upsert_progression_state(db: aiosqlite.Connection, state: ProgressionState) -> None:
    await db.execute(
        """
        INSERT INTO progression_states
        (user_id, lift_id, progression_id, consecutive_failures, current_stage,
         last_failure_at, last_success_at)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        ON CONFLICT (user_id, lift_id, progression_id) DO UPDATE SET
            consecutive_failures = excluded.consecutive_failures,
            current_stage = excluded.current_stage,
            last_failure_at = excluded.last_failure_at,
            last_success_at = excluded.last_success_at
        """,
        (
            state.user_id,
            state.lift_id,
            state.progression_id,
            state.consecutive_failures,
            state.current_stage,
            _ts(state.last_failure_at),
            _ts(state.last_success_at),
        ),
    )


class LiftRepository:
    """Repository for lifts."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, lift: Lift) -> str:
        """Create a new lift."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO lifts (id, name, slug, is_competition_lift) VALUES (?, ?, ?, ?)",
                (lift.id, lift.name, lift.slug, 1 if lift.is_competition_lift else 0),
            )
            await db.commit()
            return lift.id

    async def get(self, lift_id: str) -> Lift | None:
        """Get a lift by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM lifts WHERE id = ?", (lift_id,))
            row = await cursor.fetchone()
            return self._row_to_lift(row) if row else None

    async def get_by_slug(self, slug: str) -> Lift | None:
        """Get a lift by slug."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM lifts WHERE slug = ?", (slug,))
            row = await cursor.fetchone()
            return self._row_to_lift(row) if row else None

    async def get_many(self, lift_ids: list[str]) -> dict[str, Lift]:
        """Get lifts by ID, keyed by ID."""
        if not lift_ids:
            return {}
        placeholders = ",".join("?" for _ in lift_ids)
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT * FROM lifts WHERE id IN ({placeholders})", tuple(lift_ids)
            )
            rows = await cursor.fetchall()
            return {row["id"]: self._row_to_lift(row) for row in rows}

    async def list_all(self) -> list[Lift]:
        """List all lifts."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM lifts ORDER BY name")
            rows = await cursor.fetchall()
            return [self._row_to_lift(row) for row in rows]

    def _row_to_lift(self, row: aiosqlite.Row) -> Lift:
        return Lift(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            is_competition_lift=bool(row["is_competition_lift"]),
        )


class LiftMaxRepository:
    """Repository for append-only lift maxes."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, lift_max: LiftMax) -> str:
        """Append a new lift max row."""
        async with aiosqlite.connect(self.db_path) as db:
            await _insert_lift_max(db, lift_max)
            await db.commit()
            return lift_max.id

    async def get_current(
        self,
        user_id: str,
        lift_id: str,
        kind: MaxKind,
        as_of: datetime | None = None,
    ) -> LiftMax | None:
        """Get the max with the latest effective date not after ``as_of``."""
        as_of = as_of or datetime.now()
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM lift_maxes
                WHERE user_id = ? AND lift_id = ? AND kind = ? AND effective_date <= ?
                ORDER BY effective_date DESC
                LIMIT 1
                """,
                (user_id, lift_id, kind.value, _ts(as_of)),
            )
            row = await cursor.fetchone()
            return self._row_to_lift_max(row) if row else None

    async def get_latest(self, user_id: str, lift_id: str, kind: MaxKind) -> LiftMax | None:
        """Get the max with the latest effective date, including future-dated rows."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM lift_maxes
                WHERE user_id = ? AND lift_id = ? AND kind = ?
                ORDER BY effective_date DESC
                LIMIT 1
                """,
                (user_id, lift_id, kind.value),
            )
            row = await cursor.fetchone()
            return self._row_to_lift_max(row) if row else None

    async def get_current_values(
        self, user_id: str, keys: set[tuple[str, MaxKind]]
    ) -> dict[tuple[str, MaxKind], LiftMax]:
        """Get current maxes for several (lift, kind) pairs."""
        current = {}
        for lift_id, kind in keys:
            lift_max = await self.get_current(user_id, lift_id, kind)
            if lift_max is not None:
                current[(lift_id, kind)] = lift_max
        return current

    async def list_history(
        self,
        user_id: str,
        lift_id: str | None = None,
        kind: MaxKind | None = None,
    ) -> list[LiftMax]:
        """List maxes for a user, oldest first."""
        query = "SELECT * FROM lift_maxes WHERE user_id = ?"
        params: list = [user_id]
        if lift_id is not None:
            query += " AND lift_id = ?"
            params.append(lift_id)
        if kind is not None:
            query += " AND kind = ?"
            params.append(kind.value)
        query += " ORDER BY effective_date"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_lift_max(row) for row in rows]

    def _row_to_lift_max(self, row: aiosqlite.Row) -> LiftMax:
        return LiftMax(
            id=row["id"],
            user_id=row["user_id"],
            lift_id=row["lift_id"],
            kind=MaxKind(row["kind"]),
            value=to_decimal(row["value"]),
            reps=row["reps"],
            effective_date=datetime.fromisoformat(row["effective_date"]),
        )


class LoggedSetRepository:
    """Repository for performed sets."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, logged_set: LoggedSet) -> str:
        """Record a performed set."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO logged_sets
                (id, user_id, lift_id, prescription_id, set_number, weight, target_reps,
                 reps_performed, is_amrap, rpe, logged_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    logged_set.id,
                    logged_set.user_id,
                    logged_set.lift_id,
                    logged_set.prescription_id,
                    logged_set.set_number,
                    decimal_str(logged_set.weight),
                    logged_set.target_reps,
                    logged_set.reps_performed,
                    1 if logged_set.is_amrap else 0,
                    decimal_str(logged_set.rpe),
                    _ts(logged_set.logged_at),
                ),
            )
            await db.commit()
            return logged_set.id

    async def get_latest(
        self, user_id: str, lift_id: str, amrap_only: bool = False
    ) -> LoggedSet | None:
        """Get the most recently logged set for a user and lift."""
        query = "SELECT * FROM logged_sets WHERE user_id = ? AND lift_id = ?"
        if amrap_only:
            query += " AND is_amrap = 1"
        query += " ORDER BY logged_at DESC, set_number DESC LIMIT 1"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, (user_id, lift_id))
            row = await cursor.fetchone()
            return self._row_to_logged_set(row) if row else None

    async def get_latest_weights(self, user_id: str, lift_ids: set[str]) -> dict:
        """Get the most recent logged weight for each lift."""
        weights = {}
        for lift_id in lift_ids:
            logged = await self.get_latest(user_id, lift_id)
            if logged is not None:
                weights[lift_id] = logged.weight
        return weights

    def _row_to_logged_set(self, row: aiosqlite.Row) -> LoggedSet:
        return LoggedSet(
            id=row["id"],
            user_id=row["user_id"],
            lift_id=row["lift_id"],
            prescription_id=row["prescription_id"],
            set_number=row["set_number"],
            weight=to_decimal(row["weight"]),
            target_reps=row["target_reps"],
            reps_performed=row["reps_performed"],
            is_amrap=bool(row["is_amrap"]),
            rpe=optional_decimal(row["rpe"]),
            logged_at=datetime.fromisoformat(row["logged_at"]),
        )


class PrescriptionRepository:
    """Repository for prescriptions."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, prescription: Prescription) -> str:
        """Create a new prescription."""
        data = prescription.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO prescriptions
                (id, lift_id, load_strategy, set_scheme, notes, rest_seconds)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    prescription.id,
                    prescription.lift_id,
                    json.dumps(data["load_strategy"]),
                    json.dumps(data["set_scheme"]),
                    prescription.notes,
                    prescription.rest_seconds,
                ),
            )
            await db.commit()
            return prescription.id

    async def get(self, prescription_id: str) -> Prescription | None:
        """Get a prescription by ID."""
        found = await self.get_many([prescription_id])
        return found[0] if found else None

    async def get_many(self, prescription_ids: list[str]) -> list[Prescription]:
        """Get prescriptions in the order the IDs were given, skipping unknown IDs."""
        if not prescription_ids:
            return []
        placeholders = ",".join("?" for _ in prescription_ids)
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT * FROM prescriptions WHERE id IN ({placeholders})",
                tuple(prescription_ids),
            )
            rows = await cursor.fetchall()

        by_id = {row["id"]: self._row_to_prescription(row) for row in rows}
        return [by_id[pid] for pid in prescription_ids if pid in by_id]

    def _row_to_prescription(self, row: aiosqlite.Row) -> Prescription:
        return Prescription.from_dict(
            {
                "id": row["id"],
                "lift_id": row["lift_id"],
                "load_strategy": json.loads(row["load_strategy"]),
                "set_scheme": json.loads(row["set_scheme"]),
                "notes": row["notes"] or "",
                "rest_seconds": row["rest_seconds"],
            }
        )


class DayRepository:
    """Repository for days."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, day: Day) -> str:
        """Create a day after checking its prescriptions resolve in order.

        Raises:
            NotFound: If a prescription does not exist
            ForwardReference: If a RelativeTo points at a later prescription
        """
        prescriptions = await PrescriptionRepository(self.db_path).get_many(day.prescription_ids)
        if len(prescriptions) != len(day.prescription_ids):
            raise NotFound(f"Day {day.slug} references unknown prescriptions")
        validate_day_order(prescriptions)

        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO days (id, slug, name, prescription_ids) VALUES (?, ?, ?, ?)",
                (day.id, day.slug, day.name, json.dumps(day.prescription_ids)),
            )
            await db.commit()
            return day.id

    async def get(self, day_id: str) -> Day | None:
        """Get a day by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM days WHERE id = ?", (day_id,))
            row = await cursor.fetchone()
            return self._row_to_day(row) if row else None

    async def get_many(self, day_ids: list[str]) -> list[Day]:
        """Get days in the order the IDs were given, skipping unknown IDs."""
        if not day_ids:
            return []
        placeholders = ",".join("?" for _ in day_ids)
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT * FROM days WHERE id IN ({placeholders})", tuple(day_ids)
            )
            rows = await cursor.fetchall()
        by_id = {row["id"]: self._row_to_day(row) for row in rows}
        return [by_id[day_id] for day_id in day_ids if day_id in by_id]

    def _row_to_day(self, row: aiosqlite.Row) -> Day:
        return Day(
            id=row["id"],
            slug=row["slug"],
            name=row["name"],
            prescription_ids=json.loads(row["prescription_ids"]),
        )


class ProgramRepository:
    """Repository for programs and their cycles."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create_cycle(self, cycle: Cycle) -> str:
        """Create a cycle together with its weeks."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO cycles (id, name, length_weeks) VALUES (?, ?, ?)",
                (cycle.id, cycle.name, cycle.length_weeks),
            )
            for week in cycle.weeks:
                week.cycle_id = cycle.id
                await db.execute(
                    "INSERT INTO weeks (id, cycle_id, week_number, day_ids) VALUES (?, ?, ?, ?)",
                    (week.id, cycle.id, week.week_number, json.dumps(week.day_ids)),
                )
            await db.commit()
            return cycle.id

    async def get_cycle(self, cycle_id: str) -> Cycle | None:
        """Get a cycle with its weeks ordered by week number."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM cycles WHERE id = ?", (cycle_id,))
            row = await cursor.fetchone()
            if row is None:
                return None
            cursor = await db.execute(
                "SELECT * FROM weeks WHERE cycle_id = ? ORDER BY week_number", (cycle_id,)
            )
            week_rows = await cursor.fetchall()

        weeks = [
            Week(
                id=w["id"],
                cycle_id=w["cycle_id"],
                week_number=w["week_number"],
                day_ids=json.loads(w["day_ids"]),
            )
            for w in week_rows
        ]
        return Cycle(id=row["id"], name=row["name"], length_weeks=row["length_weeks"], weeks=weeks)

    async def create(self, program: Program) -> str:
        """Create a new program."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT INTO programs
                (id, name, slug, description, cycle_id, weekly_lookup_id, daily_lookup_id,
                 rounding_increment)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    program.id,
                    program.name,
                    program.slug,
                    program.description,
                    program.cycle_id,
                    program.weekly_lookup_id,
                    program.daily_lookup_id,
                    decimal_str(program.rounding_increment),
                ),
            )
            await db.commit()
            return program.id

    async def get(self, program_id: str) -> Program | None:
        """Get a program by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM programs WHERE id = ?", (program_id,))
            row = await cursor.fetchone()
            return self._row_to_program(row) if row else None

    async def get_by_slug(self, slug: str) -> Program | None:
        """Get a program by slug."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM programs WHERE slug = ?", (slug,))
            row = await cursor.fetchone()
            return self._row_to_program(row) if row else None

    async def list_all(self) -> list[Program]:
        """List all programs."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM programs ORDER BY created_at DESC, name")
            rows = await cursor.fetchall()
            return [self._row_to_program(row) for row in rows]

    def _row_to_program(self, row: aiosqlite.Row) -> Program:
        return Program(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            description=row["description"] or "",
            cycle_id=row["cycle_id"],
            weekly_lookup_id=row["weekly_lookup_id"],
            daily_lookup_id=row["daily_lookup_id"],
            rounding_increment=row["rounding_increment"],
        )


class LookupRepository:
    """Repository for weekly, daily and RPE lookups."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create_weekly(self, lookup: WeeklyLookup) -> str:
        data = lookup.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO weekly_lookups (id, name, entries) VALUES (?, ?, ?)",
                (lookup.id, lookup.name, json.dumps(data["entries"])),
            )
            await db.commit()
            return lookup.id

    async def get_weekly(self, lookup_id: str) -> WeeklyLookup | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM weekly_lookups WHERE id = ?", (lookup_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return WeeklyLookup.from_dict(
            {"id": row["id"], "name": row["name"], "entries": json.loads(row["entries"])}
        )

    async def create_daily(self, lookup: DailyLookup) -> str:
        data = lookup.to_dict()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO daily_lookups (id, name, entries) VALUES (?, ?, ?)",
                (lookup.id, lookup.name, json.dumps(data["entries"])),
            )
            await db.commit()
            return lookup.id

    async def get_daily(self, lookup_id: str) -> DailyLookup | None:
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute("SELECT * FROM daily_lookups WHERE id = ?", (lookup_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return DailyLookup.from_dict(
            {"id": row["id"], "name": row["name"], "entries": json.loads(row["entries"])}
        )

    async def get_rpe_chart(self) -> RPEChart:
        """Load the RPE chart (empty if it has not been seeded)."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT reps, rpe, percentage FROM rpe_chart")
            rows = await cursor.fetchall()
        return RPEChart.from_rows(rows)


class UserProgramStateRepository:
    """Repository for enrollment state (one row per user)."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def get(self, user_id: str) -> UserProgramState | None:
        """Get a user's state."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM user_program_states WHERE user_id = ?", (user_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_state(row) if row else None

    async def replace(self, state: UserProgramState) -> None:
        """Insert a state, overwriting any existing state for the user."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT OR REPLACE INTO user_program_states
                (user_id, program_id, current_week, current_day_index, cycle_iteration,
                 status, enrollment_id, enrolled_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                self._state_params(state),
            )
            await db.commit()

    async def update(self, state: UserProgramState) -> None:
        """Update an existing state's position."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                UPDATE user_program_states SET
                    current_week = ?, current_day_index = ?, cycle_iteration = ?,
                    status = ?, updated_at = ?
                WHERE user_id = ? AND program_id = ?
                """,
                (
                    state.current_week,
                    state.current_day_index,
                    state.cycle_iteration,
                    state.status.value,
                    _ts(state.updated_at),
                    state.user_id,
                    state.program_id,
                ),
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise ValueError(f"No state for user {state.user_id} to update")

    async def delete(self, user_id: str) -> bool:
        """Delete a user's state. Returns True if a row was removed."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                "DELETE FROM user_program_states WHERE user_id = ?", (user_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    def _state_params(self, state: UserProgramState) -> tuple:
        return (
            state.user_id,
            state.program_id,
            state.current_week,
            state.current_day_index,
            state.cycle_iteration,
            state.status.value,
            state.enrollment_id,
            _ts(state.enrolled_at),
            _ts(state.updated_at),
        )

    def _row_to_state(self, row: aiosqlite.Row) -> UserProgramState:
        return UserProgramState(
            user_id=row["user_id"],
            program_id=row["program_id"],
            current_week=row["current_week"],
            current_day_index=row["current_day_index"],
            cycle_iteration=row["cycle_iteration"],
            status=EnrollmentStatus(row["status"]),
            enrollment_id=row["enrollment_id"],
            enrolled_at=datetime.fromisoformat(row["enrolled_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class ProgressionRepository:
    """Repository for progressions and their program/lift links."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def create(self, progression: Progression) -> str:
        """Create a new progression."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                "INSERT INTO progressions (id, name, rule, trigger, max_kind) VALUES (?, ?, ?, ?, ?)",
                (
                    progression.id,
                    progression.name,
                    json.dumps(progression.rule.to_dict()),
                    json.dumps(progression.trigger.to_dict()),
                    progression.max_kind.value,
                ),
            )
            await db.commit()
            return progression.id

    async def get(self, progression_id: str) -> Progression | None:
        """Get a progression by ID."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM progressions WHERE id = ?", (progression_id,)
            )
            row = await cursor.fetchone()
            return self._row_to_progression(row) if row else None

    async def link(self, program_id: str, progression_id: str, lift_id: str) -> None:
        """Make a progression govern a lift under a program."""
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """
                INSERT OR IGNORE INTO program_progressions (program_id, progression_id, lift_id)
                VALUES (?, ?, ?)
                """,
                (program_id, progression_id, lift_id),
            )
            await db.commit()

    async def list_lift_ids(self, program_id: str, progression_id: str) -> list[str]:
        """Lifts a progression governs under a program."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT lift_id FROM program_progressions
                WHERE program_id = ? AND progression_id = ?
                ORDER BY lift_id
                """,
                (program_id, progression_id),
            )
            rows = await cursor.fetchall()
            return [row[0] for row in rows]

    async def list_for_program(
        self, program_id: str, lift_id: str | None = None
    ) -> list[tuple[Progression, str]]:
        """List (progression, lift_id) links for a program."""
        query = """
            SELECT p.*, pp.lift_id AS linked_lift_id
            FROM program_progressions pp
            JOIN progressions p ON p.id = pp.progression_id
            WHERE pp.program_id = ?
        """
        params: list = [program_id]
        if lift_id is not None:
            query += " AND pp.lift_id = ?"
            params.append(lift_id)
        query += " ORDER BY p.name, pp.lift_id"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [(self._row_to_progression(row), row["linked_lift_id"]) for row in rows]

    def _row_to_progression(self, row: aiosqlite.Row) -> Progression:
        return Progression.from_dict(
            {
                "id": row["id"],
                "name": row["name"],
                "rule": json.loads(row["rule"]),
                "trigger": json.loads(row["trigger"]),
                "max_kind": row["max_kind"],
            }
        )


class ProgressionStateRepository:
    """Repository for failure counters and stage positions."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def get(self, user_id: str, lift_id: str, progression_id: str) -> ProgressionState:
        """Get the state, or a fresh one if nothing is stored yet."""
        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                """
                SELECT * FROM progression_states
                WHERE user_id = ? AND lift_id = ? AND progression_id = ?
                """,
                (user_id, lift_id, progression_id),
            )
            row = await cursor.fetchone()
        if row is None:
            return ProgressionState(user_id=user_id, lift_id=lift_id, progression_id=progression_id)
        return ProgressionState(
            user_id=row["user_id"],
            lift_id=row["lift_id"],
            progression_id=row["progression_id"],
            consecutive_failures=row["consecutive_failures"],
            current_stage=row["current_stage"],
            last_failure_at=_parse_ts(row["last_failure_at"]),
            last_success_at=_parse_ts(row["last_success_at"]),
        )

    async def save(self, state: ProgressionState) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await _upsert_progression_state(db, state)
            await db.commit()


class ProgressionHistoryRepository:
    """Repository for the append-only progression audit log."""

    def __init__(self, db_path: Path | None = None):
        self.db_path = db_path or get_db_path()

    async def record_application(
        self,
        entry: ProgressionHistoryEntry,
        lift_max: LiftMax | None = None,
        state: ProgressionState | None = None,
    ) -> bool:
        """Write a history entry, its new lift max and progression state atomically.

        The history insert goes first; its unique (user, lift, progression,
        period) key means a concurrent or repeated application fails here
        and nothing else is written.

        Returns:
            True if recorded, False if the period already had an application
        """
        async with aiosqlite.connect(self.db_path) as db:
            try:
                await db.execute(
                    """
                    INSERT INTO progression_history
                    (id, user_id, lift_id, progression_id, trigger_kind, period_key,
                     previous_value, new_value, delta, reason, cycle_iteration, week_number,
                     forced, applied_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        entry.id,
                        entry.user_id,
                        entry.lift_id,
                        entry.progression_id,
                        entry.trigger_kind.value,
                        entry.period_key,
                        decimal_str(entry.previous_value),
                        decimal_str(entry.new_value),
                        decimal_str(entry.delta),
                        entry.reason,
                        entry.cycle_iteration,
                        entry.week_number,
                        1 if entry.forced else 0,
                        _ts(entry.applied_at),
                    ),
                )
            except aiosqlite.IntegrityError:
                await db.rollback()
                return False

            if lift_max is not None:
                await _insert_lift_max(db, lift_max)
            if state is not None:
                await _upsert_progression_state(db, state)
            await db.commit()
            return True

    async def exists(
        self, user_id: str, lift_id: str, progression_id: str, period_key: str
    ) -> bool:
        """Check whether a period already has an application."""
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute(
                """
                SELECT 1 FROM progression_history
                WHERE user_id = ? AND lift_id = ? AND progression_id = ? AND period_key = ?
                """,
                (user_id, lift_id, progression_id, period_key),
            )
            return await cursor.fetchone() is not None

    async def list_for_user(
        self, user_id: str, lift_id: str | None = None
    ) -> list[ProgressionHistoryEntry]:
        """List a user's history, oldest first."""
        query = "SELECT * FROM progression_history WHERE user_id = ?"
        params: list = [user_id]
        if lift_id is not None:
            query += " AND lift_id = ?"
            params.append(lift_id)
        query += " ORDER BY applied_at, id"

        async with aiosqlite.connect(self.db_path) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, params)
            rows = await cursor.fetchall()
            return [self._row_to_entry(row) for row in rows]

    def _row_to_entry(self, row: aiosqlite.Row) -> ProgressionHistoryEntry:
        return ProgressionHistoryEntry(
            id=row["id"],
            user_id=row["user_id"],
            lift_id=row["lift_id"],
            progression_id=row["progression_id"],
            trigger_kind=TriggerKind(row["trigger_kind"]),
            period_key=row["period_key"],
            previous_value=to_decimal(row["previous_value"]),
            new_value=to_decimal(row["new_value"]),
            delta=to_decimal(row["delta"]),
            reason=row["reason"],
            cycle_iteration=row["cycle_iteration"],
            week_number=row["week_number"],
            forced=bool(row["forced"]),
            applied_at=datetime.fromisoformat(row["applied_at"]),
        )
