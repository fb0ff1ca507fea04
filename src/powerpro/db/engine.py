"""Database engine setup and initialization."""

import logging
from pathlib import Path

import aiosqlite

from ..models.base import decimal_str
from ..models.lookups import RPEChart
from ..settings import get_settings

logger = logging.getLogger(__name__)


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    settings = get_settings()
    if data_dir is None:
        data_dir = settings.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / settings.database_name


_TABLES = [
    """
    CREATE TABLE IF NOT EXISTS lifts (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT UNIQUE NOT NULL,
        is_competition_lift INTEGER DEFAULT 0,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    # Append-only reference numbers; values are Decimal text
    """
    CREATE TABLE IF NOT EXISTS lift_maxes (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        lift_id TEXT NOT NULL,
        kind TEXT NOT NULL,
        value TEXT NOT NULL,
        reps INTEGER,
        effective_date TEXT NOT NULL,
        UNIQUE (user_id, lift_id, kind, effective_date),
        FOREIGN KEY (lift_id) REFERENCES lifts(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS logged_sets (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        lift_id TEXT NOT NULL,
        prescription_id TEXT,
        set_number INTEGER DEFAULT 1,
        weight TEXT NOT NULL,
        target_reps INTEGER,
        reps_performed INTEGER NOT NULL,
        is_amrap INTEGER DEFAULT 0,
        rpe TEXT,
        logged_at TEXT NOT NULL,
        FOREIGN KEY (lift_id) REFERENCES lifts(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS prescriptions (
        id TEXT PRIMARY KEY,
        lift_id TEXT NOT NULL,
        load_strategy TEXT NOT NULL,
        set_scheme TEXT NOT NULL,
        notes TEXT DEFAULT '',
        rest_seconds INTEGER,
        FOREIGN KEY (lift_id) REFERENCES lifts(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS days (
        id TEXT PRIMARY KEY,
        slug TEXT NOT NULL,
        name TEXT NOT NULL,
        prescription_ids TEXT NOT NULL DEFAULT '[]'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cycles (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        length_weeks INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS weeks (
        id TEXT PRIMARY KEY,
        cycle_id TEXT NOT NULL,
        week_number INTEGER NOT NULL,
        day_ids TEXT NOT NULL DEFAULT '[]',
        UNIQUE (cycle_id, week_number),
        FOREIGN KEY (cycle_id) REFERENCES cycles(id) ON DELETE CASCADE
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS weekly_lookups (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        entries TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS daily_lookups (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        entries TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS rpe_chart (
        reps INTEGER NOT NULL,
        rpe TEXT NOT NULL,
        percentage TEXT NOT NULL,
        PRIMARY KEY (reps, rpe)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS programs (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        slug TEXT UNIQUE NOT NULL,
        description TEXT DEFAULT '',
        cycle_id TEXT NOT NULL,
        weekly_lookup_id TEXT,
        daily_lookup_id TEXT,
        rounding_increment TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        FOREIGN KEY (cycle_id) REFERENCES cycles(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_program_states (
        user_id TEXT PRIMARY KEY,
        program_id TEXT NOT NULL,
        current_week INTEGER NOT NULL DEFAULT 1,
        current_day_index INTEGER NOT NULL DEFAULT 0,
        cycle_iteration INTEGER NOT NULL DEFAULT 1,
        status TEXT NOT NULL DEFAULT 'active',
        enrollment_id TEXT NOT NULL,
        enrolled_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY (program_id) REFERENCES programs(id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS progressions (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        rule TEXT NOT NULL,
        trigger TEXT NOT NULL,
        max_kind TEXT NOT NULL DEFAULT 'training_max'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS program_progressions (
        program_id TEXT NOT NULL,
        progression_id TEXT NOT NULL,
        lift_id TEXT NOT NULL,
        PRIMARY KEY (program_id, progression_id, lift_id),
        FOREIGN KEY (program_id) REFERENCES programs(id) ON DELETE CASCADE,
        FOREIGN KEY (progression_id) REFERENCES progressions(id) ON DELETE CASCADE
    )
    """,
    # The unique key is the at-most-once guard for non-forced applications
    """
    CREATE TABLE IF NOT EXISTS progression_history (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        lift_id TEXT NOT NULL,
        progression_id TEXT NOT NULL,
        trigger_kind TEXT NOT NULL,
        period_key TEXT NOT NULL,
        previous_value TEXT NOT NULL,
        new_value TEXT NOT NULL,
        delta TEXT NOT NULL,
        reason TEXT NOT NULL,
        cycle_iteration INTEGER NOT NULL,
        week_number INTEGER NOT NULL,
        forced INTEGER DEFAULT 0,
        applied_at TEXT NOT NULL,
        UNIQUE (user_id, lift_id, progression_id, period_key)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS progression_states (
        user_id TEXT NOT NULL,
        lift_id TEXT NOT NULL,
        progression_id TEXT NOT NULL,
        consecutive_failures INTEGER NOT NULL DEFAULT 0,
        current_stage INTEGER NOT NULL DEFAULT 0,
        last_failure_at TEXT,
        last_success_at TEXT,
        PRIMARY KEY (user_id, lift_id, progression_id)
    )
    """,
]

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_lift_maxes_lookup ON lift_maxes(user_id, lift_id, kind, effective_date)",
    "CREATE INDEX IF NOT EXISTS idx_logged_sets_user_lift ON logged_sets(user_id, lift_id, logged_at)",
    "CREATE INDEX IF NOT EXISTS idx_weeks_cycle ON weeks(cycle_id)",
    "CREATE INDEX IF NOT EXISTS idx_program_progressions_program ON program_progressions(program_id)",
    "CREATE INDEX IF NOT EXISTS idx_progression_history_user ON progression_history(user_id, applied_at)",
]


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path) as db:
        for statement in _TABLES:
            await db.execute(statement)
        for statement in _INDEXES:
            await db.execute(statement)
        await db.commit()

    logger.debug("Initialized database at %s", db_path)


async def seed_rpe_chart(db_path: Path | None = None, chart: RPEChart | None = None) -> int:
    """Seed the RPE chart, keeping any rows already present.

    Returns:
        Number of chart rows inserted
    """
    if db_path is None:
        db_path = get_db_path()
    if chart is None:
        chart = RPEChart.default()

    async with aiosqlite.connect(db_path) as db:
        count = 0
        for reps, rpe, percentage in chart.rows():
            cursor = await db.execute(
                "INSERT OR IGNORE INTO rpe_chart (reps, rpe, percentage) VALUES (?, ?, ?)",
                (reps, decimal_str(rpe), decimal_str(percentage)),
            )
            count += cursor.rowcount
        await db.commit()

    return count
