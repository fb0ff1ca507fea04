"""Pytest configuration and fixtures."""

import pytest
import pytest_asyncio
import tempfile
from decimal import Decimal
from pathlib import Path

from powerpro.data.program_loader import get_programs_dir, load_program_file
from powerpro.db import LiftMaxRepository, LiftRepository, init_db, seed_rpe_chart
from powerpro.models.lift import Lift, LiftMax, MaxKind
from powerpro.settings import get_settings


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest_asyncio.fixture
async def db_path(temp_db_path):
    """An initialized database with the default RPE chart."""
    await init_db(temp_db_path)
    await seed_rpe_chart(temp_db_path)
    return temp_db_path


@pytest_asyncio.fixture
async def lifts(db_path):
    """Squat, bench, deadlift and press, keyed by slug."""
    repo = LiftRepository(db_path)
    created = {}
    for slug, name in [
        ("squat", "Squat"),
        ("bench", "Bench Press"),
        ("deadlift", "Deadlift"),
        ("press", "Overhead Press"),
    ]:
        lift = Lift(name=name, slug=slug, is_competition_lift=slug != "press")
        await repo.create(lift)
        created[slug] = lift
    return created


@pytest.fixture
def set_max(db_path):
    """Record a lift max for a user."""
    repo = LiftMaxRepository(db_path)

    async def _set_max(user_id, lift, value, kind=MaxKind.TRAINING_MAX):
        lift_max = LiftMax(user_id=user_id, lift_id=lift.id, kind=kind, value=Decimal(value))
        await repo.create(lift_max)
        return lift_max

    return _set_max


@pytest.fixture
def load_sample(db_path):
    """Load a bundled program definition by file name."""

    async def _load(filename):
        return await load_program_file(get_programs_dir() / filename, db_path)

    return _load


@pytest.fixture
def isolated_settings(monkeypatch, tmp_path):
    """Point settings (and so the default database) at a temporary directory."""
    monkeypatch.setenv("POWERPRO_DATA_DIR", str(tmp_path))
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()
