"""Program loader from JSON definition files.

A definition names lifts by slug and prescriptions by local keys; the loader
creates (or reuses) the lifts and stores every piece with fresh IDs.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..db.engine import get_db_path
from ..db.repositories import (
    DayRepository,
    LiftRepository,
    LookupRepository,
    PrescriptionRepository,
    ProgramRepository,
    ProgressionRepository,
)
from ..engine.pipeline import validate_day_order
from ..errors import AlreadyExists, InvalidDescriptor
from ..models.lift import Lift
from ..models.lookups import DailyLookup, WeeklyLookup
from ..models.program import Cycle, Day, Prescription, Program, Week
from ..models.progression import Progression
from ..models.strategies import RelativeTo

logger = logging.getLogger(__name__)


def get_programs_dir() -> Path:
    """Get the directory holding bundled program definitions."""
    return Path(__file__).parent / "programs"


def list_bundled_programs() -> list[Path]:
    """List bundled program definition files."""
    return sorted(get_programs_dir().glob("*.json"))


async def load_program_file(path: Path, db_path: Path | None = None) -> Program:
    """Load a program definition from a JSON file.

    Args:
        path: JSON definition file
        db_path: Optional database path. Uses default if not provided.

    Returns:
        The stored Program
    """
    with open(path) as f:
        data = json.load(f)
    return await load_program_document(data, db_path)


@dataclass
class ProgramDefinition:
    """Every object a definition produces, built and checked before storage."""

    program: Program
    cycle: Cycle
    new_lifts: list[Lift] = field(default_factory=list)
    weekly_lookup: WeeklyLookup | None = None
    daily_lookup: DailyLookup | None = None
    prescriptions: list[Prescription] = field(default_factory=list)
    days: list[Day] = field(default_factory=list)
    progressions: list[Progression] = field(default_factory=list)
    links: list[tuple[str, str]] = field(default_factory=list)  # (progression_id, lift_id)


async def _resolve_lifts(
    entries: list[dict], repo: LiftRepository
) -> tuple[dict[str, str], list[Lift]]:
    lift_ids = {}
    new_lifts = []
    for entry in entries:
        if entry["slug"] in lift_ids:
            continue
        lift = await repo.get_by_slug(entry["slug"])
        if lift is None:
            lift = Lift.from_dict(entry)
            new_lifts.append(lift)
        lift_ids[entry["slug"]] = lift.id
    return lift_ids, new_lifts


def _lift_id(lift_ids: dict[str, str], slug: str) -> str:
    try:
        return lift_ids[slug]
    except KeyError:
        raise InvalidDescriptor(f"Unknown lift slug '{slug}'") from None


def _build_prescriptions(entries: dict, lift_ids: dict[str, str]) -> dict[str, Prescription]:
    """Build prescriptions in file order, keyed by their local key."""
    prescriptions: dict[str, Prescription] = {}
    for key, entry in entries.items():
        strategy = dict(entry["load_strategy"])
        if strategy.get("type") == RelativeTo.type and "source" in strategy:
            source = strategy.pop("source")
            if source not in prescriptions:
                raise InvalidDescriptor(
                    f"Prescription '{key}' is relative to '{source}', which is not defined above it"
                )
            strategy["source_prescription_id"] = prescriptions[source].id
        prescriptions[key] = Prescription.from_dict(
            {
                "lift_id": _lift_id(lift_ids, entry["lift"]),
                "load_strategy": strategy,
                "set_scheme": entry["set_scheme"],
                "notes": entry.get("notes", ""),
                "rest_seconds": entry.get("rest_seconds"),
            }
        )
    return prescriptions


def _build_days(entries: list[dict], prescriptions: dict[str, Prescription]) -> dict[str, Day]:
    days: dict[str, Day] = {}
    for entry in entries:
        slug = entry["slug"]
        if slug in days:
            raise InvalidDescriptor(f"Day '{slug}' is defined twice")
        try:
            members = [prescriptions[key] for key in entry["prescriptions"]]
        except KeyError as e:
            raise InvalidDescriptor(f"Day '{slug}' uses unknown prescription {e}") from None
        validate_day_order(members)
        days[slug] = Day(
            slug=slug, name=entry.get("name", slug), prescription_ids=[p.id for p in members]
        )
    return days


def _build_cycle(data: dict, days: dict[str, Day]) -> Cycle:
    weeks = []
    for w in data["weeks"]:
        unknown = [slug for slug in w["days"] if slug not in days]
        if unknown:
            raise InvalidDescriptor(
                f"Week {w['week_number']} uses unknown day(s): {', '.join(unknown)}"
            )
        weeks.append(
            Week(week_number=int(w["week_number"]), day_ids=[days[slug].id for slug in w["days"]])
        )
    return Cycle(name=data["name"], length_weeks=int(data["length_weeks"]), weeks=weeks)


async def build_program_definition(
    data: dict, db_path: Path | None = None
) -> ProgramDefinition:
    """Build and check every object of a definition without writing anything.

    Raises:
        AlreadyExists: If a program with the same slug is stored
        InvalidDescriptor: On an unknown lift, prescription or day reference
        ForwardReference: If a day lists a relative prescription before its source
    """
    if db_path is None:
        db_path = get_db_path()

    program_data = data["program"]
    if await ProgramRepository(db_path).get_by_slug(program_data["slug"]) is not None:
        raise AlreadyExists(f"Program '{program_data['slug']}' already exists")

    lift_ids, new_lifts = await _resolve_lifts(data.get("lifts", []), LiftRepository(db_path))

    weekly_lookup = None
    if data.get("weekly_lookup"):
        weekly_lookup = WeeklyLookup.from_dict(data["weekly_lookup"])
    daily_lookup = None
    if data.get("daily_lookup"):
        daily_lookup = DailyLookup.from_dict(data["daily_lookup"])

    prescriptions = _build_prescriptions(data.get("prescriptions", {}), lift_ids)
    days = _build_days(data.get("days", []), prescriptions)
    cycle = _build_cycle(data["cycle"], days)

    program = Program(
        name=program_data["name"],
        slug=program_data["slug"],
        description=program_data.get("description", ""),
        cycle_id=cycle.id,
        weekly_lookup_id=weekly_lookup.id if weekly_lookup else None,
        daily_lookup_id=daily_lookup.id if daily_lookup else None,
        rounding_increment=program_data.get("rounding_increment"),
    )

    progressions = []
    links = []
    for entry in data.get("progressions", []):
        progression = Progression.from_dict(entry)
        progressions.append(progression)
        links.extend((progression.id, _lift_id(lift_ids, slug)) for slug in entry.get("lifts", []))

    return ProgramDefinition(
        program=program,
        cycle=cycle,
        new_lifts=new_lifts,
        weekly_lookup=weekly_lookup,
        daily_lookup=daily_lookup,
        prescriptions=list(prescriptions.values()),
        days=list(days.values()),
        progressions=progressions,
        links=links,
    )


async def load_program_document(data: dict, db_path: Path | None = None) -> Program:
    """Store a parsed program definition.

    Prescriptions are built in file order, so a ``relative_to`` strategy
    may only name a prescription key defined above it. The whole definition
    is checked before the first row is written.
    """
    if db_path is None:
        db_path = get_db_path()

    definition = await build_program_definition(data, db_path)

    lift_repo = LiftRepository(db_path)
    for lift in definition.new_lifts:
        await lift_repo.create(lift)

    lookups = LookupRepository(db_path)
    if definition.weekly_lookup:
        await lookups.create_weekly(definition.weekly_lookup)
    if definition.daily_lookup:
        await lookups.create_daily(definition.daily_lookup)

    prescription_repo = PrescriptionRepository(db_path)
    for prescription in definition.prescriptions:
        await prescription_repo.create(prescription)

    day_repo = DayRepository(db_path)
    for day in definition.days:
        await day_repo.create(day)

    program_repo = ProgramRepository(db_path)
    await program_repo.create_cycle(definition.cycle)
    program = definition.program
    await program_repo.create(program)

    progression_repo = ProgressionRepository(db_path)
    for progression in definition.progressions:
        await progression_repo.create(progression)
    for progression_id, lift_id in definition.links:
        await progression_repo.link(program.id, progression_id, lift_id)

    logger.info("Loaded program %s (%s)", program.name, program.id)
    return program
