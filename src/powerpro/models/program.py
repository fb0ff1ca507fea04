"""Program structure: prescriptions assembled into days, weeks and cycles."""

from dataclasses import dataclass, field
from decimal import Decimal

from .base import decimal_str, new_id, optional_decimal
from .schemes import SetScheme, set_scheme_from_dict
from .strategies import LoadStrategy, load_strategy_from_dict

MAX_NOTES_LENGTH = 500


@dataclass
class Prescription:
    """A reusable exercise slot: lift + load strategy + set scheme."""

    lift_id: str
    load_strategy: LoadStrategy
    set_scheme: SetScheme
    notes: str = ""
    rest_seconds: int | None = None
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        if len(self.notes) > MAX_NOTES_LENGTH:
            raise ValueError(f"Prescription notes must be at most {MAX_NOTES_LENGTH} characters")
        if self.rest_seconds is not None and self.rest_seconds < 0:
            raise ValueError("rest_seconds must not be negative")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "lift_id": self.lift_id,
            "load_strategy": self.load_strategy.to_dict(),
            "set_scheme": self.set_scheme.to_dict(),
            "notes": self.notes,
            "rest_seconds": self.rest_seconds,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Prescription":
        """Create from dictionary."""
        kwargs = {"id": data["id"]} if data.get("id") else {}
        return cls(
            lift_id=data["lift_id"],
            load_strategy=load_strategy_from_dict(data["load_strategy"]),
            set_scheme=set_scheme_from_dict(data["set_scheme"]),
            notes=data.get("notes", ""),
            rest_seconds=data.get("rest_seconds"),
            **kwargs,
        )


@dataclass
class Day:
    """An ordered list of prescriptions, identified by slug."""

    slug: str
    name: str
    prescription_ids: list[str] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "slug": self.slug,
            "name": self.name,
            "prescription_ids": list(self.prescription_ids),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Day":
        kwargs = {"id": data["id"]} if data.get("id") else {}
        return cls(
            slug=data["slug"],
            name=data.get("name", data["slug"]),
            prescription_ids=list(data.get("prescription_ids", [])),
            **kwargs,
        )


@dataclass
class Week:
    """An ordered list of day references within a cycle."""

    week_number: int
    day_ids: list[str] = field(default_factory=list)
    cycle_id: str | None = None
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        if self.week_number < 1:
            raise ValueError("week_number must be >= 1")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cycle_id": self.cycle_id,
            "week_number": self.week_number,
            "day_ids": list(self.day_ids),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Week":
        kwargs = {"id": data["id"]} if data.get("id") else {}
        return cls(
            week_number=int(data["week_number"]),
            day_ids=list(data.get("day_ids", [])),
            cycle_id=data.get("cycle_id"),
            **kwargs,
        )


@dataclass
class Cycle:
    """An ordered set of weeks repeated for every cycle iteration."""

    name: str
    length_weeks: int
    weeks: list[Week] = field(default_factory=list)
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        if self.length_weeks < 1:
            raise ValueError("Cycle length_weeks must be >= 1")

    def get_week(self, week_number: int) -> Week | None:
        """Get a week by its number."""
        for week in self.weeks:
            if week.week_number == week_number:
                return week
        return None

    def days_per_week(self) -> dict[int, int]:
        """Map each week number to its day count."""
        return {week.week_number: len(week.day_ids) for week in self.weeks}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "length_weeks": self.length_weeks,
            "weeks": [w.to_dict() for w in self.weeks],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Cycle":
        kwargs = {"id": data["id"]} if data.get("id") else {}
        return cls(
            name=data["name"],
            length_weeks=int(data["length_weeks"]),
            weeks=[Week.from_dict(w) for w in data.get("weeks", [])],
            **kwargs,
        )


@dataclass
class Program:
    """A cycle plus optional lookups and a rounding increment."""

    name: str
    slug: str
    cycle_id: str
    weekly_lookup_id: str | None = None
    daily_lookup_id: str | None = None
    rounding_increment: Decimal | None = None
    description: str = ""
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.rounding_increment = optional_decimal(self.rounding_increment)
        if self.rounding_increment is not None and self.rounding_increment <= 0:
            raise ValueError("rounding_increment must be positive")

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "cycle_id": self.cycle_id,
            "weekly_lookup_id": self.weekly_lookup_id,
            "daily_lookup_id": self.daily_lookup_id,
            "rounding_increment": decimal_str(self.rounding_increment),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Program":
        """Create from dictionary."""
        kwargs = {"id": data["id"]} if data.get("id") else {}
        return cls(
            name=data["name"],
            slug=data["slug"],
            cycle_id=data["cycle_id"],
            weekly_lookup_id=data.get("weekly_lookup_id"),
            daily_lookup_id=data.get("daily_lookup_id"),
            rounding_increment=data.get("rounding_increment"),
            description=data.get("description", ""),
            **kwargs,
        )
