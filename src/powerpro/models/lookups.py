"""Keyed percentage tables read at resolution time."""

from dataclasses import dataclass, field
from decimal import Decimal

from ..errors import LookupMiss
from .base import decimal_str, new_id, to_decimal


@dataclass
class WeeklyLookupEntry:
    """Percentage set (and optional rep targets) for one week number."""

    week_number: int
    percentages: list[Decimal]
    reps: list[int] = field(default_factory=list)

    def __post_init__(self):
        self.percentages = [to_decimal(p) for p in self.percentages]
        if self.week_number < 1:
            raise ValueError("week_number must be >= 1")
        if not self.percentages:
            raise ValueError("Weekly lookup entry needs at least one percentage")
        if self.reps and len(self.reps) != len(self.percentages):
            raise ValueError("reps and percentages must have the same length")

    def to_dict(self) -> dict:
        return {
            "week_number": self.week_number,
            "percentages": [decimal_str(p) for p in self.percentages],
            "reps": list(self.reps),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WeeklyLookupEntry":
        return cls(
            week_number=int(data["week_number"]),
            percentages=data["percentages"],
            reps=[int(r) for r in data.get("reps", [])],
        )


@dataclass
class WeeklyLookup:
    """Maps week number to a percentage set (e.g. a 5/3/1 wave)."""

    name: str
    entries: list[WeeklyLookupEntry]
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        weeks = [e.week_number for e in self.entries]
        if len(weeks) != len(set(weeks)):
            raise ValueError(f"Weekly lookup '{self.name}' has duplicate week numbers")

    def percentages_for(self, week_number: int) -> list[Decimal]:
        """Get the percentage set for a week.

        Raises:
            LookupMiss: If no entry exists for the week
        """
        return self.entry_for(week_number).percentages

    def entry_for(self, week_number: int) -> WeeklyLookupEntry:
        for entry in self.entries:
            if entry.week_number == week_number:
                return entry
        raise LookupMiss(f"Weekly lookup '{self.name}' has no entry for week {week_number}")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "entries": [e.to_dict() for e in self.entries],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WeeklyLookup":
        kwargs = {"id": data["id"]} if data.get("id") else {}
        return cls(
            name=data["name"],
            entries=[WeeklyLookupEntry.from_dict(e) for e in data.get("entries", [])],
            **kwargs,
        )


@dataclass
class DailyLookup:
    """Maps a day slug to a percentage (heavy/light/medium days)."""

    name: str
    entries: dict[str, Decimal]
    id: str = field(default_factory=new_id)

    def __post_init__(self):
        self.entries = {slug.lower(): to_decimal(pct) for slug, pct in self.entries.items()}

    def percentage_for(self, day_slug: str) -> Decimal:
        """Get the percentage for a day slug (case-insensitive).

        Raises:
            LookupMiss: If the slug has no entry
        """
        try:
            return self.entries[day_slug.lower()]
        except KeyError:
            raise LookupMiss(
                f"Daily lookup '{self.name}' has no entry for day '{day_slug}'"
            ) from None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "entries": {slug: decimal_str(pct) for slug, pct in self.entries.items()},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DailyLookup":
        kwargs = {"id": data["id"]} if data.get("id") else {}
        return cls(name=data["name"], entries=dict(data.get("entries", {})), **kwargs)


# Reps 1..12 for each RPE, as fractions of a true one-rep max.
_DEFAULT_CHART_ROWS = {
    "10": ["1.00", ".95", ".92", ".88", ".82", ".80", ".74", ".71", ".68", ".66", ".64", ".62"],
    "9.5": [".975", ".93", ".905", ".85", ".81", ".77", ".725", ".695", ".67", ".65", ".63", ".61"],
    "9": [".95", ".91", ".89", ".82", ".80", ".74", ".71", ".68", ".66", ".64", ".62", ".60"],
    "8.5": [".93", ".895", ".855", ".81", ".785", ".725", ".695", ".67", ".65", ".63", ".61", ".59"],
    "8": [".91", ".88", ".82", ".80", ".77", ".71", ".68", ".66", ".64", ".62", ".60", ".58"],
    "7.5": [".895", ".85", ".81", ".77", ".755", ".695", ".67", ".65", ".63", ".61", ".59", ".57"],
    "7": [".88", ".82", ".80", ".74", ".74", ".68", ".66", ".64", ".62", ".60", ".58", ".56"],
}


@dataclass
class RPEChart:
    """Maps (reps, RPE) to a fraction of true max.

    Lookups are exact: an unlisted pair is a miss, never interpolated.
    """

    entries: dict[tuple[int, Decimal], Decimal]

    def percentage_for(self, reps: int, rpe) -> Decimal:
        """Get the percentage for a reps/RPE pair.

        Raises:
            LookupMiss: If the pair is not in the chart
        """
        key = (int(reps), to_decimal(rpe))
        try:
            return self.entries[key]
        except KeyError:
            raise LookupMiss(f"RPE chart has no entry for {reps} reps @ RPE {rpe}") from None

    def rows(self) -> list[tuple[int, Decimal, Decimal]]:
        """Flatten to sorted (reps, rpe, percentage) rows."""
        return sorted(
            ((reps, rpe, pct) for (reps, rpe), pct in self.entries.items()),
            key=lambda row: (row[0], -row[1]),
        )

    @classmethod
    def from_rows(cls, rows) -> "RPEChart":
        """Build a chart from (reps, rpe, percentage) rows."""
        return cls(
            entries={
                (int(reps), to_decimal(rpe)): to_decimal(pct)
                for reps, rpe, pct in rows
            }
        )

    @classmethod
    def default(cls) -> "RPEChart":
        """The standard RPE chart covering 1-12 reps at RPE 7-10."""
        rows = []
        for rpe, percentages in _DEFAULT_CHART_ROWS.items():
            for reps, pct in enumerate(percentages, start=1):
                rows.append((reps, rpe, pct))
        return cls.from_rows(rows)

