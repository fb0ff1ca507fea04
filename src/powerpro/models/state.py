"""Enrollment state: where a user currently is in their program."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from ..errors import InvalidAdvance
from .base import new_id


class EnrollmentStatus(str, Enum):
    """Enrollment status.

    BETWEEN_WEEKS and BETWEEN_CYCLES are passed through during an advance;
    a persisted state is ACTIVE.
    """

    ACTIVE = "active"
    BETWEEN_WEEKS = "between_weeks"
    BETWEEN_CYCLES = "between_cycles"


class AdvanceType(str, Enum):
    DAY = "day"
    WEEK = "week"


@dataclass
class UserProgramState:
    """A user's position in their enrolled program.

    ``current_day_index`` is zero-based within the current week's day list;
    ``current_week`` and ``cycle_iteration`` start at 1.
    ``enrollment_id`` changes on every enrollment so that a new run of the
    same program has its own trigger periods.
    """

    user_id: str
    program_id: str
    current_week: int = 1
    current_day_index: int = 0
    cycle_iteration: int = 1
    status: EnrollmentStatus = EnrollmentStatus.ACTIVE
    enrollment_id: str = field(default_factory=new_id)
    enrolled_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def reset(self) -> None:
        """Return to the start of the program."""
        self.current_week = 1
        self.current_day_index = 0
        self.cycle_iteration = 1
        self.status = EnrollmentStatus.ACTIVE
        self.enrollment_id = new_id()
        self.enrolled_at = datetime.now()
        self.updated_at = self.enrolled_at

    def advance(
        self,
        advance_type: AdvanceType,
        days_per_week: dict[int, int],
        cycle_length: int,
    ) -> "AdvanceResult":
        """Move to the next day or the next week.

        Args:
            advance_type: DAY moves one day forward, wrapping into the next
                week; WEEK skips the rest of the current week
            days_per_week: Number of days in each week number of the cycle
            cycle_length: Number of weeks in the cycle

        Returns:
            AdvanceResult describing the move

        Raises:
            InvalidAdvance: If the current or next position does not exist
        """
        previous = replace(self)
        days = self._days_in_week(self.current_week, days_per_week, cycle_length)
        if self.current_day_index >= days:
            raise InvalidAdvance(
                f"Day index {self.current_day_index} is outside week "
                f"{self.current_week} ({days} days)"
            )

        transitions: list[EnrollmentStatus] = []
        week_completed = False
        cycle_completed = False

        if advance_type == AdvanceType.DAY and self.current_day_index + 1 < days:
            self.current_day_index += 1
        else:
            week_completed = True
            transitions.append(EnrollmentStatus.BETWEEN_WEEKS)
            next_week = self.current_week + 1
            if next_week > cycle_length:
                cycle_completed = True
                transitions.append(EnrollmentStatus.BETWEEN_CYCLES)
                next_week = 1
                self.cycle_iteration += 1
            self._days_in_week(next_week, days_per_week, cycle_length)
            self.current_week = next_week
            self.current_day_index = 0

        transitions.append(EnrollmentStatus.ACTIVE)
        self.status = EnrollmentStatus.ACTIVE
        self.updated_at = datetime.now()

        return AdvanceResult(
            previous=previous,
            state=self,
            advance_type=advance_type,
            week_completed=week_completed,
            cycle_completed=cycle_completed,
            transitions=transitions,
        )

    @staticmethod
    def _days_in_week(week: int, days_per_week: dict[int, int], cycle_length: int) -> int:
        if cycle_length < 1:
            raise InvalidAdvance("Cycle has no weeks")
        if not 1 <= week <= cycle_length or week not in days_per_week:
            raise InvalidAdvance(f"Week {week} does not exist in the cycle")
        days = days_per_week[week]
        if days < 1:
            raise InvalidAdvance(f"Week {week} has no days")
        return days

    def get_position_display(self) -> str:
        """Get human-readable position."""
        return (
            f"Cycle {self.cycle_iteration}, Week {self.current_week}, "
            f"Day {self.current_day_index + 1}"
        )

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "user_id": self.user_id,
            "program_id": self.program_id,
            "current_week": self.current_week,
            "current_day_index": self.current_day_index,
            "cycle_iteration": self.cycle_iteration,
            "status": self.status.value,
            "enrollment_id": self.enrollment_id,
            "enrolled_at": self.enrolled_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserProgramState":
        """Create from dictionary."""
        kwargs = {}
        for key in ("enrolled_at", "updated_at"):
            if data.get(key):
                kwargs[key] = datetime.fromisoformat(data[key])
        if data.get("enrollment_id"):
            kwargs["enrollment_id"] = data["enrollment_id"]
        return cls(
            user_id=data["user_id"],
            program_id=data["program_id"],
            current_week=data.get("current_week", 1),
            current_day_index=data.get("current_day_index", 0),
            cycle_iteration=data.get("cycle_iteration", 1),
            status=EnrollmentStatus(data.get("status", "active")),
            **kwargs,
        )


@dataclass
class AdvanceResult:
    """Outcome of a state advance."""

    previous: UserProgramState
    state: UserProgramState
    advance_type: AdvanceType
    week_completed: bool = False
    cycle_completed: bool = False
    transitions: list[EnrollmentStatus] = field(default_factory=list)
    progressions: list = field(default_factory=list)  # TriggerSummary per fired progression

    def to_dict(self) -> dict:
        return {
            "previous": self.previous.to_dict(),
            "state": self.state.to_dict(),
            "advance_type": self.advance_type.value,
            "week_completed": self.week_completed,
            "cycle_completed": self.cycle_completed,
            "transitions": [t.value for t in self.transitions],
            "progressions": [p.to_dict() for p in self.progressions],
        }


@dataclass
class EnrollmentResult:
    """Outcome of an enrollment; ``replaced`` flags a destroyed prior state."""

    state: UserProgramState
    replaced: bool = False
    previous: UserProgramState | None = None

    def to_dict(self) -> dict:
        return {
            "state": self.state.to_dict(),
            "replaced": self.replaced,
            "previous": self.previous.to_dict() if self.previous else None,
        }
