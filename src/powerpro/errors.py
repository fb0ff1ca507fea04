"""Error taxonomy for the resolution and progression engine.

Every error carries a stable ``code`` and the HTTP status the web layer
should surface it with. Resolution errors abort the whole workout;
progression errors are captured per lift.
"""


class PowerProError(Exception):
    """Base class for all engine errors."""

    code = "powerpro_error"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {"code": self.code, "message": self.message}


class MissingLiftMax(PowerProError):
    """No current LiftMax exists for a required (lift, kind).

    The athlete can fix this by recording a max, so it is not a server error.
    """

    code = "missing_lift_max"
    http_status = 422

    def __init__(self, lift_id: str, kind: str):
        super().__init__(f"No {kind} recorded for lift {lift_id}")
        self.lift_id = lift_id
        self.kind = kind

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["lift_id"] = self.lift_id
        data["kind"] = self.kind
        return data


class LookupMiss(PowerProError):
    """A weekly, daily or RPE lookup has no entry for the requested key."""

    code = "lookup_miss"
    http_status = 500


class NoPriorPerformance(PowerProError):
    """LinearAdd needs a logged set and the athlete has none."""

    code = "no_prior_performance"
    http_status = 422

    def __init__(self, lift_id: str):
        super().__init__(f"No logged sets for lift {lift_id}")
        self.lift_id = lift_id


class ForwardReference(PowerProError, ValueError):
    """A RelativeTo strategy points at a set not resolved before it."""

    code = "forward_reference"
    http_status = 400


class InvalidAdvance(PowerProError):
    """The state machine reached a position it cannot advance from."""

    code = "invalid_advance"
    http_status = 500


class NotFound(PowerProError):
    """A referenced entity does not exist."""

    code = "not_found"
    http_status = 404


class DayNotFound(NotFound):
    code = "day_not_found"


class NotEnrolled(PowerProError):
    code = "not_enrolled"
    http_status = 409

    def __init__(self, user_id: str):
        super().__init__(f"User {user_id} is not enrolled in a program")
        self.user_id = user_id


class NoApplicableProgressions(PowerProError):
    code = "no_applicable_progressions"
    http_status = 422


class InvalidDescriptor(PowerProError, ValueError):
    """A strategy, scheme or progression descriptor failed validation."""

    code = "invalid_descriptor"
    http_status = 400


class AlreadyExists(PowerProError):
    """An entity with the same unique slug is already stored."""

    code = "already_exists"
    http_status = 409
