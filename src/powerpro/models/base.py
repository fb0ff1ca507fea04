"""Shared helpers for model serialization."""

from decimal import Decimal, InvalidOperation
from uuid import uuid4


def new_id() -> str:
    """Generate an opaque UUID-shaped identifier."""
    return str(uuid4())


def to_decimal(value) -> Decimal:
    """Convert a stored or user-supplied number to Decimal.

    Floats go through ``str`` so that 0.85 becomes Decimal("0.85") rather
    than its binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        value = repr(value)
    try:
        return Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a number: {value!r}") from e


def optional_decimal(value) -> Decimal | None:
    if value is None:
        return None
    return to_decimal(value)


def decimal_str(value: Decimal | None) -> str | None:
    """Serialize a Decimal without exponent notation."""
    if value is None:
        return None
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
