"""Common types and enums shared across all models."""

from datetime import date
from enum import Enum
from typing import Annotated

from pydantic import BeforeValidator, StringConstraints


class DocType(str, Enum):
    """Document category."""

    visa = "Visa"
    passport = "Passport"
    insurance = "Insurance"
    ticket = "Ticket"
    contract = "Contract"
    reservation = "Reservation"
    id = "ID"
    other = "Other"


class Priority(str, Enum):
    """Reminder priority tier (also used for risk factor severity)."""

    high = "High"
    medium = "Medium"
    low = "Low"


class ReminderSource(str, Enum):
    """Where a reminder came from."""

    document = "document"
    manual = "manual"


def blank_to_none(value: object) -> object:
    """Treat empty or whitespace-only strings as missing."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _normalize_time(value: object) -> object:
    """Blank means no time; HH:MM:SS is cut down to HH:MM."""
    value = blank_to_none(value)
    if isinstance(value, str):
        value = value.strip()
        if len(value) == 8 and value.count(":") == 2:
            return value[:5]
    return value


# "HH:MM" on a 24h clock
HHMM = Annotated[str, StringConstraints(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")]

OptionalTime = Annotated[HHMM | None, BeforeValidator(_normalize_time)]
OptionalDate = Annotated[date | None, BeforeValidator(blank_to_none)]
OptionalText = Annotated[str | None, BeforeValidator(blank_to_none)]
