"""
Clock abstraction and the canonical local-time conversion.

Every place that turns a calendar date and a wall-clock time into an instant
goes through ``to_local_instant`` so all comparisons happen between aware
datetimes in the practitioner's timezone.
"""

import re
from datetime import date, datetime, time
from typing import Protocol

import pendulum
from pendulum import DateTime

from .exceptions import ValidationError

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class Clock(Protocol):
    """Supplies "now" in the practitioner's local timezone."""

    def now(self) -> DateTime:
        """Return the current instant."""


class SystemClock:
    """Wall clock in a fixed IANA timezone."""

    def __init__(self, timezone: str):
        self.timezone = timezone

    def now(self) -> DateTime:
        return pendulum.now(self.timezone)


class FixedClock:
    """Deterministic clock for tests and reproducible runs."""

    def __init__(self, now: DateTime):
        self._now = now

    def now(self) -> DateTime:
        return self._now

    def advance(self, **kwargs) -> None:
        """Move the clock forward, e.g. ``advance(hours=1)``."""
        self._now = self._now.add(**kwargs)


def to_local_instant(day: date, wall_time: time, timezone: str) -> DateTime:
    """Combine a local calendar date and wall-clock time into an aware instant."""
    return pendulum.datetime(
        day.year,
        day.month,
        day.day,
        wall_time.hour,
        wall_time.minute,
        tz=timezone,
    )


def parse_local_date(value: "date | str") -> date:
    """
    Parse an ISO-8601 calendar date with no time component.

    Raises:
        ValidationError: If the value is not a ``YYYY-MM-DD`` date
    """
    if isinstance(value, datetime):
        raise ValidationError("Expected a calendar date without a time component")
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid date: {value!r}")

    text = value.strip()
    if not _ISO_DATE.match(text):
        raise ValidationError(f"Invalid date '{value}': expected YYYY-MM-DD")
    try:
        parsed = pendulum.from_format(text, "YYYY-MM-DD")
    except ValueError as exc:
        raise ValidationError(f"Invalid date '{value}': expected YYYY-MM-DD") from exc
    return parsed.date()


def parse_wall_time(value: "time | str") -> time:
    """
    Parse a zero-padded 24-hour ``HH:MM`` string.

    Raises:
        ValidationError: If the value is not a valid wall-clock time
    """
    if isinstance(value, time):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"Invalid time: {value!r}")

    parts = value.strip().split(":")
    if len(parts) != 2 or not all(len(part) == 2 and part.isdigit() for part in parts):
        raise ValidationError(f"Invalid time '{value}': expected HH:MM")

    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValidationError(f"Invalid time '{value}': out of range")
    return time(hour=hour, minute=minute)
