"""
Business calendar: weekly opening hours, explicit closures and service durations.
"""

from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional

from .clock import to_local_instant
from .exceptions import UnknownServiceType
from .models import ClosedDate, OpeningHours, ServiceType, TimeRange

WEEKDAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]


class BusinessCalendar:
    """
    Per-weekday hours, a closed-date set and the service duration lookup.

    Weekdays follow ``date.weekday()``: 0=Monday, 6=Sunday. A weekday missing
    from ``weekly_hours`` (or mapped to ``None``) is closed every week. A
    closed date always wins over weekday hours.
    """

    def __init__(
        self,
        weekly_hours: Mapping[int, Optional[OpeningHours]],
        service_durations: Mapping[ServiceType, int],
        closed_dates: Iterable[ClosedDate] = (),
        timezone: str = "America/Chicago",
    ):
        self.weekly_hours: Dict[int, Optional[OpeningHours]] = dict(weekly_hours)
        self.service_durations: Dict[ServiceType, int] = dict(service_durations)
        self.closed_dates: Dict[date, ClosedDate] = {
            closed.day: closed for closed in closed_dates
        }
        self.timezone = timezone

    def is_open(self, day: date) -> bool:
        """False for weekly-closed weekdays and for explicitly closed dates."""
        if day in self.closed_dates:
            return False
        return self.weekly_hours.get(day.weekday()) is not None

    def hours_for(self, day: date) -> Optional[TimeRange]:
        """
        Get the business hours for a specific day as local instants.
        Returns None if the day is closed.
        """
        if not self.is_open(day):
            return None

        opening = self.weekly_hours[day.weekday()]
        return TimeRange(
            start=to_local_instant(day, opening.open_time, self.timezone),
            end=to_local_instant(day, opening.close_time, self.timezone),
        )

    def duration_for(self, service_type: "ServiceType | str") -> int:
        """
        Look up the fixed duration of a service in minutes.

        Raises:
            UnknownServiceType: If the service is unknown or not offered
        """
        member = ServiceType.parse(service_type)
        try:
            return self.service_durations[member]
        except KeyError:
            raise UnknownServiceType(
                f"Service type '{member.value}' is not offered"
            ) from None

    def closure_reason(self, day: date) -> Optional[str]:
        """Explain why a day is closed, or None when it is open."""
        closed = self.closed_dates.get(day)
        if closed is not None:
            return closed.reason or "Closed"
        if self.weekly_hours.get(day.weekday()) is None:
            return f"{WEEKDAY_NAMES[day.weekday()]}s are closed"
        return None

    def closed_dates_between(self, start: date, end: date) -> List[ClosedDate]:
        """Explicit closures within ``[start, end]``, ascending."""
        return sorted(
            (closed for day, closed in self.closed_dates.items() if start <= day <= end),
            key=lambda closed: closed.day,
        )

    def with_closed_dates(self, closed_dates: Iterable[ClosedDate]) -> "BusinessCalendar":
        """Return a copy whose closed-date set also contains ``closed_dates``."""
        merged = list(self.closed_dates.values())
        known = set(self.closed_dates)
        for closed in closed_dates:
            if closed.day not in known:
                merged.append(closed)
                known.add(closed.day)
        return BusinessCalendar(
            weekly_hours=self.weekly_hours,
            service_durations=self.service_durations,
            closed_dates=merged,
            timezone=self.timezone,
        )
