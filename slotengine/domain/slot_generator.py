"""
Candidate slot enumeration within business hours.

Pure domain logic: no ledger access, no clock. Filtering of conflicts and
short-notice slots happens in later stages.
"""

from datetime import date
from typing import List

from .calendar import BusinessCalendar
from .models import ServiceType, Slot


class SlotGenerator:
    """
    Enumerates candidate start times for a date/service pair.

    Algorithm:
    1. Resolve business hours for the date (closed -> no candidates)
    2. Resolve the service duration
    3. Step from opening time in ``granularity_minutes`` increments
    4. Keep every start whose slot ends at or before closing time
    """

    def __init__(self, calendar: BusinessCalendar, granularity_minutes: int = 30):
        if granularity_minutes <= 0:
            raise ValueError(
                f"Slot granularity must be positive, got {granularity_minutes}"
            )
        self.calendar = calendar
        self.granularity_minutes = granularity_minutes

    def generate_candidates(self, day: date, service_type: "ServiceType | str") -> List[Slot]:
        """
        Generate candidate slots in ascending order.

        Args:
            day: Local calendar date
            service_type: Requested service

        Returns:
            Slots from opening time up to (closing time - duration) inclusive;
            an empty list when the day is closed
        """
        duration = self.calendar.duration_for(service_type)
        hours = self.calendar.hours_for(day)

        if hours is None:
            return []

        candidates: List[Slot] = []
        current = hours.start
        latest_start = hours.end.subtract(minutes=duration)

        while current <= latest_start:
            candidates.append(Slot.starting_at(current, duration))
            current = current.add(minutes=self.granularity_minutes)

        return candidates

    def is_on_grid(self, day: date, slot: Slot) -> bool:
        """Check whether a start time is one the generator would produce."""
        hours = self.calendar.hours_for(day)
        if hours is None or slot.start < hours.start:
            return False
        offset_minutes = (slot.start - hours.start).total_seconds() / 60
        return offset_minutes % self.granularity_minutes == 0
