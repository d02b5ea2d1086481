"""
Minimum lead-time policy between "now" and an offered slot.

The first appointment of a day needs generous notice so the practitioner
can plan the day; once the day already has a booking, short-notice slots
may be offered. The relaxation applies to the whole day, including slots
earlier than the existing booking.
"""

from datetime import timedelta
from typing import List, Sequence

from pendulum import DateTime

from .models import Booking, Slot

DEFAULT_FIRST_BOOKING_NOTICE_HOURS = 12
DEFAULT_SUBSEQUENT_BOOKING_NOTICE_HOURS = 1


class AdvanceNoticeFilter:
    """Enforces the 12h / 1h advance-notice law (both boundaries inclusive)."""

    def __init__(
        self,
        first_booking_notice_hours: float = DEFAULT_FIRST_BOOKING_NOTICE_HOURS,
        subsequent_booking_notice_hours: float = DEFAULT_SUBSEQUENT_BOOKING_NOTICE_HOURS,
    ):
        if first_booking_notice_hours < 0 or subsequent_booking_notice_hours < 0:
            raise ValueError("Notice periods must not be negative")
        if subsequent_booking_notice_hours > first_booking_notice_hours:
            raise ValueError(
                "Notice for an already-booked day must not exceed the first-booking notice"
            )
        self.first_booking_notice = timedelta(hours=first_booking_notice_hours)
        self.subsequent_booking_notice = timedelta(hours=subsequent_booking_notice_hours)

    @staticmethod
    def has_any_booking(bookings: Sequence[Booking]) -> bool:
        return any(booking.is_active for booking in bookings)

    def threshold_for(self, bookings: Sequence[Booking]) -> timedelta:
        """Minimum lead time that applies given the day's booking state."""
        if self.has_any_booking(bookings):
            return self.subsequent_booking_notice
        return self.first_booking_notice

    def earliest_start(self, now: DateTime, bookings: Sequence[Booking]) -> DateTime:
        return now + self.threshold_for(bookings)

    def filter(
        self,
        candidates: Sequence[Slot],
        bookings: Sequence[Booking],
        now: DateTime,
    ) -> List[Slot]:
        """
        Keep candidates starting at least the applicable threshold after ``now``.

        Args:
            candidates: Slots that survived conflict filtering
            bookings: Existing bookings for the same practitioner and date
            now: Current instant from the clock

        Returns:
            Surviving candidates, original order preserved
        """
        earliest = self.earliest_start(now, bookings)
        return [slot for slot in candidates if slot.start >= earliest]
