"""
Removal of candidates that collide with existing reservations.
"""

from typing import Callable, List, Optional, Sequence

from .exceptions import UnknownServiceType, UpstreamUnavailable
from .models import Booking, ServiceType, Slot, TimeRange

DurationLookup = Callable[[ServiceType], int]


class ConflictFilter:
    """
    Drops candidates whose ``[start, end)`` interval intersects a booking.

    Touching boundaries (``candidate.end == booking.start``) are not
    conflicts. Inactive bookings (cancelled, no-show) are ignored.
    """

    def __init__(self, duration_for: DurationLookup):
        self._duration_for = duration_for

    def occupied(self, booking: Booking) -> TimeRange:
        """
        Interval held by a booking.

        An explicit ledger duration wins; otherwise the configured duration
        of the service applies.

        Raises:
            UpstreamUnavailable: If neither source yields a duration
        """
        if booking.duration_minutes:
            return booking.time_range(booking.duration_minutes)

        try:
            minutes = self._duration_for(booking.service_type)
        except UnknownServiceType as exc:
            raise UpstreamUnavailable(
                f"Booking {booking.booking_id or booking.start} has no known duration: {exc}"
            ) from exc
        return booking.time_range(minutes)

    def booked_ranges(
        self,
        bookings: Sequence[Booking],
        practitioner_id: Optional[str] = None,
    ) -> List[TimeRange]:
        """Resolve the occupied intervals of the active bookings, sorted by start."""
        ranges = [
            self.occupied(booking)
            for booking in bookings
            if booking.is_active
            and (practitioner_id is None or booking.practitioner_id == practitioner_id)
        ]
        return sorted(ranges, key=lambda r: r.start)

    def conflicts(self, slot: Slot, booked: Sequence[TimeRange]) -> bool:
        candidate = slot.time_range
        return any(candidate.overlaps(busy) for busy in booked)

    def filter(
        self,
        candidates: Sequence[Slot],
        bookings: Sequence[Booking],
        practitioner_id: Optional[str] = None,
    ) -> List[Slot]:
        """
        Keep only candidates free of any booking for the practitioner.

        Args:
            candidates: Ordered candidate slots
            bookings: Existing bookings for the date
            practitioner_id: Restrict to this practitioner's bookings

        Returns:
            Surviving candidates, original order preserved
        """
        booked = self.booked_ranges(bookings, practitioner_id)
        if not booked:
            return list(candidates)

        return [slot for slot in candidates if not self.conflicts(slot, booked)]
