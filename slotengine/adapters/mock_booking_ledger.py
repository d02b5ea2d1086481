"""
Mock booking ledger for running and testing without a booking backend.
"""

import json
import logging
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ..domain.models import Booking, BookingStatus
from .booking_ledger import booking_from_record

logger = logging.getLogger(__name__)

DEFAULT_DATA_FILE = Path(__file__).parent / "mock_bookings.json"


class MockBookingLedger:
    """
    In-process ledger that loads reservations from a JSON file or a list.

    ``add_booking`` and ``cancel_booking`` stand in for the external write
    path so read-after-write behaviour can be exercised.
    """

    def __init__(
        self,
        bookings: Optional[Iterable[Booking]] = None,
        data_file: Optional[Path] = None,
        timezone: str = "America/Chicago",
    ):
        """
        Initialize the mock ledger.

        Args:
            bookings: Bookings to start with
            data_file: JSON file with booking records (ignored when bookings given)
            timezone: Timezone for naive timestamps in the JSON file
        """
        self.timezone = timezone
        self.calls: List[Dict[str, str]] = []

        if bookings is not None:
            self._bookings: List[Booking] = list(bookings)
        else:
            self._bookings = self._load_records(data_file or DEFAULT_DATA_FILE)

    def _load_records(self, data_file: Path) -> List[Booking]:
        """Load bookings from a JSON file, skipping invalid records."""
        if not data_file.exists():
            logger.warning("Mock booking file %s not found; starting empty", data_file)
            return []

        with open(data_file, "r", encoding="utf-8") as f:
            records: List[Dict[str, Any]] = json.load(f)

        bookings: List[Booking] = []
        for record in records:
            try:
                bookings.append(booking_from_record(record, self.timezone))
            except ValueError as exc:
                logger.warning("Skipping invalid mock booking %r: %s", record.get("id"), exc)

        return bookings

    def get_bookings(self, practitioner_id: str, day: date, timezone: str) -> List[Booking]:
        """Return every booking (any status) for the practitioner on the local date."""
        self.calls.append({"practitioner_id": practitioner_id, "date": day.isoformat()})
        return [
            booking
            for booking in self._bookings
            if booking.practitioner_id == practitioner_id
            and booking.start.in_timezone(timezone).date() == day
        ]

    def add_booking(self, booking: Booking) -> None:
        self._bookings.append(booking)

    def cancel_booking(self, booking_id: str) -> bool:
        """Mark a booking cancelled. Returns False when the id is unknown."""
        for index, booking in enumerate(self._bookings):
            if booking.booking_id == booking_id:
                self._bookings[index] = replace(booking, status=BookingStatus.CANCELLED)
                return True
        return False
