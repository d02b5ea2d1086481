"""
HTTP client for the booking ledger (read-only).
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import UpstreamUnavailable, ValidationError
from ..domain.models import Booking, BookingStatus, ServiceType

logger = logging.getLogger(__name__)


def parse_instant(value: str, timezone: str) -> DateTime:
    """
    Parse an ISO 8601 datetime string into the practitioner's timezone.

    Naive values are interpreted as local wall-clock time, never as UTC.
    """
    dt = pendulum.parse(value, tz=timezone)

    if isinstance(dt, DateTime):
        return dt.in_timezone(timezone)

    raise ValueError(f"Could not parse datetime: {value}")


def booking_from_record(record: Dict[str, Any], timezone: str) -> Booking:
    """
    Convert a ledger record into a ``Booking``.

    Record format:
    {
        "id": "b-1001",
        "practitioner_id": "1",
        "service_type": "60min_massage",
        "start": "2025-07-25T10:00:00",
        "duration": 60,
        "status": "scheduled"
    }

    Raises:
        ValueError: If the record is incomplete or malformed
    """
    try:
        practitioner_id = str(record["practitioner_id"])
        raw_start = record.get("start") or record["scheduled_date"]
        service_type = ServiceType.parse(record["service_type"])
        status = BookingStatus.parse(record.get("status") or BookingStatus.SCHEDULED)
    except KeyError as exc:
        raise ValueError(f"Missing field {exc} in booking record") from exc
    except ValidationError as exc:
        raise ValueError(str(exc)) from exc

    duration = record.get("duration")
    if duration is not None:
        duration = int(duration)
        if duration <= 0:
            raise ValueError(f"Invalid booking duration: {duration}")

    booking_id = record.get("id")
    return Booking(
        practitioner_id=practitioner_id,
        service_type=service_type,
        start=parse_instant(str(raw_start), timezone),
        status=status,
        duration_minutes=duration,
        booking_id=str(booking_id) if booking_id is not None else None,
    )


class HttpBookingLedger:
    """
    Client for the booking ledger HTTP API.

    Uses ``GET {base_url}/bookings?practitioner_id=...&date=...``. The ledger is
    authoritative; every call goes over the wire and nothing is cached.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the ledger client.

        Args:
            base_url: Root URL of the booking API
            timeout_seconds: Per-request timeout
            session: Optional pre-configured requests session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()
        self.headers = {"Accept": "application/json"}

    def get_bookings(self, practitioner_id: str, day: date, timezone: str) -> List[Booking]:
        """
        Get existing bookings for a practitioner on a local date.

        Args:
            practitioner_id: Practitioner identity
            day: Local calendar date
            timezone: IANA timezone used to interpret naive timestamps

        Returns:
            Bookings as reported by the ledger (all statuses)

        Raises:
            UpstreamUnavailable: If the ledger cannot be reached or answers garbage
        """
        url = f"{self.base_url}/bookings"
        params = {"practitioner_id": practitioner_id, "date": day.isoformat()}

        try:
            response = self.session.get(
                url,
                headers=self.headers,
                params=params,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as exc:
            raise UpstreamUnavailable(f"Booking ledger unreachable: {exc}") from exc
        except ValueError as exc:
            raise UpstreamUnavailable(f"Booking ledger returned invalid JSON: {exc}") from exc

        return self._parse_bookings_response(data, timezone)

    def _parse_bookings_response(self, response_data: Any, timezone: str) -> List[Booking]:
        """
        Parse the ledger response into domain bookings.

        Accepts ``{"bookings": [...]}``, ``{"data": {"bookings": [...]}}`` or a
        bare list. A malformed record means the snapshot cannot be trusted, so
        it fails the whole call instead of being skipped.
        """
        records = response_data
        if isinstance(records, dict):
            if isinstance(records.get("data"), dict):
                records = records["data"]
            records = records.get("bookings", [])

        if not isinstance(records, list):
            raise UpstreamUnavailable("Booking ledger response has no booking list")

        bookings: List[Booking] = []
        for record in records:
            if not isinstance(record, dict):
                raise UpstreamUnavailable(f"Unexpected booking record: {record!r}")
            try:
                bookings.append(booking_from_record(record, timezone))
            except ValueError as exc:
                raise UpstreamUnavailable(f"Unparseable booking record: {exc}") from exc

        logger.debug("Ledger returned %d booking(s)", len(bookings))
        return bookings
