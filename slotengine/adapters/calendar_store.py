"""
Calendar stores: where the business calendar configuration is read from.
"""

import logging
from datetime import date
from typing import Any, List, Optional

import pendulum
import requests

from ..domain.calendar import BusinessCalendar
from ..domain.exceptions import UpstreamUnavailable
from ..domain.models import ClosedDate

logger = logging.getLogger(__name__)


class StaticCalendarStore:
    """Serves the calendar built from local configuration."""

    def __init__(self, calendar: BusinessCalendar):
        self.calendar = calendar

    def load_calendar(self, start: date, end: date) -> BusinessCalendar:
        return self.calendar


class HttpCalendarStore:
    """
    Merges configured weekly hours with closed dates managed in the admin API.

    Uses ``GET {base_url}/closed-dates?start_date=...&end_date=...``, the same
    endpoint the admin closed-dates screen writes through. Closed dates are
    fetched on every call so a closure entered by an admin applies at once.
    """

    def __init__(
        self,
        base_calendar: BusinessCalendar,
        base_url: str,
        timeout_seconds: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_calendar = base_calendar
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session or requests.Session()

    def load_calendar(self, start: date, end: date) -> BusinessCalendar:
        """
        Build a calendar whose closed-date set covers ``[start, end]``.

        Raises:
            UpstreamUnavailable: If the closed-dates endpoint cannot be used
        """
        url = f"{self.base_url}/closed-dates"
        params = {"start_date": start.isoformat(), "end_date": end.isoformat()}

        try:
            response = self.session.get(url, params=params, timeout=self.timeout_seconds)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as exc:
            raise UpstreamUnavailable(f"Calendar store unreachable: {exc}") from exc
        except ValueError as exc:
            raise UpstreamUnavailable(f"Calendar store returned invalid JSON: {exc}") from exc

        closed = self._parse_closed_dates(data)
        logger.debug("Calendar store returned %d closed date(s)", len(closed))
        return self.base_calendar.with_closed_dates(closed)

    def _parse_closed_dates(self, response_data: Any) -> List[ClosedDate]:
        """
        Parse the closed-dates response.

        Response format:
        {
            "success": true,
            "data": {
                "closed_dates": ["2025-07-04", {"date": "2025-07-20", "reason": "Closed"}]
            }
        }
        """
        try:
            entries = response_data["data"]["closed_dates"]
        except (KeyError, TypeError) as exc:
            raise UpstreamUnavailable("Calendar store response has no closed_dates") from exc

        closed: List[ClosedDate] = []
        for entry in entries:
            if isinstance(entry, dict):
                raw_day, reason = entry.get("date"), str(entry.get("reason") or "")
            else:
                raw_day, reason = entry, ""
            try:
                day = pendulum.from_format(str(raw_day), "YYYY-MM-DD").date()
            except ValueError as exc:
                raise UpstreamUnavailable(f"Invalid closed date: {raw_day!r}") from exc
            closed.append(ClosedDate(day=day, reason=reason))

        return closed
