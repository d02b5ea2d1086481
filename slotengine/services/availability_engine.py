"""
Application service computing bookable slots.

The engine coordinates a calendar store, a booking ledger and a clock, and
delegates candidate generation and filtering to the domain layer. All
collaborators are typed as protocols so real adapters and test stubs plug in
the same way.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import List, Optional, Protocol, Sequence

from pendulum import DateTime

from ..domain.advance_notice import AdvanceNoticeFilter
from ..domain.calendar import BusinessCalendar
from ..domain.clock import Clock, parse_local_date, parse_wall_time, to_local_instant
from ..domain.conflict_filter import ConflictFilter
from ..domain.exceptions import LogicInvariantViolation, ValidationError
from ..domain.models import (
    AvailabilityRequest,
    AvailabilityResult,
    Booking,
    ClosedDate,
    DayStatus,
    Practitioner,
    ServiceType,
    Slot,
    SlotCheck,
    TimeRange,
)
from ..domain.slot_generator import SlotGenerator

logger = logging.getLogger(__name__)


class BookingLedgerProtocol(Protocol):
    """Read-only view of existing reservations."""

    def get_bookings(self, practitioner_id: str, day: date, timezone: str) -> List[Booking]:
        """Return bookings for the practitioner on the local date."""


class CalendarStoreProtocol(Protocol):
    """Supplies the admin-managed business calendar."""

    def load_calendar(self, start: date, end: date) -> BusinessCalendar:
        """Return a calendar valid at least for ``[start, end]``."""


class PractitionerDirectoryProtocol(Protocol):
    def find_practitioner(self, practitioner_id: str) -> Optional[Practitioner]:
        """Return the practitioner or None when unknown."""


@dataclass(frozen=True)
class _ValidatedRequest:
    practitioner: Practitioner
    day: date
    service_type: ServiceType


class AvailabilityEngine:
    """
    Orchestrates calendar lookup, slot generation, conflict and notice filtering.

    Holds no state between calls: calendar and ledger are re-read on every
    request so a booking committed a moment earlier is visible immediately.
    """

    def __init__(
        self,
        *,
        calendar_store: CalendarStoreProtocol,
        booking_ledger: BookingLedgerProtocol,
        clock: Clock,
        practitioners: PractitionerDirectoryProtocol,
        slot_interval_minutes: int = 30,
        notice_filter: Optional[AdvanceNoticeFilter] = None,
        booking_horizon_days: Optional[int] = 90,
    ) -> None:
        self._calendar_store = calendar_store
        self._booking_ledger = booking_ledger
        self._clock = clock
        self._practitioners = practitioners
        self._slot_interval_minutes = slot_interval_minutes
        self._notice_filter = notice_filter or AdvanceNoticeFilter()
        self._booking_horizon_days = booking_horizon_days

    def compute_availability(self, request: AvailabilityRequest) -> AvailabilityResult:
        """
        Compute the slots that may be offered for one practitioner, date and service.

        Raises:
            ValidationError: If the request is malformed
            UpstreamUnavailable: If the calendar store or ledger is unreachable
            LogicInvariantViolation: If a surviving slot breaks its contract
        """
        validated = self._validate(request)
        day = validated.day

        calendar = self._calendar_store.load_calendar(day, day)
        duration = calendar.duration_for(validated.service_type)

        if not calendar.is_open(day):
            logger.debug("%s is closed: %s", day, calendar.closure_reason(day))
            return AvailabilityResult(
                day=day,
                is_business_day=False,
                closure_reason=calendar.closure_reason(day),
            )

        hours = calendar.hours_for(day)
        generator = SlotGenerator(calendar, self._slot_interval_minutes)
        candidates = generator.generate_candidates(day, validated.service_type)

        bookings = self._fetch_bookings(validated.practitioner.id, day, calendar.timezone)
        conflict_filter = ConflictFilter(calendar.duration_for)
        now = self._clock.now()

        free = conflict_filter.filter(candidates, bookings, validated.practitioner.id)
        offered = self._notice_filter.filter(free, bookings, now)
        threshold = self._notice_filter.threshold_for(bookings)

        logger.debug(
            "%s %s: %d candidate(s), %d free, %d offered (notice %s, %d booking(s))",
            day,
            validated.service_type.value,
            len(candidates),
            len(free),
            len(offered),
            threshold,
            len(bookings),
        )

        self._verify_postconditions(offered, hours, conflict_filter, bookings, now, duration)

        return AvailabilityResult(
            day=day,
            is_business_day=True,
            available_slots=offered,
            booked_slots=[booking.start.format("HH:mm") for booking in bookings],
            business_hours=hours,
            notice_hours=threshold.total_seconds() / 3600,
        )

    def check_slot(self, request: AvailabilityRequest, start_time: str) -> SlotCheck:
        """
        Advisory check of one start time, as run by the booking write path.

        The authoritative reserve-if-free step still happens at write time.
        """
        validated = self._validate(request)
        wall_time = parse_wall_time(start_time)
        day = validated.day
        label = wall_time.strftime("%H:%M")

        calendar = self._calendar_store.load_calendar(day, day)
        duration = calendar.duration_for(validated.service_type)

        if not calendar.is_open(day):
            return SlotCheck(day=day, start_time=label, available=False, reason="closed")

        slot = Slot.starting_at(to_local_instant(day, wall_time, calendar.timezone), duration)
        if not calendar.hours_for(day).contains(slot.time_range):
            return SlotCheck(
                day=day, start_time=label, available=False, reason="outside_business_hours"
            )

        generator = SlotGenerator(calendar, self._slot_interval_minutes)
        if not generator.is_on_grid(day, slot):
            return SlotCheck(day=day, start_time=label, available=False, reason="not_on_grid")

        bookings = self._fetch_bookings(validated.practitioner.id, day, calendar.timezone)
        conflict_filter = ConflictFilter(calendar.duration_for)
        if not conflict_filter.filter([slot], bookings, validated.practitioner.id):
            return SlotCheck(day=day, start_time=label, available=False, reason="conflict")

        if not self._notice_filter.filter([slot], bookings, self._clock.now()):
            return SlotCheck(
                day=day, start_time=label, available=False, reason="insufficient_notice"
            )

        return SlotCheck(day=day, start_time=label, available=True)

    def business_days(self, start: "date | str", end: "date | str") -> List[DayStatus]:
        """Open/closed marking for each day in ``[start, end]``, for calendar rendering."""
        first, last = self._validate_range(start, end)
        calendar = self._calendar_store.load_calendar(first, last)

        statuses: List[DayStatus] = []
        current = first
        while current <= last:
            statuses.append(
                DayStatus(
                    day=current,
                    is_business_day=calendar.is_open(current),
                    closure_reason=calendar.closure_reason(current),
                    business_hours=calendar.hours_for(current),
                )
            )
            current += timedelta(days=1)
        return statuses

    def closed_dates(self, start: "date | str", end: "date | str") -> List[ClosedDate]:
        """Explicit closures in ``[start, end]`` for the admin closed-dates screen."""
        first, last = self._validate_range(start, end)
        calendar = self._calendar_store.load_calendar(first, last)
        return calendar.closed_dates_between(first, last)

    def _validate(self, request: AvailabilityRequest) -> _ValidatedRequest:
        """Reject bad input before any computation or I/O."""
        practitioner_id = str(request.practitioner_id or "").strip()
        if not practitioner_id:
            raise ValidationError("practitioner_id is required")

        practitioner = self._practitioners.find_practitioner(practitioner_id)
        if practitioner is None:
            raise ValidationError(f"Unknown practitioner: '{practitioner_id}'")

        day = parse_local_date(request.day)
        service_type = ServiceType.parse(request.service_type)

        if self._booking_horizon_days is not None:
            today = self._clock.now().date()
            horizon = today + timedelta(days=self._booking_horizon_days)
            if day > horizon:
                raise ValidationError(
                    f"Date {day.isoformat()} is beyond the booking horizon "
                    f"({self._booking_horizon_days} days)"
                )

        return _ValidatedRequest(practitioner=practitioner, day=day, service_type=service_type)

    def _validate_range(self, start: "date | str", end: "date | str") -> tuple[date, date]:
        first = parse_local_date(start)
        last = parse_local_date(end)
        if last < first:
            raise ValidationError("end_date must not be before start_date")

        max_days = self._booking_horizon_days or 366
        if (last - first).days > max_days:
            raise ValidationError(f"Date range must not exceed {max_days} days")
        return first, last

    def _fetch_bookings(self, practitioner_id: str, day: date, timezone: str) -> List[Booking]:
        """
        Fetch the day's active bookings for the practitioner.

        The ledger may return more than asked for; anything for another
        practitioner, another local date, or in an inactive status is dropped.
        Starts are returned in the practitioner's timezone.
        """
        bookings = self._booking_ledger.get_bookings(practitioner_id, day, timezone)
        local = [replace(booking, start=booking.start.in_timezone(timezone)) for booking in bookings]
        active = [
            booking
            for booking in local
            if booking.is_active
            and booking.practitioner_id == practitioner_id
            and booking.start.date() == day
        ]
        return sorted(active, key=lambda booking: booking.start)

    def _verify_postconditions(
        self,
        slots: Sequence[Slot],
        hours: Optional[TimeRange],
        conflict_filter: ConflictFilter,
        bookings: Sequence[Booking],
        now: DateTime,
        duration: int,
    ) -> None:
        """Every offered slot must satisfy its own contract; a failure is a defect."""
        booked = conflict_filter.booked_ranges(bookings)
        earliest = self._notice_filter.earliest_start(now, bookings)

        for slot in slots:
            if slot.duration_minutes() != duration:
                raise LogicInvariantViolation(
                    f"Slot {slot.time_range} does not last {duration} minutes"
                )
            if hours is None or not hours.contains(slot.time_range):
                raise LogicInvariantViolation(
                    f"Slot {slot.time_range} lies outside business hours {hours}"
                )
            if conflict_filter.conflicts(slot, booked):
                raise LogicInvariantViolation(
                    f"Slot {slot.time_range} overlaps an existing booking"
                )
            if slot.start < earliest:
                raise LogicInvariantViolation(
                    f"Slot {slot.time_range} violates the advance-notice threshold"
                )
