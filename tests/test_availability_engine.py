"""
Tests for the availability engine.
"""

from datetime import date, time
from typing import List, Optional

import pendulum
import pytest

from slotengine.adapters.calendar_store import StaticCalendarStore
from slotengine.adapters.mock_booking_ledger import MockBookingLedger
from slotengine.domain.advance_notice import AdvanceNoticeFilter
from slotengine.domain.calendar import BusinessCalendar
from slotengine.domain.clock import FixedClock
from slotengine.domain.exceptions import (
    LogicInvariantViolation,
    UnknownServiceType,
    UpstreamUnavailable,
    ValidationError,
)
from slotengine.domain.models import (
    AvailabilityRequest,
    Booking,
    BookingStatus,
    ClosedDate,
    OpeningHours,
    Practitioner,
    ServiceType,
)
from slotengine.services.availability_engine import AvailabilityEngine

TZ = "America/Chicago"


class StubDirectory:
    """Knows practitioners "1" and "2"."""

    def find_practitioner(self, practitioner_id: str) -> Optional[Practitioner]:
        if practitioner_id in ("1", "2"):
            return Practitioner(id=practitioner_id, name=f"Practitioner {practitioner_id}")
        return None


class RawLedger:
    """Returns its bookings unfiltered, whatever is asked for."""

    def __init__(self, bookings: List[Booking]):
        self.bookings = bookings

    def get_bookings(self, practitioner_id, day, timezone):
        return list(self.bookings)


class FailingLedger:
    def get_bookings(self, practitioner_id, day, timezone):
        raise UpstreamUnavailable("Booking ledger unreachable: connection refused")


class NoNoticeFilter(AdvanceNoticeFilter):
    """Broken filter that lets everything through."""

    def filter(self, candidates, bookings, now):
        return list(candidates)


def _build_calendar(service_durations=None) -> BusinessCalendar:
    hours = OpeningHours(open_time=time(9, 0), close_time=time(17, 0))
    return BusinessCalendar(
        weekly_hours={0: hours, 2: hours, 4: hours, 5: hours},
        service_durations=service_durations or {
            ServiceType.SIXTY_MINUTES: 60,
            ServiceType.NINETY_MINUTES: 90,
            ServiceType.ONE_TWENTY_MINUTES: 120,
            ServiceType.FASCIAFLOW: 90,
            ServiceType.CONSULTATION: 30,
            ServiceType.FOLLOW_UP: 30,
        },
        closed_dates=[ClosedDate(day=date(2025, 7, 4), reason="Independence Day")],
        timezone=TZ,
    )


def _booking(start: str, service=ServiceType.SIXTY_MINUTES, status=BookingStatus.SCHEDULED,
             practitioner_id="1", booking_id=None) -> Booking:
    return Booking(
        practitioner_id=practitioner_id,
        service_type=service,
        start=pendulum.parse(start, tz=TZ),
        status=status,
        booking_id=booking_id,
    )


def _build_engine(now: str, bookings=(), ledger=None, notice_filter=None, calendar=None):
    ledger = ledger if ledger is not None else MockBookingLedger(bookings=list(bookings), timezone=TZ)
    engine = AvailabilityEngine(
        calendar_store=StaticCalendarStore(calendar or _build_calendar()),
        booking_ledger=ledger,
        clock=FixedClock(pendulum.parse(now, tz=TZ)),
        practitioners=StubDirectory(),
        slot_interval_minutes=30,
        notice_filter=notice_filter,
        booking_horizon_days=90,
    )
    return engine, ledger


def _request(day="2025-07-25", service="60min", practitioner_id="1") -> AvailabilityRequest:
    return AvailabilityRequest(practitioner_id=practitioner_id, day=day, service_type=service)


class TestComputeAvailability:
    """Scenario tests for compute_availability."""

    def test_first_booking_of_day_far_ahead(self):
        """Twelve hours' notice before 09:00 leaves the whole day open."""
        engine, _ = _build_engine("2025-07-24 20:00")

        result = engine.compute_availability(_request())

        assert result.is_business_day
        assert len(result.available_slots) == 15
        assert result.slot_labels[0] == "09:00"
        assert result.slot_labels[-1] == "16:00"
        assert result.booked_slots == []
        assert result.notice_hours == 12

    def test_first_booking_of_day_too_late(self):
        engine, _ = _build_engine("2025-07-25 07:00")

        result = engine.compute_availability(_request())

        assert result.is_business_day
        assert result.available_slots == []

    def test_day_with_existing_booking_relaxes_notice(self):
        engine, _ = _build_engine("2025-07-25 07:00", [_booking("2025-07-25 10:00")])

        result = engine.compute_availability(_request())

        expected = ["09:00"] + [
            f"{hour:02d}:{minute:02d}"
            for hour in range(11, 17)
            for minute in (0, 30)
            if (hour, minute) <= (16, 0)
        ]
        assert result.slot_labels == expected
        assert result.booked_slots == ["10:00"]
        assert result.notice_hours == 1

    def test_holiday(self):
        engine, ledger = _build_engine("2025-07-01 12:00")

        result = engine.compute_availability(_request(day="2025-07-04"))

        assert not result.is_business_day
        assert result.available_slots == []
        assert result.closure_reason == "Independence Day"
        assert ledger.calls == []

    def test_weekly_closed_day(self):
        engine, ledger = _build_engine("2025-07-24 20:00")

        result = engine.compute_availability(_request(day="2025-07-27"))

        assert not result.is_business_day
        assert result.closure_reason == "Sundays are closed"
        assert ledger.calls == []

    def test_first_booking_boundaries(self):
        at_boundary, _ = _build_engine("2025-07-24 21:00")
        one_minute_late, _ = _build_engine("2025-07-24 21:01")

        assert at_boundary.compute_availability(_request()).slot_labels[0] == "09:00"
        assert one_minute_late.compute_availability(_request()).slot_labels[0] == "09:30"

    def test_relaxed_boundaries(self):
        booked = [_booking("2025-07-25 14:00")]
        at_boundary, _ = _build_engine("2025-07-25 08:00", booked)
        one_minute_late, _ = _build_engine("2025-07-25 08:01", booked)

        assert at_boundary.compute_availability(_request()).slot_labels[0] == "09:00"
        assert one_minute_late.compute_availability(_request()).slot_labels[0] == "09:30"

    def test_cancelled_booking_neither_blocks_nor_relaxes(self):
        engine, _ = _build_engine(
            "2025-07-24 20:00",
            [_booking("2025-07-25 10:00", status=BookingStatus.CANCELLED)],
        )

        result = engine.compute_availability(_request())

        assert "10:00" in result.slot_labels
        assert result.booked_slots == []
        assert result.notice_hours == 12

    def test_other_practitioners_and_dates_are_ignored(self):
        ledger = RawLedger([
            _booking("2025-07-25 10:00", practitioner_id="2"),
            _booking("2025-07-26 10:00"),
        ])
        engine, _ = _build_engine("2025-07-24 20:00", ledger=ledger)

        result = engine.compute_availability(_request())

        assert len(result.available_slots) == 15
        assert result.notice_hours == 12

    def test_longer_booking_blocks_its_full_length(self):
        engine, _ = _build_engine(
            "2025-07-24 20:00",
            [_booking("2025-07-25 10:00", service=ServiceType.NINETY_MINUTES)],
        )

        result = engine.compute_availability(_request())

        for label in ("09:30", "10:00", "10:30", "11:00"):
            assert label not in result.slot_labels
        assert "11:30" in result.slot_labels

    def test_service_aliases_are_accepted(self):
        engine, _ = _build_engine("2025-07-24 20:00")

        canonical = engine.compute_availability(_request(service="90min"))
        alias = engine.compute_availability(_request(service="integrative-touch-90"))

        assert canonical.slot_labels == alias.slot_labels
        assert canonical.slot_labels[-1] == "15:30"

    def test_utc_booking_reported_in_local_time(self):
        """A ledger instant in UTC is shown and blocked at its Chicago wall-clock time."""
        utc_start = pendulum.parse("2025-07-25 10:00", tz=TZ).in_timezone("UTC")
        ledger = RawLedger([Booking(practitioner_id="1", service_type=ServiceType.SIXTY_MINUTES,
                                    start=utc_start)])
        engine, _ = _build_engine("2025-07-25 07:00", ledger=ledger)

        result = engine.compute_availability(_request())

        assert result.booked_slots == ["10:00"]
        assert result.slot_labels[0] == "09:00"
        assert "10:00" not in result.slot_labels
        assert result.notice_hours == 1

    def test_explicit_duration_covers_unoffered_service(self):
        """A booking carrying its own length does not need its service to be offered."""
        calendar = _build_calendar({ServiceType.SIXTY_MINUTES: 60})
        booking = Booking(
            practitioner_id="1",
            service_type=ServiceType.FOLLOW_UP,
            start=pendulum.parse("2025-07-25 10:00", tz=TZ),
            duration_minutes=30,
        )
        engine, _ = _build_engine("2025-07-24 20:00", [booking], calendar=calendar)

        result = engine.compute_availability(_request())

        assert result.booked_slots == ["10:00"]
        assert "09:00" in result.slot_labels
        assert "09:30" not in result.slot_labels
        assert "10:00" not in result.slot_labels
        assert "10:30" in result.slot_labels

    def test_booking_without_known_duration_is_an_upstream_error(self):
        calendar = _build_calendar({ServiceType.SIXTY_MINUTES: 60})
        engine, _ = _build_engine(
            "2025-07-24 20:00",
            [_booking("2025-07-25 10:00", service=ServiceType.FOLLOW_UP)],
            calendar=calendar,
        )

        with pytest.raises(UpstreamUnavailable):
            engine.compute_availability(_request())


class TestAvailabilityProperties:
    """Properties every offered slot must satisfy."""

    @pytest.mark.parametrize("service, duration", [
        ("60min", 60), ("90min", 90), ("120min", 120), ("consultation", 30),
    ])
    def test_offered_slots_respect_their_contract(self, service, duration):
        booked = [
            _booking("2025-07-25 10:00"),
            _booking("2025-07-25 13:30", service=ServiceType.NINETY_MINUTES),
        ]
        booked_ranges = [
            (booked[0].start, booked[0].start.add(minutes=60)),
            (booked[1].start, booked[1].start.add(minutes=90)),
        ]
        engine, _ = _build_engine("2025-07-25 07:00", booked)
        hours_start = pendulum.parse("2025-07-25 09:00", tz=TZ)
        hours_end = pendulum.parse("2025-07-25 17:00", tz=TZ)
        earliest = pendulum.parse("2025-07-25 08:00", tz=TZ)

        result = engine.compute_availability(_request(service=service))

        starts = [slot.start for slot in result.available_slots]
        assert starts == sorted(set(starts))
        for slot in result.available_slots:
            assert slot.duration_minutes() == duration
            assert hours_start <= slot.start and slot.end <= hours_end
            assert slot.start >= earliest
            for busy_start, busy_end in booked_ranges:
                assert slot.end <= busy_start or slot.start >= busy_end

    def test_repeated_queries_are_identical(self):
        engine, _ = _build_engine("2025-07-25 07:00", [_booking("2025-07-25 10:00")])

        first = engine.compute_availability(_request())
        second = engine.compute_availability(_request())

        assert first.to_payload() == second.to_payload()

    def test_first_booking_only_opens_more_short_notice_slots(self):
        """Adding a booking can only remove slots it overlaps or add relaxed ones."""
        engine, ledger = _build_engine("2025-07-25 07:00")
        before = set(engine.compute_availability(_request()).slot_labels)

        ledger.add_booking(_booking("2025-07-25 12:00", booking_id="b-1"))
        after = set(engine.compute_availability(_request()).slot_labels)

        assert before <= after | {"11:30", "12:00", "12:30"}
        assert "09:00" in after
        assert "12:00" not in after

    def test_booking_is_visible_immediately(self):
        engine, ledger = _build_engine("2025-07-24 20:00")

        ledger.add_booking(_booking("2025-07-25 10:00", booking_id="b-1"))
        result = engine.compute_availability(_request())
        assert "10:00" not in result.slot_labels

        ledger.cancel_booking("b-1")
        result = engine.compute_availability(_request())
        assert "10:00" in result.slot_labels


class TestValidation:
    """Malformed requests are rejected before any I/O."""

    @pytest.mark.parametrize("practitioner_id", [None, "", "   "])
    def test_missing_practitioner(self, practitioner_id):
        engine, ledger = _build_engine("2025-07-24 20:00")

        with pytest.raises(ValidationError, match="practitioner_id"):
            engine.compute_availability(_request(practitioner_id=practitioner_id))

        assert ledger.calls == []

    def test_unknown_practitioner(self):
        engine, ledger = _build_engine("2025-07-24 20:00")

        with pytest.raises(ValidationError, match="Unknown practitioner"):
            engine.compute_availability(_request(practitioner_id="99"))

        assert ledger.calls == []

    @pytest.mark.parametrize("day", [None, "", "2025/07/25", "2025-02-30", "tomorrow"])
    def test_malformed_date(self, day):
        engine, ledger = _build_engine("2025-07-24 20:00")

        with pytest.raises(ValidationError):
            engine.compute_availability(_request(day=day))

        assert ledger.calls == []

    def test_unknown_service(self):
        engine, ledger = _build_engine("2025-07-24 20:00")

        with pytest.raises(UnknownServiceType):
            engine.compute_availability(_request(service="hot-stones"))

        assert ledger.calls == []

    def test_booking_horizon(self):
        engine, _ = _build_engine("2025-07-24 20:00")

        assert engine.compute_availability(_request(day="2025-10-22")).is_business_day
        with pytest.raises(ValidationError, match="horizon"):
            engine.compute_availability(_request(day="2025-10-24"))

    def test_past_date_has_no_slots(self):
        engine, _ = _build_engine("2025-07-24 20:00")

        result = engine.compute_availability(_request(day="2025-07-23"))

        assert result.is_business_day
        assert result.available_slots == []


class TestFailures:
    """Upstream failures propagate and broken filters are caught."""

    def test_ledger_failure_is_not_an_empty_day(self):
        engine, _ = _build_engine("2025-07-24 20:00", ledger=FailingLedger())

        with pytest.raises(UpstreamUnavailable):
            engine.compute_availability(_request())

    def test_closed_day_does_not_need_ledger(self):
        engine, _ = _build_engine("2025-07-24 20:00", ledger=FailingLedger())

        result = engine.compute_availability(_request(day="2025-07-27"))

        assert not result.is_business_day

    def test_postcondition_violation_raises(self):
        engine, _ = _build_engine("2025-07-25 07:00", notice_filter=NoNoticeFilter())

        with pytest.raises(LogicInvariantViolation, match="advance-notice"):
            engine.compute_availability(_request())


class TestCheckSlot:
    """Tests for the single start time check."""

    @pytest.mark.parametrize("start_time, available, reason", [
        ("10:00", True, None),
        ("16:00", True, None),
        ("10:15", False, "not_on_grid"),
        ("16:30", False, "outside_business_hours"),
        ("08:00", False, "outside_business_hours"),
    ])
    def test_open_day(self, start_time, available, reason):
        engine, _ = _build_engine("2025-07-24 20:00")

        verdict = engine.check_slot(_request(), start_time)

        assert verdict.available is available
        assert verdict.reason == reason
        assert verdict.start_time == start_time

    def test_closed_day(self):
        engine, _ = _build_engine("2025-07-01 12:00")

        verdict = engine.check_slot(_request(day="2025-07-04"), "10:00")

        assert not verdict.available
        assert verdict.reason == "closed"

    def test_conflict(self):
        engine, _ = _build_engine("2025-07-24 20:00", [_booking("2025-07-25 10:00")])

        verdict = engine.check_slot(_request(), "10:30")

        assert verdict.reason == "conflict"

    def test_insufficient_notice(self):
        engine, _ = _build_engine("2025-07-25 07:00")

        verdict = engine.check_slot(_request(), "09:00")

        assert verdict.reason == "insufficient_notice"

    def test_agrees_with_compute_availability(self):
        engine, _ = _build_engine("2025-07-25 07:00", [_booking("2025-07-25 10:00")])
        offered = set(engine.compute_availability(_request()).slot_labels)

        for hour in range(9, 17):
            for minute in (0, 30):
                label = f"{hour:02d}:{minute:02d}"
                assert engine.check_slot(_request(), label).available is (label in offered)

    def test_malformed_time(self):
        engine, _ = _build_engine("2025-07-24 20:00")

        with pytest.raises(ValidationError):
            engine.check_slot(_request(), "10am")


class TestCalendarQueries:
    """Tests for business_days and closed_dates."""

    def test_business_days(self):
        engine, _ = _build_engine("2025-07-01 12:00")

        statuses = engine.business_days("2025-07-03", "2025-07-07")

        assert [(s.day.isoformat(), s.is_business_day) for s in statuses] == [
            ("2025-07-03", False),
            ("2025-07-04", False),
            ("2025-07-05", True),
            ("2025-07-06", False),
            ("2025-07-07", True),
        ]
        assert statuses[1].closure_reason == "Independence Day"
        assert statuses[2].business_hours.start.format("HH:mm") == "09:00"

    def test_closed_dates(self):
        engine, _ = _build_engine("2025-07-01 12:00")

        closures = engine.closed_dates(date(2025, 7, 1), date(2025, 7, 31))

        assert closures == [ClosedDate(day=date(2025, 7, 4), reason="Independence Day")]

    def test_reversed_range(self):
        engine, _ = _build_engine("2025-07-01 12:00")

        with pytest.raises(ValidationError):
            engine.business_days("2025-07-10", "2025-07-01")

    def test_range_too_long(self):
        engine, _ = _build_engine("2025-07-01 12:00")

        with pytest.raises(ValidationError, match="must not exceed"):
            engine.closed_dates("2025-01-01", "2025-12-31")
