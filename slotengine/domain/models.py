"""
Domain models for availability calculations.
"""

from dataclasses import dataclass, field
from datetime import date, time
from enum import Enum
from typing import Dict, List, Optional

from pendulum import DateTime

from .exceptions import UnknownServiceType


class ServiceType(str, Enum):
    """
    Closed set of bookable services.

    Durations are not part of the enumeration; they are injected through
    configuration and resolved by ``BusinessCalendar.duration_for``.
    """
    SIXTY_MINUTES = "60min"
    NINETY_MINUTES = "90min"
    ONE_TWENTY_MINUTES = "120min"
    FASCIAFLOW = "fasciaflow"
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow_up"

    @classmethod
    def parse(cls, identifier: "str | ServiceType") -> "ServiceType":
        """
        Normalise a service identifier to a member.

        Accepts the canonical values as well as the legacy spellings used by
        booking forms and the admin dashboard.

        Raises:
            UnknownServiceType: If the identifier is not recognised
        """
        if isinstance(identifier, ServiceType):
            return identifier
        if not isinstance(identifier, str):
            raise UnknownServiceType(f"Unknown service type: {identifier!r}")

        key = identifier.strip().lower()
        try:
            return cls(key)
        except ValueError:
            pass

        alias = SERVICE_ALIASES.get(key)
        if alias is None:
            raise UnknownServiceType(f"Unknown service type: '{identifier}'")
        return alias


SERVICE_ALIASES: Dict[str, ServiceType] = {
    "60min_massage": ServiceType.SIXTY_MINUTES,
    "fascial-release-60": ServiceType.SIXTY_MINUTES,
    "integrative-touch-60": ServiceType.SIXTY_MINUTES,
    "90min_massage": ServiceType.NINETY_MINUTES,
    "fascial-release-90": ServiceType.NINETY_MINUTES,
    "integrative-touch-90": ServiceType.NINETY_MINUTES,
    "120min_massage": ServiceType.ONE_TWENTY_MINUTES,
    "fascia-flow": ServiceType.FASCIAFLOW,
    "fascia_flow": ServiceType.FASCIAFLOW,
    "wellness-consultation": ServiceType.CONSULTATION,
    "follow-up": ServiceType.FOLLOW_UP,
}


class BookingStatus(str, Enum):
    """Lifecycle states a booking can be in."""
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"
    PENDING_APPROVAL = "pending_approval"
    COMP_REQUEST = "comp_request"

    @classmethod
    def parse(cls, value: "str | BookingStatus") -> "BookingStatus":
        """
        Normalise a ledger status, including the older booking-form spellings.

        Raises:
            ValueError: If the status is not recognised
        """
        if isinstance(value, BookingStatus):
            return value

        key = str(value).strip().lower()
        try:
            return cls(key)
        except ValueError:
            pass

        alias = BOOKING_STATUS_ALIASES.get(key)
        if alias is None:
            raise ValueError(f"Unknown booking status: '{value}'")
        return alias

    @property
    def is_active(self) -> bool:
        """Inactive bookings free their slot."""
        return self not in (BookingStatus.CANCELLED, BookingStatus.NO_SHOW)


BOOKING_STATUS_ALIASES: Dict[str, BookingStatus] = {
    "pending": BookingStatus.PENDING_APPROVAL,
    "confirmed": BookingStatus.SCHEDULED,
    "canceled": BookingStatus.CANCELLED,
    "no-show": BookingStatus.NO_SHOW,
}


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another. Touching ranges do not overlap."""
        return self.start < other.end and self.end > other.start

    def contains(self, other: "TimeRange") -> bool:
        """Check if ``other`` lies fully inside this range."""
        return self.start <= other.start and other.end <= self.end

    def __str__(self) -> str:
        return f"{self.start.format('YYYY-MM-DD HH:mm')} - {self.end.format('HH:mm')}"


@dataclass(frozen=True)
class Slot:
    """
    A candidate appointment: start instant plus its implied end.

    Pure value, never persisted.
    """
    start: DateTime
    end: DateTime

    @classmethod
    def starting_at(cls, start: DateTime, duration_minutes: int) -> "Slot":
        return cls(start=start, end=start.add(minutes=duration_minutes))

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start, end=self.end)

    @property
    def label(self) -> str:
        """Zero-padded 24-hour local start time."""
        return self.start.format("HH:mm")

    def duration_minutes(self) -> int:
        return self.time_range.duration_minutes()


@dataclass(frozen=True)
class Booking:
    """
    An existing reservation as reported by the booking ledger.

    ``duration_minutes`` is optional; when absent the engine derives it from
    the service type.
    """
    practitioner_id: str
    service_type: ServiceType
    start: DateTime
    status: BookingStatus = BookingStatus.SCHEDULED
    duration_minutes: Optional[int] = None
    booking_id: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status.is_active

    def time_range(self, duration_minutes: int) -> TimeRange:
        minutes = self.duration_minutes or duration_minutes
        return TimeRange(start=self.start, end=self.start.add(minutes=minutes))


@dataclass(frozen=True)
class Practitioner:
    """Identity only; calendars and ledger partitions are keyed by ``id``."""
    id: str
    name: str = ""

    def display_name(self) -> str:
        return self.name or self.id


@dataclass(frozen=True)
class ClosedDate:
    """A specific calendar date closed regardless of weekday hours."""
    day: date
    reason: str = ""


@dataclass(frozen=True)
class OpeningHours:
    """Open/close wall-clock times for one weekday."""
    open_time: time
    close_time: time

    def __post_init__(self):
        if self.open_time >= self.close_time:
            raise ValueError(
                f"Opening time {self.open_time} must be before closing time {self.close_time}"
            )


@dataclass(frozen=True)
class AvailabilityRequest:
    """
    Explicit request parameters; the engine holds no session state.

    ``day`` and ``service_type`` may be raw strings from the caller; they are
    normalised during validation.
    """
    practitioner_id: str
    day: "date | str"
    service_type: "ServiceType | str"


@dataclass
class AvailabilityResult:
    """Outcome of an availability computation for one date."""
    day: date
    is_business_day: bool
    available_slots: List[Slot] = field(default_factory=list)
    booked_slots: List[str] = field(default_factory=list)
    business_hours: Optional[TimeRange] = None
    closure_reason: Optional[str] = None
    notice_hours: Optional[float] = None

    @property
    def slot_labels(self) -> List[str]:
        return [slot.label for slot in self.available_slots]

    def to_payload(self) -> Dict[str, object]:
        """
        Serialise to the public availability response shape.

        Example:
        {"success": true, "date": "2025-07-25", "isBusinessDay": true,
         "availableSlots": ["09:00", ...], "bookedSlots": ["10:00"],
         "businessHours": {"start": "09:00", "end": "17:00"}}
        """
        hours = None
        if self.business_hours is not None:
            hours = {
                "start": self.business_hours.start.format("HH:mm"),
                "end": self.business_hours.end.format("HH:mm"),
            }

        payload: Dict[str, object] = {
            "success": True,
            "date": self.day.isoformat(),
            "isBusinessDay": self.is_business_day,
            "availableSlots": self.slot_labels,
            "bookedSlots": list(self.booked_slots),
            "businessHours": hours,
        }
        if self.closure_reason:
            payload["closureReason"] = self.closure_reason
        if self.notice_hours is not None:
            payload["noticeHours"] = self.notice_hours
        return payload


@dataclass(frozen=True)
class SlotCheck:
    """Advisory verdict on a single requested start time."""
    day: date
    start_time: str
    available: bool
    reason: Optional[str] = None

    def to_payload(self) -> Dict[str, object]:
        return {
            "success": True,
            "date": self.day.isoformat(),
            "time": self.start_time,
            "available": self.available,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class DayStatus:
    """Open/closed marking of a single day for calendar rendering."""
    day: date
    is_business_day: bool
    closure_reason: Optional[str] = None
    business_hours: Optional[TimeRange] = None

    def to_payload(self) -> Dict[str, object]:
        hours = None
        if self.business_hours is not None:
            hours = {
                "start": self.business_hours.start.format("HH:mm"),
                "end": self.business_hours.end.format("HH:mm"),
            }
        return {
            "date": self.day.isoformat(),
            "isBusinessDay": self.is_business_day,
            "closureReason": self.closure_reason,
            "businessHours": hours,
        }
