"""
Domain layer - Pure availability logic without external dependencies.
"""

from .advance_notice import AdvanceNoticeFilter
from .calendar import BusinessCalendar
from .clock import Clock, FixedClock, SystemClock, to_local_instant
from .conflict_filter import ConflictFilter
from .models import (
    AvailabilityRequest,
    AvailabilityResult,
    Booking,
    BookingStatus,
    ClosedDate,
    OpeningHours,
    Practitioner,
    ServiceType,
    Slot,
    TimeRange,
)
from .slot_generator import SlotGenerator

__all__ = [
    "AdvanceNoticeFilter",
    "AvailabilityRequest",
    "AvailabilityResult",
    "Booking",
    "BookingStatus",
    "BusinessCalendar",
    "Clock",
    "ClosedDate",
    "ConflictFilter",
    "FixedClock",
    "OpeningHours",
    "Practitioner",
    "ServiceType",
    "Slot",
    "SlotGenerator",
    "SystemClock",
    "TimeRange",
    "to_local_instant",
]
