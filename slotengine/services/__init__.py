"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability_engine import (
    AvailabilityEngine,
    BookingLedgerProtocol,
    CalendarStoreProtocol,
    PractitionerDirectoryProtocol,
)
from .factory import build_booking_ledger, build_engine

__all__ = [
    "AvailabilityEngine",
    "BookingLedgerProtocol",
    "CalendarStoreProtocol",
    "PractitionerDirectoryProtocol",
    "build_booking_ledger",
    "build_engine",
]
