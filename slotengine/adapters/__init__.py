"""
Adapters layer - Booking ledger and calendar store integrations.
"""

from .booking_ledger import HttpBookingLedger
from .calendar_store import HttpCalendarStore, StaticCalendarStore
from .mock_booking_ledger import MockBookingLedger

__all__ = ["HttpBookingLedger", "HttpCalendarStore", "MockBookingLedger", "StaticCalendarStore"]
