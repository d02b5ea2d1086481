"""
Wiring of configuration, adapters and the availability engine.
"""

from __future__ import annotations

from typing import Optional

from ..adapters.booking_ledger import HttpBookingLedger
from ..adapters.calendar_store import HttpCalendarStore, StaticCalendarStore
from ..adapters.mock_booking_ledger import MockBookingLedger
from ..config import EngineConfig
from ..domain.advance_notice import AdvanceNoticeFilter
from ..domain.clock import Clock, SystemClock
from ..domain.exceptions import ConfigurationError
from .availability_engine import AvailabilityEngine, BookingLedgerProtocol


def build_booking_ledger(config: EngineConfig, mock: bool = False) -> BookingLedgerProtocol:
    """
    Select the ledger adapter for the configuration.

    Mock mode, or a configured mock data file without a base URL, uses the
    JSON-backed mock ledger.
    """
    ledger_config = config.ledger
    if mock or (ledger_config.mock_data_file and not ledger_config.base_url):
        return MockBookingLedger(
            data_file=ledger_config.mock_data_file,
            timezone=config.timezone,
        )
    if not ledger_config.base_url:
        raise ConfigurationError(
            "No booking ledger configured: set ledger.base_url or ledger.mock_data_file"
        )
    return HttpBookingLedger(
        base_url=ledger_config.base_url,
        timeout_seconds=ledger_config.timeout_seconds,
    )


def build_engine(
    config: EngineConfig,
    *,
    booking_ledger: Optional[BookingLedgerProtocol] = None,
    clock: Optional[Clock] = None,
    mock: bool = False,
) -> AvailabilityEngine:
    """Build an engine from configuration, allowing collaborators to be overridden."""
    calendar = config.build_calendar()
    if config.calendar_store.base_url:
        calendar_store = HttpCalendarStore(
            base_calendar=calendar,
            base_url=config.calendar_store.base_url,
            timeout_seconds=config.calendar_store.timeout_seconds,
        )
    else:
        calendar_store = StaticCalendarStore(calendar)

    return AvailabilityEngine(
        calendar_store=calendar_store,
        booking_ledger=booking_ledger or build_booking_ledger(config, mock=mock),
        clock=clock or SystemClock(config.timezone),
        practitioners=config,
        slot_interval_minutes=config.slot_interval_minutes,
        notice_filter=AdvanceNoticeFilter(
            first_booking_notice_hours=config.first_booking_notice_hours,
            subsequent_booking_notice_hours=config.subsequent_booking_notice_hours,
        ),
        booking_horizon_days=config.booking_horizon_days,
    )
