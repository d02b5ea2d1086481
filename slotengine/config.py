"""
Configuration management using Pydantic models loaded from YAML.
"""

from datetime import date, time
from pathlib import Path
from typing import Dict, List, Optional

import pendulum
import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError
from pydantic import field_validator, model_validator

from .domain.advance_notice import (
    DEFAULT_FIRST_BOOKING_NOTICE_HOURS,
    DEFAULT_SUBSEQUENT_BOOKING_NOTICE_HOURS,
)
from .domain.calendar import BusinessCalendar
from .domain.exceptions import ConfigurationError, ValidationError
from .domain.models import ClosedDate, OpeningHours, Practitioner, ServiceType

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class DayHoursConfig(BaseModel):
    """Opening hours for a single weekday."""
    open: time = time(9, 0)
    close: time = time(17, 0)

    @field_validator("open", "close", mode="before")
    @classmethod
    def parse_wall_clock(cls, value: object) -> object:
        """Accept HH:MM strings; unquoted YAML times such as 17:00 arrive as minutes."""
        if isinstance(value, int) and not isinstance(value, bool):
            hours, minutes = divmod(value, 60)
            return time(hour=hours, minute=minutes)
        return value

    @model_validator(mode="after")
    def validate_hours_order(self) -> "DayHoursConfig":
        """Ensure the day opens before it closes."""
        if self.close <= self.open:
            raise ValueError("close must be later than open")
        return self

    def to_opening_hours(self) -> OpeningHours:
        return OpeningHours(open_time=self.open, close_time=self.close)


def _default_business_hours() -> Dict[str, Optional[DayHoursConfig]]:
    # Monday, Wednesday, Friday, Saturday
    return {
        "monday": DayHoursConfig(),
        "tuesday": None,
        "wednesday": DayHoursConfig(),
        "thursday": None,
        "friday": DayHoursConfig(),
        "saturday": DayHoursConfig(),
        "sunday": None,
    }


def _default_services() -> Dict[str, int]:
    return {
        ServiceType.SIXTY_MINUTES.value: 60,
        ServiceType.NINETY_MINUTES.value: 90,
        ServiceType.ONE_TWENTY_MINUTES.value: 120,
        ServiceType.FASCIAFLOW.value: 90,
        ServiceType.CONSULTATION.value: 30,
        ServiceType.FOLLOW_UP.value: 30,
    }


class ClosedDateConfig(BaseModel):
    """A holiday or one-off closure."""
    date: date
    reason: str = ""


class PractitionerConfig(BaseModel):
    """Practitioner identity."""
    id: str
    name: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value: object) -> str:
        """Numeric ids from YAML are treated as strings."""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class LedgerConfig(BaseModel):
    """Where existing bookings are read from."""
    base_url: str = ""
    timeout_seconds: float = 10.0
    mock_data_file: Optional[Path] = None

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value


class CalendarStoreConfig(BaseModel):
    """Optional remote source for admin-managed closed dates."""
    base_url: str = ""
    timeout_seconds: float = 10.0

    @field_validator("timeout_seconds")
    @classmethod
    def validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout_seconds must be greater than zero")
        return value


class EngineConfig(BaseModel):
    """Application configuration."""
    timezone: str = "America/Chicago"
    slot_interval_minutes: int = 30
    first_booking_notice_hours: float = DEFAULT_FIRST_BOOKING_NOTICE_HOURS
    subsequent_booking_notice_hours: float = DEFAULT_SUBSEQUENT_BOOKING_NOTICE_HOURS
    booking_horizon_days: Optional[int] = 90
    practitioners: List[PractitionerConfig] = Field(
        default_factory=lambda: [PractitionerConfig(id="1")]
    )
    business_hours: Dict[str, Optional[DayHoursConfig]] = Field(
        default_factory=_default_business_hours
    )
    closed_dates: List[ClosedDateConfig] = Field(default_factory=list)
    services: Dict[str, int] = Field(default_factory=_default_services)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    calendar_store: CalendarStoreConfig = Field(default_factory=CalendarStoreConfig)

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        """Ensure the timezone is a known IANA identifier."""
        try:
            pendulum.timezone(value)
        except Exception as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("slot_interval_minutes")
    @classmethod
    def validate_interval(cls, value: int) -> int:
        """Ensure slot granularity is positive."""
        if value <= 0:
            raise ValueError("slot_interval_minutes must be greater than zero")
        return value

    @field_validator("booking_horizon_days")
    @classmethod
    def validate_horizon(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("booking_horizon_days must be greater than zero")
        return value

    @field_validator("business_hours")
    @classmethod
    def validate_business_hours(
        cls, value: Dict[str, Optional[DayHoursConfig]]
    ) -> Dict[str, Optional[DayHoursConfig]]:
        """Ensure keys are weekday names; missing weekdays are closed."""
        normalized: Dict[str, Optional[DayHoursConfig]] = {}
        for key, hours in value.items():
            name = key.strip().lower()
            if name not in WEEKDAYS:
                raise ValueError(f"Unknown weekday in business_hours: '{key}'")
            normalized[name] = hours
        return normalized

    @field_validator("services")
    @classmethod
    def validate_services(cls, value: Dict[str, int]) -> Dict[str, int]:
        """Ensure every service is a known type with a positive duration."""
        normalized: Dict[str, int] = {}
        for key, minutes in value.items():
            try:
                member = ServiceType.parse(key)
            except ValidationError as exc:
                raise ValueError(str(exc)) from exc
            if minutes <= 0:
                raise ValueError(f"Duration for '{key}' must be greater than zero")
            normalized[member.value] = minutes
        return normalized

    @field_validator("practitioners")
    @classmethod
    def validate_practitioners(cls, value: List[PractitionerConfig]) -> List[PractitionerConfig]:
        """Ensure practitioner ids are unique."""
        seen: set[str] = set()
        for practitioner in value:
            if practitioner.id in seen:
                raise ValueError(f"Duplicate practitioner id detected: {practitioner.id}")
            seen.add(practitioner.id)
        return value

    @model_validator(mode="after")
    def validate_notice_order(self) -> "EngineConfig":
        """The relaxed notice period may not be longer than the strict one."""
        if self.first_booking_notice_hours < 0 or self.subsequent_booking_notice_hours < 0:
            raise ValueError("Notice periods must not be negative")
        if self.subsequent_booking_notice_hours > self.first_booking_notice_hours:
            raise ValueError(
                "subsequent_booking_notice_hours must not exceed first_booking_notice_hours"
            )
        return self

    @classmethod
    def load_from_yaml(cls, config_path: Path) -> "EngineConfig":
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to the YAML config file

        Returns:
            EngineConfig instance

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        if not config_path.exists():
            raise ConfigurationError(
                f"Config file not found: {config_path}\n"
                f"Please create a config.yaml file. See config.example.yaml for reference."
            )

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc

        if not isinstance(data, dict):
            raise ConfigurationError("Config file must contain a mapping at the root level.")

        try:
            return cls(**data)
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid configuration in {config_path}:\n{exc}") from exc

    def find_practitioner(self, practitioner_id: str) -> Practitioner | None:
        """Find a practitioner by id."""
        for practitioner in self.practitioners:
            if practitioner.id == str(practitioner_id):
                return Practitioner(id=practitioner.id, name=practitioner.name)
        return None

    def build_calendar(self) -> BusinessCalendar:
        """Build the business calendar described by this configuration."""
        weekly_hours = {}
        for index, name in enumerate(WEEKDAYS):
            hours = self.business_hours.get(name)
            weekly_hours[index] = hours.to_opening_hours() if hours is not None else None
        return BusinessCalendar(
            weekly_hours=weekly_hours,
            service_durations={
                ServiceType(key): minutes for key, minutes in self.services.items()
            },
            closed_dates=[
                ClosedDate(day=closed.date, reason=closed.reason)
                for closed in self.closed_dates
            ],
            timezone=self.timezone,
        )


def get_default_config_path() -> Path:
    """Get the default configuration file path."""
    # Look for config.yaml in current directory
    current_dir = Path.cwd()
    config_path = current_dir / "config.yaml"

    if not config_path.exists():
        # Try in the project root (parent of slotengine/)
        project_root = Path(__file__).parent.parent
        config_path = project_root / "config.yaml"

    return config_path
