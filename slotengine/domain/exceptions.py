"""
Domain-specific exception hierarchy for the availability engine.

Errors are always distinguishable from legitimate empty results: a closed
day is reported through ``AvailabilityResult.is_business_day`` and never
raises.
"""


class SlotEngineError(Exception):
    """Base class for all application-level errors."""


class ValidationError(SlotEngineError, ValueError):
    """Raised when a request is malformed and rejected before computation."""


class UnknownServiceType(ValidationError):
    """Raised when a service identifier does not map to a configured service."""


class UpstreamUnavailable(SlotEngineError):
    """Raised when the booking ledger or calendar store cannot be reached."""


class LogicInvariantViolation(SlotEngineError):
    """Raised when a computed slot breaks its own postconditions."""


class ConfigurationError(SlotEngineError, ValueError):
    """Raised when the configuration file is missing or invalid."""
