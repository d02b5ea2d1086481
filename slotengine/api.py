"""
HTTP surface for availability queries.
"""

import logging
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .config import EngineConfig, get_default_config_path
from .domain.exceptions import LogicInvariantViolation, UpstreamUnavailable, ValidationError
from .domain.models import AvailabilityRequest
from .services.availability_engine import AvailabilityEngine
from .services.factory import build_engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["availability"])


@lru_cache(maxsize=1)
def _default_engine() -> AvailabilityEngine:
    config = EngineConfig.load_from_yaml(get_default_config_path())
    return build_engine(config)


def get_engine() -> AvailabilityEngine:
    """Engine dependency; override in tests via ``app.dependency_overrides``."""
    return _default_engine()


@router.get("/availability")
def availability(
    practitioner_id: Optional[str] = Query(None),
    date_param: Optional[str] = Query(None, alias="date"),
    service_type: Optional[str] = Query(None),
    engine: AvailabilityEngine = Depends(get_engine),
) -> dict:
    """Return offerable ``HH:MM`` start times for a practitioner, date and service."""
    result = engine.compute_availability(
        AvailabilityRequest(
            practitioner_id=practitioner_id,
            day=date_param,
            service_type=service_type,
        )
    )
    return result.to_payload()


@router.get("/availability/check")
def check_availability(
    practitioner_id: Optional[str] = Query(None),
    date_param: Optional[str] = Query(None, alias="date"),
    service_type: Optional[str] = Query(None),
    time_param: Optional[str] = Query(None, alias="time"),
    engine: AvailabilityEngine = Depends(get_engine),
) -> dict:
    """Advisory check of a single start time before a booking is attempted."""
    check = engine.check_slot(
        AvailabilityRequest(
            practitioner_id=practitioner_id,
            day=date_param,
            service_type=service_type,
        ),
        time_param,
    )
    return check.to_payload()


@router.get("/business-days")
def business_days(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    engine: AvailabilityEngine = Depends(get_engine),
) -> dict:
    """Per-day open/closed marking for calendar rendering."""
    statuses = engine.business_days(start_date, end_date)
    return {"success": True, "days": [status.to_payload() for status in statuses]}


@router.get("/closed-dates")
def closed_dates(
    start_date: Optional[str] = Query(None),
    end_date: Optional[str] = Query(None),
    engine: AvailabilityEngine = Depends(get_engine),
) -> dict:
    """Explicit closures (holidays, one-off closures) in a date range."""
    closures = engine.closed_dates(start_date, end_date)
    return {
        "success": True,
        "data": {
            "closed_dates": [closed.day.isoformat() for closed in closures],
            "reasons": {closed.day.isoformat(): closed.reason for closed in closures},
        },
    }


def _error_response(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": str(exc), "errorType": type(exc).__name__},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="Slot Engine API",
        description="Appointment availability: bookable slots, business days, closures",
        version="0.1.0",
    )
    app.include_router(router)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error_response(400, exc)

    @app.exception_handler(UpstreamUnavailable)
    async def upstream_error_handler(request: Request, exc: UpstreamUnavailable) -> JSONResponse:
        logger.warning("Upstream unavailable for %s: %s", request.url.path, exc)
        return _error_response(503, exc)

    @app.exception_handler(LogicInvariantViolation)
    async def invariant_error_handler(
        request: Request, exc: LogicInvariantViolation
    ) -> JSONResponse:
        logger.error("Invariant violation for %s: %s", request.url.path, exc)
        return _error_response(500, exc)

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()
