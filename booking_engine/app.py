"""FastAPI application: HTTP endpoints for rep availability and booking.

Endpoints:

  GET  /health                                        Health check
  GET  /api/availability/{rep_id}/{date}              Free start times for a rep/day
  GET  /api/appointments/by-calendar-event/{event_id} Appointment mirrored by an event
  GET  /api/appointments/{rep_id}/{date}              A rep's appointments on a day
  POST /api/appointments                              Book a new appointment
  PUT  /api/appointments/{appointment_id}             Edit an appointment

Google Calendar credentials travel per request in the
``X-Calendar-Access-Token`` / ``X-Calendar-Refresh-Token`` headers; without
them the engine runs local-only and bookings come back as partial success
("not connected").
"""

from __future__ import annotations

from dotenv import load_dotenv
load_dotenv()

import logging
import time
from datetime import date
from typing import Any, Optional

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-28s %(levelname)-7s %(message)s",
)

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from booking_engine.auth import require_api_token
from booking_engine.calendar_providers.base import CalendarCredentials
from booking_engine.calendar_providers.google import GoogleCalendarSource
from booking_engine.config import settings
from booking_engine.engine import SchedulingEngine
from booking_engine.errors import BookingValidationError, LocalStoreError
from booking_engine.models.availability import AvailabilityResult
from booking_engine.models.booking import BookingOutcome, BookingStatus
from booking_engine.stores.memory import InMemoryAppointmentStore

log = logging.getLogger("booking_engine.app")

_START_TIME = time.time()


def calendar_credentials(
    x_calendar_access_token: Optional[str] = Header(default=None),
    x_calendar_refresh_token: Optional[str] = Header(default=None),
) -> CalendarCredentials | None:
    """Calendar tokens from request headers; None means "not connected"."""
    if not x_calendar_access_token:
        return None
    return CalendarCredentials(
        access_token=x_calendar_access_token,
        refresh_token=x_calendar_refresh_token or None,
    )


def _availability_payload(result: AvailabilityResult) -> dict[str, Any]:
    return {
        "rep_id": result.rep_id,
        "date": result.date.isoformat(),
        "duration_minutes": result.duration_minutes,
        "slots": result.slot_labels(),
        "external_status": result.external_status.value,
        "external_error": result.external_error,
    }


def _outcome_response(outcome: BookingOutcome, success_code: int) -> JSONResponse:
    payload = outcome.model_dump(mode="json")
    payload["notice"] = outcome.notice
    code = 500 if outcome.status is BookingStatus.FAILURE else success_code
    return JSONResponse(payload, status_code=code)


def create_app(engine: SchedulingEngine | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    if engine is None:
        source = GoogleCalendarSource(
            calendar_id=settings.google_calendar_id,
            timezone_name=settings.calendar_timezone,
            timeout_seconds=settings.calendar_timeout_seconds,
        )
        engine = SchedulingEngine(InMemoryAppointmentStore(), source, settings)

    for warning in settings.validate_startup():
        log.warning(warning)

    app = FastAPI(
        title="Field Rep Booking Engine",
        description="Appointment availability and booking with Google Calendar mirroring",
        version="0.1.0",
    )
    app.state.engine = engine

    @app.exception_handler(BookingValidationError)
    async def _validation_error(request: Request, exc: BookingValidationError) -> JSONResponse:
        return JSONResponse({"error": str(exc), "fields": exc.errors}, status_code=400)

    @app.exception_handler(LocalStoreError)
    async def _local_store_error(request: Request, exc: LocalStoreError) -> JSONResponse:
        log.error("Local store error on %s: %s", request.url.path, exc)
        return JSONResponse({"error": str(exc)}, status_code=500)

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        uptime = round(time.time() - _START_TIME, 1)
        return JSONResponse({"status": "ok", "uptime": uptime})

    # ── Availability ───────────────────────────────────────────

    @app.get("/api/availability/{rep_id}/{day}", dependencies=[Depends(require_api_token)])
    async def get_availability(
        rep_id: str,
        day: date,
        duration: int = Query(default=30),
        exclude: Optional[str] = Query(default=None),
        credentials: CalendarCredentials | None = Depends(calendar_credentials),
    ) -> JSONResponse:
        result = await engine.compute_availability(rep_id, day, duration, exclude, credentials)
        return JSONResponse(_availability_payload(result))

    # ── Appointments ───────────────────────────────────────────

    @app.get(
        "/api/appointments/by-calendar-event/{event_id}",
        dependencies=[Depends(require_api_token)],
    )
    async def get_appointment_by_event(event_id: str) -> JSONResponse:
        record = await engine.store.get_by_external_ref(event_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return JSONResponse(record.model_dump(mode="json"))

    @app.get("/api/appointments/{rep_id}/{day}", dependencies=[Depends(require_api_token)])
    async def list_appointments(rep_id: str, day: date) -> JSONResponse:
        records = await engine.store.list_for_rep(rep_id, day)
        return JSONResponse([r.model_dump(mode="json") for r in records])

    @app.post("/api/appointments", dependencies=[Depends(require_api_token)])
    async def create_appointment(
        body: dict[str, Any] = Body(...),
        credentials: CalendarCredentials | None = Depends(calendar_credentials),
    ) -> JSONResponse:
        fields = {k: v for k, v in body.items() if k != "appointment_id"}
        outcome = await engine.book(fields, credentials)
        return _outcome_response(outcome, 201)

    @app.put(
        "/api/appointments/{appointment_id}",
        dependencies=[Depends(require_api_token)],
    )
    async def update_appointment(
        appointment_id: str,
        body: dict[str, Any] = Body(...),
        credentials: CalendarCredentials | None = Depends(calendar_credentials),
    ) -> JSONResponse:
        outcome = await engine.book({**body, "appointment_id": appointment_id}, credentials)
        return _outcome_response(outcome, 200)

    return app


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    uvicorn.run(
        "booking_engine.app:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_config=log_config,
    )
