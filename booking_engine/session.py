"""Per-user booking session: holds the booking form and its availability.

A BookingSession backs one "schedule appointment" dialog:
  1. Holds the form fields (rep, prospect, date, time, duration, place, notes)
  2. Recomputes available times whenever the caller changes rep/date/duration
  3. Discards availability results of superseded requests ("latest request
     wins"), using a per-session sequence number
  4. Submits the booking through the engine and remembers the saved record

Typical lifecycle::

    session = BookingSession(engine, credentials=creds)
    session.update_form(rep_id="rep-1", scheduled_date=date(2026, 3, 15))
    await session.refresh_availability()
    session.update_form(scheduled_time=session.available_times[0])
    outcome = await session.save()
"""

from __future__ import annotations

import logging
from datetime import date, time
from typing import Any, Optional

from booking_engine.calendar_providers.base import CalendarCredentials
from booking_engine.engine import SchedulingEngine
from booking_engine.models.appointment import AppointmentRecord
from booking_engine.models.availability import AvailabilityResult
from booking_engine.models.booking import BookingOutcome

log = logging.getLogger("booking_engine.session")

DEFAULT_TIME = time(9, 0)
DEFAULT_DURATION = 30

_FORM_FIELDS = (
    "rep_id", "prospect_id", "scheduled_date", "scheduled_time",
    "duration_minutes", "place", "notes", "title",
)


class BookingSession:
    def __init__(
        self,
        engine: SchedulingEngine,
        editing: AppointmentRecord | None = None,
        credentials: CalendarCredentials | None = None,
    ) -> None:
        self._engine = engine
        self._editing = editing
        self._credentials = credentials

        self.rep_id: str = ""
        self.prospect_id: str = ""
        self.scheduled_date: Optional[date] = None
        self.scheduled_time: time = DEFAULT_TIME
        self.duration_minutes: int = DEFAULT_DURATION
        self.place: Optional[str] = None
        self.notes: Optional[str] = None
        self.title: Optional[str] = None

        if editing is not None:
            self.rep_id = editing.rep_id
            self.prospect_id = editing.prospect_id
            self.scheduled_date = editing.scheduled_date
            self.scheduled_time = editing.scheduled_time
            self.duration_minutes = editing.duration_minutes
            self.place = editing.place
            self.notes = editing.notes

        self.available_times: list[time] = []
        self.last_result: AvailabilityResult | None = None
        self._seq = 0

    # ── Public API ────────────────────────────────────────────

    @property
    def is_editing(self) -> bool:
        return self._editing is not None

    @property
    def editing(self) -> AppointmentRecord | None:
        return self._editing

    @property
    def sequence(self) -> int:
        return self._seq

    def update_form(self, **changes: Any) -> None:
        for name, value in changes.items():
            if name not in _FORM_FIELDS:
                raise AttributeError(f"Unknown booking form field: {name}")
            setattr(self, name, value)

    async def refresh_availability(self) -> AvailabilityResult | None:
        """Recompute available times for the current rep/date/duration.

        Returns the result, or None if the form is incomplete or a newer
        request was issued while this one was in flight.  Errors from a
        superseded request are dropped too; errors from the current one
        clear the available times and propagate.
        """
        self._seq += 1
        seq = self._seq

        if not self.rep_id or self.scheduled_date is None:
            self.available_times = []
            self.last_result = None
            return None

        try:
            result = await self._engine.compute_availability(
                self.rep_id,
                self.scheduled_date,
                self.duration_minutes,
                exclude_appointment_id=self._editing.id if self._editing else None,
                credentials=self._credentials,
            )
        except Exception:
            if seq != self._seq:
                log.debug("Dropping error from superseded availability request #%d", seq)
                return None
            self.available_times = []
            self.last_result = None
            raise

        if seq != self._seq:
            log.debug("Discarding availability request #%d (latest is #%d)", seq, self._seq)
            return None

        self.last_result = result
        self.available_times = list(result.slots)
        if self.available_times and self.scheduled_time not in self.available_times:
            self.scheduled_time = self.available_times[0]
        elif not self.available_times:
            self.scheduled_time = DEFAULT_TIME
        return result

    async def save(self) -> BookingOutcome:
        """Submit the form.  Raises ``BookingValidationError`` on bad fields."""
        fields = {name: getattr(self, name) for name in _FORM_FIELDS}
        if self._editing is not None:
            fields["appointment_id"] = self._editing.id

        outcome = await self._engine.book(fields, self._credentials)
        if outcome.appointment is not None:
            self._editing = outcome.appointment
        if outcome.notice:
            log.info("Booking saved with notice: %s", outcome.notice)
        return outcome
