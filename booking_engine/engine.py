"""Engine facade: availability computation and booking for field reps.

Typical use::

    engine = SchedulingEngine(store, calendar_source=GoogleCalendarSource())
    result = await engine.compute_availability("rep-1", date(2026, 3, 15), 30)
    outcome = await engine.book({...}, credentials=creds)
"""

from __future__ import annotations

import logging
from datetime import date, tzinfo
from typing import Any, Mapping, Optional

from booking_engine.aggregator import BusyIntervalAggregator
from booking_engine.calendar_providers.base import CalendarCredentials, ExternalCalendarSource
from booking_engine.config import Settings, settings as default_settings
from booking_engine.coordinator import BookingCoordinator
from booking_engine.errors import BookingValidationError
from booking_engine.models.appointment import BookingRequest
from booking_engine.models.availability import AvailabilityRequest, AvailabilityResult
from booking_engine.models.booking import BookingOutcome
from booking_engine.slots import compute_free_slots
from booking_engine.stores.base import AppointmentStore

log = logging.getLogger("booking_engine.engine")


class SchedulingEngine:
    def __init__(
        self,
        store: AppointmentStore,
        calendar_source: Optional[ExternalCalendarSource] = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._tz: tzinfo = self._settings.tz
        self._store = store
        self._aggregator = BusyIntervalAggregator(store, calendar_source, self._tz)
        self._coordinator = BookingCoordinator(
            store, calendar_source, self._tz, self._settings.allowed_durations
        )

    @property
    def store(self) -> AppointmentStore:
        return self._store

    @property
    def tz(self) -> tzinfo:
        return self._tz

    async def compute_availability(
        self,
        rep_id: str,
        day: date,
        duration_minutes: int,
        exclude_appointment_id: str | None = None,
        credentials: CalendarCredentials | None = None,
    ) -> AvailabilityResult:
        """Free quantized start times for *rep_id* on *day*.

        Raises:
            BookingValidationError: the duration is not an allowed value.
            LocalStoreError: the local appointment store could not be read.
        """
        if duration_minutes not in self._settings.allowed_durations:
            raise BookingValidationError(
                {"duration_minutes": f"duration must be one of {self._settings.allowed_durations}"}
            )

        busy = await self._aggregator.collect(
            rep_id, day, exclude_appointment_id, credentials
        )
        slots = compute_free_slots(
            busy.intervals,
            day,
            duration_minutes,
            self._tz,
            granularity_minutes=self._settings.slot_granularity_minutes,
            allow_midnight_crossing=self._settings.allow_midnight_crossing,
        )
        log.info(
            "Availability for rep %s on %s (%d min): %d slots from %d busy intervals, external=%s",
            rep_id, day, duration_minutes, len(slots), len(busy.intervals),
            busy.external_status.value,
        )
        return AvailabilityResult(
            rep_id=rep_id,
            date=day,
            duration_minutes=duration_minutes,
            slots=slots,
            external_status=busy.external_status,
            external_error=busy.external_error,
        )

    async def availability_for(
        self,
        request: AvailabilityRequest,
        credentials: CalendarCredentials | None = None,
    ) -> AvailabilityResult:
        return await self.compute_availability(
            request.rep_id,
            request.date,
            request.duration_minutes,
            request.exclude_appointment_id,
            credentials,
        )

    async def book(
        self,
        fields: BookingRequest | Mapping[str, Any],
        credentials: CalendarCredentials | None = None,
    ) -> BookingOutcome:
        """Create or edit a booking.  See :class:`BookingCoordinator`."""
        return await self._coordinator.book(fields, credentials)
