"""Busy-interval aggregation for one rep on one day.

Reads the local appointment store and, when connected, the rep's external
calendar concurrently.  The local store is authoritative: if it fails the
whole computation fails.  The external calendar is best-effort: if it
fails, the result is built from local appointments only and flagged.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, tzinfo
from typing import Optional

from booking_engine.calendar_providers.base import (
    CalendarCredentials,
    ExternalCalendarSource,
    ExternalEvent,
)
from booking_engine.errors import LocalStoreError
from booking_engine.intervals import TimeInterval, day_window
from booking_engine.models.appointment import AppointmentRecord
from booking_engine.models.availability import ExternalStatus
from booking_engine.stores.base import AppointmentStore

log = logging.getLogger("booking_engine.aggregator")


@dataclass
class BusyIntervals:
    """Merged busy intervals plus how the external calendar contributed."""

    intervals: list[TimeInterval] = field(default_factory=list)
    external_status: ExternalStatus = ExternalStatus.NOT_CONNECTED
    external_error: Optional[str] = None


class BusyIntervalAggregator:
    def __init__(
        self,
        store: AppointmentStore,
        calendar_source: ExternalCalendarSource | None,
        tz: tzinfo,
    ) -> None:
        self._store = store
        self._calendar_source = calendar_source
        self._tz = tz

    async def collect(
        self,
        rep_id: str,
        day: date,
        exclude_appointment_id: str | None = None,
        credentials: CalendarCredentials | None = None,
    ) -> BusyIntervals:
        """Gather busy intervals for *rep_id* on *day*.

        Raises:
            LocalStoreError: the local appointment store could not be read.
        """
        window = day_window(day, self._tz)
        connected = credentials is not None and self._calendar_source is not None

        reads = [self._store.list_for_rep(rep_id, day)]
        if connected:
            reads.append(
                self._calendar_source.list_events(credentials, window.start, window.end)
            )

        # Wait for both reads to settle before deciding anything.
        results = await asyncio.gather(*reads, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result

        local_result = results[0]
        if isinstance(local_result, Exception):
            log.error("Local appointment read failed for rep %s on %s: %s",
                      rep_id, day, local_result)
            if isinstance(local_result, LocalStoreError):
                raise local_result
            raise LocalStoreError(str(local_result)) from local_result

        busy = BusyIntervals(
            intervals=self._local_intervals(local_result, exclude_appointment_id)
        )

        if not connected:
            log.debug("External calendar not connected for rep %s; local-only", rep_id)
            return busy

        external_result = results[1]
        if isinstance(external_result, Exception):
            log.warning("External calendar read failed for rep %s on %s, "
                        "continuing with local appointments only: %s",
                        rep_id, day, external_result)
            busy.external_status = ExternalStatus.UNAVAILABLE
            busy.external_error = str(external_result) or type(external_result).__name__
            return busy

        busy.intervals.extend(self._external_intervals(external_result))
        busy.external_status = ExternalStatus.SYNCED
        return busy

    def _local_intervals(
        self,
        appointments: list[AppointmentRecord],
        exclude_appointment_id: str | None,
    ) -> list[TimeInterval]:
        intervals = []
        for appointment in appointments:
            if exclude_appointment_id and appointment.id == exclude_appointment_id:
                continue
            intervals.append(appointment.to_interval(self._tz))
        return intervals

    def _external_intervals(self, events: list[ExternalEvent]) -> list[TimeInterval]:
        intervals = []
        for event in events:
            start, end = event.start, event.end
            if event.all_day:
                # All-day events cover whole dates in the working timezone,
                # whatever timezone the source parsed them in.
                start = datetime.combine(start.date(), time.min, tzinfo=self._tz)
                end = datetime.combine(end.date(), time.min, tzinfo=self._tz)
            if end <= start:
                log.warning("Ignoring external event %s with empty time range", event.id)
                continue
            intervals.append(TimeInterval(start, end))
        return intervals
