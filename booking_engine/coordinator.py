"""Booking coordinator: a sequential local-then-external dual write.

Each booking runs through a small state machine::

    initiated ──► local_write_failed ──► done            (failure)
        │
        └──► local_committed ──► external_synced ──► done        (success)
                          └────► external_sync_failed ──► done   (partial_success)

The local store is the source of truth.  Once the local write commits it
is never rolled back; the external calendar is only a mirror.  The
external call is attempted once, and only after the local commit, since
the event id it returns is attached to the local record.
"""

from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Any, Mapping

from booking_engine.calendar_providers.base import (
    CalendarCredentials,
    CalendarEvent,
    ExternalCalendarSource,
)
from booking_engine.errors import InvalidTransitionError, LocalStoreError
from booking_engine.models.appointment import (
    ALLOWED_DURATIONS,
    AppointmentRecord,
    BookingRequest,
    parse_booking_request,
)
from booking_engine.models.booking import (
    BookingOutcome,
    BookingState,
    BookingStatus,
    SyncFailureReason,
)
from booking_engine.stores.base import AppointmentStore

log = logging.getLogger("booking_engine.coordinator")

TRANSITIONS: dict[BookingState, frozenset[BookingState]] = {
    BookingState.INITIATED: frozenset(
        {BookingState.LOCAL_WRITE_FAILED, BookingState.LOCAL_COMMITTED}
    ),
    BookingState.LOCAL_COMMITTED: frozenset(
        {BookingState.EXTERNAL_SYNCED, BookingState.EXTERNAL_SYNC_FAILED}
    ),
    BookingState.LOCAL_WRITE_FAILED: frozenset({BookingState.DONE}),
    BookingState.EXTERNAL_SYNCED: frozenset({BookingState.DONE}),
    BookingState.EXTERNAL_SYNC_FAILED: frozenset({BookingState.DONE}),
    BookingState.DONE: frozenset(),
}


class BookingRun:
    """State tracker for a single booking attempt."""

    def __init__(self, label: str) -> None:
        self._label = label
        self.state = BookingState.INITIATED
        self.history: list[BookingState] = [BookingState.INITIATED]

    def advance(self, target: BookingState) -> None:
        if target not in TRANSITIONS[self.state]:
            raise InvalidTransitionError(
                f"Booking {self._label}: cannot go from {self.state.value} to {target.value}"
            )
        log.debug("Booking %s: %s -> %s", self._label, self.state.value, target.value)
        self.state = target
        self.history.append(target)

    @property
    def is_done(self) -> bool:
        return self.state is BookingState.DONE


class BookingCoordinator:
    def __init__(
        self,
        store: AppointmentStore,
        calendar_source: ExternalCalendarSource | None,
        tz: tzinfo,
        allowed_durations: tuple[int, ...] | list[int] = ALLOWED_DURATIONS,
    ) -> None:
        self._store = store
        self._calendar_source = calendar_source
        self._tz = tz
        self._allowed_durations = tuple(allowed_durations)

    async def book(
        self,
        fields: BookingRequest | Mapping[str, Any],
        credentials: CalendarCredentials | None = None,
    ) -> BookingOutcome:
        """Create or edit a booking and mirror it to the external calendar.

        Raises:
            BookingValidationError: the fields are invalid; nothing was written.
        """
        request = parse_booking_request(fields, self._allowed_durations)
        run = BookingRun(request.appointment_id or f"new:{request.rep_id}")

        # ── Local write ──────────────────────────────────────────
        try:
            if request.is_edit:
                record = await self._store.update(request.appointment_id, request.store_fields())
            else:
                record = await self._store.create(request.store_fields())
        except Exception as exc:
            run.advance(BookingState.LOCAL_WRITE_FAILED)
            run.advance(BookingState.DONE)
            message = str(exc) or type(exc).__name__
            if not isinstance(exc, LocalStoreError):
                log.exception("Unexpected local store error")
            log.error("Booking %s failed locally: %s",
                      "update" if request.is_edit else "create", message)
            return BookingOutcome(
                status=BookingStatus.FAILURE,
                error=message,
                transitions=run.history,
            )
        run.advance(BookingState.LOCAL_COMMITTED)

        # ── External mirror ──────────────────────────────────────
        if credentials is None or self._calendar_source is None:
            run.advance(BookingState.EXTERNAL_SYNC_FAILED)
            run.advance(BookingState.DONE)
            log.info("Appointment %s saved; calendar not connected", record.id)
            return BookingOutcome(
                status=BookingStatus.PARTIAL_SUCCESS,
                appointment=record,
                external_sync_error="Google Calendar is not connected",
                sync_failure_reason=SyncFailureReason.NOT_CONNECTED,
                transitions=run.history,
            )

        record, sync_error = await self._sync_external(record, request, credentials)
        if sync_error is not None:
            run.advance(BookingState.EXTERNAL_SYNC_FAILED)
            run.advance(BookingState.DONE)
            return BookingOutcome(
                status=BookingStatus.PARTIAL_SUCCESS,
                appointment=record,
                external_sync_error=sync_error,
                sync_failure_reason=SyncFailureReason.SYNC_ERROR,
                transitions=run.history,
            )

        run.advance(BookingState.EXTERNAL_SYNCED)
        run.advance(BookingState.DONE)
        return BookingOutcome(
            status=BookingStatus.SUCCESS,
            appointment=record,
            transitions=run.history,
        )

    async def _sync_external(
        self,
        record: AppointmentRecord,
        request: BookingRequest,
        credentials: CalendarCredentials,
    ) -> tuple[AppointmentRecord, str | None]:
        """Mirror *record* once.  Returns the (possibly relinked) record and an error."""
        event = self._calendar_event(record, request)
        try:
            if record.external_ref_id:
                event_id = await self._calendar_source.update_event(
                    credentials, record.external_ref_id, event
                )
            else:
                event_id = await self._calendar_source.create_event(credentials, event)
        except Exception as exc:
            log.warning("Calendar sync failed for appointment %s: %s", record.id, exc)
            return record, str(exc) or type(exc).__name__

        if event_id == record.external_ref_id:
            return record, None

        try:
            record = await self._store.update(record.id, {"external_ref_id": event_id})
        except Exception as exc:
            log.warning("Calendar event %s created but could not be linked to "
                        "appointment %s: %s", event_id, record.id, exc)
            return record, f"Calendar event created but not linked: {exc}"
        return record, None

    def _calendar_event(self, record: AppointmentRecord, request: BookingRequest) -> CalendarEvent:
        return CalendarEvent(
            summary=request.title or "Appointment",
            start=record.starts_at(self._tz),
            end=record.ends_at(self._tz),
            description=record.notes or "",
            location=record.place or "",
        )
