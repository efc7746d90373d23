"""Pydantic models for booking outcomes and the booking state machine."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from booking_engine.models.appointment import AppointmentRecord


class BookingState(str, Enum):
    INITIATED = "initiated"
    LOCAL_WRITE_FAILED = "local_write_failed"
    LOCAL_COMMITTED = "local_committed"
    EXTERNAL_SYNCED = "external_synced"
    EXTERNAL_SYNC_FAILED = "external_sync_failed"
    DONE = "done"


class BookingStatus(str, Enum):
    SUCCESS = "success"
    PARTIAL_SUCCESS = "partial_success"
    FAILURE = "failure"


class SyncFailureReason(str, Enum):
    NOT_CONNECTED = "not_connected"
    SYNC_ERROR = "sync_error"


class BookingOutcome(BaseModel):
    """Result of a booking attempt.

    A ``partial_success`` is a confirmed appointment whose calendar mirror
    did not complete; callers present it as a normal booking with a
    dismissable notice (see :attr:`notice`).
    """

    status: BookingStatus
    appointment: Optional[AppointmentRecord] = None
    external_sync_error: Optional[str] = None
    sync_failure_reason: Optional[SyncFailureReason] = None
    error: Optional[str] = None
    transitions: list[BookingState] = []

    @property
    def committed(self) -> bool:
        return self.appointment is not None

    @property
    def notice(self) -> str | None:
        """Secondary notice text for a degraded booking, if any."""
        if self.status is not BookingStatus.PARTIAL_SUCCESS:
            return None
        if self.sync_failure_reason is SyncFailureReason.NOT_CONNECTED:
            return "Appointment saved. Connect Google Calendar to sync events."
        return "Appointment saved, but it failed to sync with Google Calendar."
