"""Pydantic models for availability requests and results."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ExternalStatus(str, Enum):
    """How the external calendar contributed to an availability result."""

    SYNCED = "synced"                # events fetched and merged
    NOT_CONNECTED = "not_connected"  # no credentials or no source configured
    UNAVAILABLE = "unavailable"      # read failed; result is local-only


class AvailabilityRequest(BaseModel):
    rep_id: str
    date: dt.date
    duration_minutes: int
    exclude_appointment_id: Optional[str] = None


class AvailabilityResult(BaseModel):
    """Free start times for one rep/day, ascending and conflict-free."""

    rep_id: str
    date: dt.date
    duration_minutes: int
    slots: list[dt.time] = []
    external_status: ExternalStatus = ExternalStatus.NOT_CONNECTED
    external_error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.slots

    @property
    def is_degraded(self) -> bool:
        return self.external_status is ExternalStatus.UNAVAILABLE

    def slot_labels(self) -> list[str]:
        """``HH:MM`` strings, as shown in the time picker."""
        return [slot.strftime("%H:%M") for slot in self.slots]
