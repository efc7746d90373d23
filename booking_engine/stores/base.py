"""Abstract base class for the local (authoritative) appointment store.

Implementations raise ``LocalStoreError`` for every read or write failure,
including updates of unknown appointments.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Any, Mapping, Optional

from booking_engine.models.appointment import AppointmentRecord


class AppointmentStore(ABC):
    """Persistence for appointment records."""

    @abstractmethod
    async def list_for_rep(self, rep_id: str, day: date) -> list[AppointmentRecord]:
        """Return the rep's appointments on *day*, ordered by start time."""

    @abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> AppointmentRecord:
        """Insert a new appointment and return the stored record."""

    @abstractmethod
    async def update(self, appointment_id: str, fields: Mapping[str, Any]) -> AppointmentRecord:
        """Apply a partial update and return the stored record."""

    @abstractmethod
    async def get(self, appointment_id: str) -> Optional[AppointmentRecord]:
        """Look up one appointment by id."""

    @abstractmethod
    async def get_by_external_ref(self, event_id: str) -> Optional[AppointmentRecord]:
        """Find the appointment mirrored by an external calendar event."""
