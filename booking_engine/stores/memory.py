"""In-process appointment store.

Backs the HTTP app and the tests.  Writes to the same record are serialized
with a per-record ``asyncio.Lock``; writes to different records never
block each other.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, timezone
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from booking_engine.errors import LocalStoreError
from booking_engine.models.appointment import AppointmentRecord

from .base import AppointmentStore

log = logging.getLogger("booking_engine.stores.memory")

_READONLY_FIELDS = {"id", "created_at", "updated_at"}


class InMemoryAppointmentStore(AppointmentStore):
    def __init__(self, records: list[AppointmentRecord] | None = None) -> None:
        self._records: dict[str, AppointmentRecord] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        for record in records or []:
            self._records[record.id] = record

    def __len__(self) -> int:
        return len(self._records)

    async def list_for_rep(self, rep_id: str, day: date) -> list[AppointmentRecord]:
        matches = [
            r for r in self._records.values()
            if r.rep_id == rep_id and r.scheduled_date == day
        ]
        return sorted(matches, key=lambda r: r.scheduled_time)

    async def create(self, fields: Mapping[str, Any]) -> AppointmentRecord:
        now = datetime.now(tz=timezone.utc)
        data = {k: v for k, v in fields.items() if k not in _READONLY_FIELDS}
        appointment_id = str(uuid.uuid4())
        try:
            record = AppointmentRecord(id=appointment_id, created_at=now, updated_at=now, **data)
        except (ValidationError, TypeError) as exc:
            raise LocalStoreError(f"Invalid appointment data: {exc}") from exc

        async with self._locks[appointment_id]:
            self._records[appointment_id] = record
        log.info("Appointment %s created for rep %s", appointment_id, record.rep_id)
        return record

    async def update(self, appointment_id: str, fields: Mapping[str, Any]) -> AppointmentRecord:
        # Records are never removed, so a known id stays known once the lock is held.
        if appointment_id not in self._records:
            raise LocalStoreError(f"Appointment {appointment_id} not found")

        async with self._locks[appointment_id]:
            current = self._records[appointment_id]

            changes = {k: v for k, v in fields.items() if k not in _READONLY_FIELDS}
            merged = current.model_dump() | changes
            merged["updated_at"] = datetime.now(tz=timezone.utc)
            try:
                record = AppointmentRecord.model_validate(merged)
            except ValidationError as exc:
                raise LocalStoreError(f"Invalid appointment data: {exc}") from exc

            self._records[appointment_id] = record
        log.info("Appointment %s updated (%s)", appointment_id, ", ".join(sorted(changes)))
        return record

    async def get(self, appointment_id: str) -> Optional[AppointmentRecord]:
        return self._records.get(appointment_id)

    async def get_by_external_ref(self, event_id: str) -> Optional[AppointmentRecord]:
        for record in self._records.values():
            if record.external_ref_id == event_id:
                return record
        return None
