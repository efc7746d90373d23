"""Shared fixtures: a scriptable fake calendar source and seeded stores."""

from datetime import date, datetime, time, timedelta, timezone

import pytest

from booking_engine.calendar_providers.base import (
    CalendarCredentials,
    CalendarEvent,
    ExternalCalendarSource,
    ExternalEvent,
)
from booking_engine.config import Settings
from booking_engine.engine import SchedulingEngine
from booking_engine.errors import ExternalSourceError, LocalStoreError
from booking_engine.models.appointment import AppointmentRecord
from booking_engine.stores.memory import InMemoryAppointmentStore

DAY = date(2026, 3, 16)
UTC = timezone.utc


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=UTC)


def make_record(
    appointment_id: str,
    start: str = "10:00",
    duration: int = 30,
    rep_id: str = "rep-1",
    day: date = DAY,
    external_ref_id: str | None = None,
) -> AppointmentRecord:
    return AppointmentRecord(
        id=appointment_id,
        prospect_id="prospect-1",
        rep_id=rep_id,
        scheduled_date=day,
        scheduled_time=start,
        duration_minutes=duration,
        external_ref_id=external_ref_id,
    )


class FakeCalendarSource(ExternalCalendarSource):
    """Records every call; errors and events are set per test."""

    def __init__(self, events: list[ExternalEvent] | None = None) -> None:
        self.events = events or []
        self.list_error: Exception | None = None
        self.create_error: Exception | None = None
        self.update_error: Exception | None = None
        self.next_id = "evt_1"
        self.list_calls: list[tuple[datetime, datetime]] = []
        self.created: list[CalendarEvent] = []
        self.updated: list[tuple[str, CalendarEvent]] = []

    async def list_events(self, credentials, time_min, time_max):
        self.list_calls.append((time_min, time_max))
        if self.list_error:
            raise self.list_error
        return [e for e in self.events if e.start < time_max and e.end > time_min]

    async def create_event(self, credentials, event):
        self.created.append(event)
        if self.create_error:
            raise self.create_error
        return self.next_id

    async def update_event(self, credentials, event_id, event):
        self.updated.append((event_id, event))
        if self.update_error:
            raise self.update_error
        return event_id


class FailingStore(InMemoryAppointmentStore):
    """Store whose reads and/or writes blow up."""

    def __init__(self, *args, fail_reads=False, fail_writes=False, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    async def list_for_rep(self, rep_id, day):
        if self.fail_reads:
            raise LocalStoreError("database unavailable")
        return await super().list_for_rep(rep_id, day)

    async def create(self, fields):
        if self.fail_writes:
            raise LocalStoreError("insert failed")
        return await super().create(fields)

    async def update(self, appointment_id, fields):
        if self.fail_writes:
            raise LocalStoreError("update failed")
        return await super().update(appointment_id, fields)


@pytest.fixture
def utc_settings():
    return Settings(calendar_timezone="UTC", api_key="", debug=True)


@pytest.fixture
def creds():
    return CalendarCredentials(access_token="ya29.token", refresh_token="1//refresh")


@pytest.fixture
def calendar():
    return FakeCalendarSource()


@pytest.fixture
def store():
    return InMemoryAppointmentStore([make_record("appt-1", "10:00", 30)])


@pytest.fixture
def engine(store, calendar, utc_settings):
    return SchedulingEngine(store, calendar_source=calendar, settings=utc_settings)


def external_event(event_id: str, start: datetime, minutes: int, all_day: bool = False) -> ExternalEvent:
    return ExternalEvent(id=event_id, start=start, end=start + timedelta(minutes=minutes), all_day=all_day)


def broken(message: str = "401 Unauthorized") -> ExternalSourceError:
    return ExternalSourceError(message)
