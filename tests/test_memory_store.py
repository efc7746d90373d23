"""Tests for InMemoryAppointmentStore."""

import asyncio
from datetime import time

import pytest

from booking_engine.errors import LocalStoreError
from booking_engine.stores.base import AppointmentStore
from booking_engine.stores.memory import InMemoryAppointmentStore

from conftest import DAY, make_record


def new_fields(**overrides):
    fields = {
        "prospect_id": "prospect-1",
        "rep_id": "rep-1",
        "scheduled_date": DAY,
        "scheduled_time": time(9, 0),
        "duration_minutes": 30,
    }
    fields.update(overrides)
    return fields


class TestAppointmentStoreABC:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            AppointmentStore()


class TestCreate:
    async def test_assigns_id_and_timestamps(self):
        store = InMemoryAppointmentStore()
        record = await store.create(new_fields())

        assert record.id
        assert record.created_at is not None
        assert record.created_at == record.updated_at
        assert record.status == "confirmed"
        assert await store.get(record.id) == record

    async def test_ignores_caller_supplied_id(self):
        store = InMemoryAppointmentStore()
        record = await store.create(new_fields(id="chosen"))
        assert record.id != "chosen"

    async def test_invalid_data_is_local_store_error(self):
        store = InMemoryAppointmentStore()
        with pytest.raises(LocalStoreError, match="Invalid appointment data"):
            await store.create(new_fields(scheduled_date="not-a-date"))
        assert len(store) == 0


class TestUpdate:
    async def test_merges_changes(self):
        store = InMemoryAppointmentStore([make_record("appt-1")])
        record = await store.update("appt-1", {"scheduled_time": time(14, 0), "notes": "gate code 42"})

        assert record.scheduled_time == time(14, 0)
        assert record.notes == "gate code 42"
        assert record.rep_id == "rep-1"
        assert record.updated_at is not None

    async def test_readonly_fields_untouched(self):
        store = InMemoryAppointmentStore([make_record("appt-1")])
        record = await store.update("appt-1", {"id": "hijack"})
        assert record.id == "appt-1"
        assert await store.get("hijack") is None

    async def test_unknown_id(self):
        store = InMemoryAppointmentStore()
        with pytest.raises(LocalStoreError, match="not found"):
            await store.update("missing", {"notes": "x"})

    async def test_unknown_id_leaves_no_lock_behind(self):
        store = InMemoryAppointmentStore([make_record("appt-1")])
        for n in range(5):
            with pytest.raises(LocalStoreError):
                await store.update(f"missing-{n}", {"notes": "x"})
        await store.update("appt-1", {"notes": "y"})
        assert set(store._locks) == {"appt-1"}

    async def test_concurrent_updates_to_one_record_all_apply(self):
        store = InMemoryAppointmentStore([make_record("appt-1")])
        await asyncio.gather(
            store.update("appt-1", {"notes": "first"}),
            store.update("appt-1", {"place": "Suite 200"}),
        )
        record = await store.get("appt-1")
        assert record.notes == "first"
        assert record.place == "Suite 200"


class TestQueries:
    async def test_list_for_rep_filters_and_sorts(self):
        store = InMemoryAppointmentStore([
            make_record("late", "16:00"),
            make_record("early", "08:00"),
            make_record("other", "09:00", rep_id="rep-2"),
        ])
        listed = await store.list_for_rep("rep-1", DAY)
        assert [r.id for r in listed] == ["early", "late"]

    async def test_get_by_external_ref(self):
        store = InMemoryAppointmentStore([make_record("appt-1", external_ref_id="gcal-1")])
        found = await store.get_by_external_ref("gcal-1")
        assert found.id == "appt-1"
        assert await store.get_by_external_ref("gcal-2") is None
