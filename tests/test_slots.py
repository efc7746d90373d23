"""Tests for TimeInterval and the slot calculator."""

from datetime import date, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from booking_engine.intervals import TimeInterval, day_window, merge_intervals
from booking_engine.slots import compute_free_slots, quantized_starts

from conftest import DAY, UTC, at


def busy(start_h, start_m, end_h, end_m):
    return TimeInterval(at(start_h, start_m), at(end_h, end_m))


# ── TimeInterval ───────────────────────────────────────────────────


class TestTimeInterval:
    def test_start_must_precede_end(self):
        with pytest.raises(ValueError):
            TimeInterval(at(10), at(10))
        with pytest.raises(ValueError):
            TimeInterval(at(11), at(10))

    def test_naive_bounds_rejected(self):
        with pytest.raises(ValueError):
            TimeInterval(at(10).replace(tzinfo=None), at(11).replace(tzinfo=None))

    def test_back_to_back_do_not_overlap(self):
        a = busy(9, 30, 10, 0)
        b = busy(10, 0, 10, 30)
        assert not a.overlaps(b)
        assert not b.overlaps(a)

    def test_partial_overlap(self):
        assert busy(9, 45, 10, 15).overlaps(busy(10, 0, 10, 30))

    def test_containment_overlaps(self):
        assert busy(9, 0, 12, 0).overlaps(busy(10, 0, 10, 30))

    def test_from_duration(self):
        interval = TimeInterval.from_duration(at(10), 45)
        assert interval.end == at(10, 45)
        assert interval.duration == timedelta(minutes=45)

    def test_day_window(self):
        window = day_window(DAY, UTC)
        assert window.start == at(0)
        assert window.end == at(0, day=DAY + timedelta(days=1))


class TestMergeIntervals:
    def test_merges_overlapping_and_touching(self):
        merged = merge_intervals([
            busy(13, 0, 14, 0),
            busy(9, 0, 10, 0),
            busy(9, 30, 10, 30),
            busy(10, 30, 11, 0),
        ])
        assert merged == [busy(9, 0, 11, 0), busy(13, 0, 14, 0)]

    def test_nested_interval_absorbed(self):
        assert merge_intervals([busy(9, 0, 12, 0), busy(10, 0, 10, 30)]) == [busy(9, 0, 12, 0)]

    def test_empty(self):
        assert merge_intervals([]) == []


# ── Slot calculator ───────────────────────────────────────────────


class TestQuantizedStarts:
    def test_96_starts_per_day(self):
        starts = quantized_starts(DAY, UTC, 15)
        assert len(starts) == 96
        assert starts[0] == at(0)
        assert starts[-1] == at(23, 45)

    def test_rejects_bad_granularity(self):
        with pytest.raises(ValueError):
            quantized_starts(DAY, UTC, 7)


class TestComputeFreeSlots:
    def test_single_appointment_scenario(self):
        """One 10:00–10:30 appointment, 30-minute request."""
        slots = compute_free_slots([busy(10, 0, 10, 30)], DAY, 30, UTC)

        assert time(9, 30) in slots      # ends exactly at busy start
        assert time(9, 45) not in slots  # [09:45, 10:15) conflicts
        assert time(10, 0) not in slots
        assert time(10, 15) not in slots
        assert time(10, 30) in slots     # starts exactly at busy end

    def test_empty_day_all_slots_free(self):
        slots = compute_free_slots([], DAY, 15, UTC)
        assert len(slots) == 96
        assert slots == sorted(slots)

    @pytest.mark.parametrize("busy_slots", [0, 1, 4, 10, 37, 96])
    def test_count_is_96_minus_busy(self, busy_slots):
        """Non-overlapping busy blocks covering N quantized slots leave 96 - N."""
        # Even slots first, then odd ones, so small N are scattered across the day.
        order = list(range(0, 96, 2)) + list(range(1, 96, 2))
        intervals = [
            TimeInterval.from_duration(at(0) + timedelta(minutes=15 * index), 15)
            for index in order[:busy_slots]
        ]
        slots = compute_free_slots(intervals, DAY, 15, UTC)
        assert len(slots) == 96 - busy_slots

    def test_no_returned_slot_conflicts(self):
        blocks = [
            busy(8, 10, 9, 5),
            busy(12, 0, 13, 30),
            busy(12, 45, 14, 0),
            busy(17, 20, 17, 40),
        ]
        slots = compute_free_slots(blocks, DAY, 45, UTC)
        assert slots
        for slot in slots:
            start = at(slot.hour, slot.minute)
            end = start + timedelta(minutes=45)
            for block in blocks:
                assert not (start < block.end and end > block.start)

    def test_unmerged_and_merged_input_agree(self):
        blocks = [busy(9, 0, 10, 0), busy(9, 30, 11, 0), busy(10, 45, 11, 15)]
        assert compute_free_slots(blocks, DAY, 30, UTC) == compute_free_slots(
            merge_intervals(blocks), DAY, 30, UTC
        )

    def test_idempotent(self):
        blocks = [busy(11, 0, 12, 0)]
        assert compute_free_slots(blocks, DAY, 60, UTC) == compute_free_slots(blocks, DAY, 60, UTC)

    def test_full_day_busy_returns_empty(self):
        window = day_window(DAY, UTC)
        assert compute_free_slots([window], DAY, 30, UTC) == []

    def test_midnight_crossing_excluded_by_default(self):
        slots = compute_free_slots([], DAY, 60, UTC)
        assert slots[-1] == time(23, 0)
        assert time(23, 15) not in slots

    def test_midnight_crossing_opt_in(self):
        slots = compute_free_slots([], DAY, 60, UTC, allow_midnight_crossing=True)
        assert slots[-1] == time(23, 45)
        assert len(slots) == 96

    def test_busy_interval_from_previous_day_blocks_morning(self):
        overnight = TimeInterval(at(22, day=DAY - timedelta(days=1)), at(1))
        slots = compute_free_slots([overnight], DAY, 30, UTC)
        assert slots[0] == time(1, 0)

    def test_non_utc_timezone(self):
        tz = timezone(timedelta(hours=-6))
        local_busy = TimeInterval.from_duration(
            at(16),  # 16:00 UTC == 10:00 at UTC-6
            30,
        )
        slots = compute_free_slots([local_busy], DAY, 30, tz)
        assert time(10, 0) not in slots
        assert time(9, 30) in slots
        assert time(10, 30) in slots

    def test_rejects_non_positive_duration(self):
        with pytest.raises(ValueError):
            compute_free_slots([], DAY, 0, UTC)


class TestDaylightSaving:
    CHICAGO = ZoneInfo("America/Chicago")

    def test_spring_forward_skips_missing_wall_times(self):
        starts = quantized_starts(date(2026, 3, 8), self.CHICAGO, 15)
        wall = [s.time() for s in starts]
        assert len(starts) == 92
        assert time(1, 45) in wall
        assert time(2, 15) not in wall
        assert time(3, 0) in wall

    def test_spring_forward_slots_never_offer_gap(self):
        slots = compute_free_slots([], date(2026, 3, 8), 30, self.CHICAGO)
        assert all(not (time(2, 0) <= slot < time(3, 0)) for slot in slots)

    def test_fall_back_day_keeps_96_starts(self):
        starts = quantized_starts(date(2026, 11, 1), self.CHICAGO, 15)
        assert len(starts) == 96
