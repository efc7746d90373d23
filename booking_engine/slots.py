"""Slot calculator: busy intervals for one day -> free quantized start times."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo

from booking_engine.intervals import TimeInterval, day_window, merge_intervals

DEFAULT_GRANULARITY_MINUTES = 15


def _exists(local: datetime) -> bool:
    """False for wall times skipped by a DST gap (they do not survive a UTC round trip)."""
    round_trip = local.astimezone(timezone.utc).astimezone(local.tzinfo)
    return round_trip.replace(tzinfo=None) == local.replace(tzinfo=None)


def quantized_starts(day: date, tz: tzinfo, granularity_minutes: int) -> list[datetime]:
    """Every wall-clock start in ``[00:00, 24:00)`` on *day*, *granularity* apart.

    Wall times that do not exist on *day* (spring-forward gap) are left out,
    so a DST day in a zone like America/Chicago yields 92 fifteen-minute starts.
    """
    if granularity_minutes <= 0 or 1440 % granularity_minutes:
        raise ValueError(
            f"granularity must be a positive divisor of 1440, got {granularity_minutes}"
        )
    starts = []
    for offset in range(0, 24 * 60, granularity_minutes):
        hour, minute = divmod(offset, 60)
        start = datetime.combine(day, time(hour, minute), tzinfo=tz)
        if _exists(start):
            starts.append(start)
    return starts


def compute_free_slots(
    busy: list[TimeInterval],
    day: date,
    duration_minutes: int,
    tz: tzinfo,
    granularity_minutes: int = DEFAULT_GRANULARITY_MINUTES,
    allow_midnight_crossing: bool = False,
) -> list[time]:
    """Return the quantized start times on *day* that conflict with nothing in *busy*.

    Args:
        busy: Busy intervals, unsorted and possibly overlapping.
        day: The calendar day to enumerate, in *tz*.
        duration_minutes: Length of the slot being booked.
        tz: Working timezone.
        granularity_minutes: Step between candidate starts.
        allow_midnight_crossing: Keep slots whose end falls after midnight.

    Returns:
        Ascending list of start times.  May be empty.
    """
    if duration_minutes <= 0:
        raise ValueError(f"duration must be positive, got {duration_minutes}")

    blocks = merge_intervals(busy)
    day_end = day_window(day, tz).end
    length = timedelta(minutes=duration_minutes)

    free: list[time] = []
    for slot_start in quantized_starts(day, tz, granularity_minutes):
        slot_end = slot_start + length
        if slot_end > day_end and not allow_midnight_crossing:
            continue
        slot = TimeInterval(slot_start, slot_end)
        if not any(slot.overlaps(block) for block in blocks):
            free.append(slot_start.time())
    return free
