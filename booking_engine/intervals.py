"""Half-open time intervals used for busy/free reasoning.

All instants are timezone-aware.  Two intervals conflict when
``a.start < b.end and a.end > b.start``, so back-to-back intervals
(one ending exactly when the next starts) do not conflict.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo


@dataclass(frozen=True, order=True)
class TimeInterval:
    """A ``[start, end)`` range of time."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("TimeInterval bounds must be timezone-aware")
        if not self.start < self.end:
            raise ValueError(
                f"TimeInterval start must precede end ({self.start} >= {self.end})"
            )

    @classmethod
    def from_duration(cls, start: datetime, minutes: int) -> TimeInterval:
        return cls(start, start + timedelta(minutes=minutes))

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: TimeInterval) -> bool:
        return self.start < other.end and self.end > other.start


def day_window(day: date, tz: tzinfo) -> TimeInterval:
    """The ``[00:00, next 00:00)`` window of *day* in *tz*."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    return TimeInterval(start, end)


def merge_intervals(intervals: list[TimeInterval]) -> list[TimeInterval]:
    """Sort and coalesce overlapping or touching intervals.

    Touching intervals are merged too; under the half-open rule a slot can
    never fit into a zero-length gap, so the free set is unchanged.
    """
    merged: list[TimeInterval] = []
    for interval in sorted(intervals):
        if merged and interval.start <= merged[-1].end:
            last = merged[-1]
            if interval.end > last.end:
                merged[-1] = TimeInterval(last.start, interval.end)
        else:
            merged.append(interval)
    return merged
