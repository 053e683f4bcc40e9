"""
Half-open time-of-day ranges.

Ranges are kept as minutes since midnight so a range derived from a start
time plus a duration may run past 24:00 without wrapping. Two ranges
[s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1; touching ends are
adjacent, not overlapping.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import time

MINUTES_PER_DAY = 24 * 60


def time_to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def minutes_to_time(value: int) -> time:
    if not 0 <= value < MINUTES_PER_DAY:
        raise ValueError(f"{value} minutes is outside a single day")
    return time(value // 60, value % 60)


def parse_hhmm(value: str) -> time:
    """Parse an ``HH:MM`` string."""
    try:
        hour, minute = value.strip().split(":")
        return time(int(hour), int(minute))
    except (ValueError, AttributeError) as exc:
        raise ValueError(f"Invalid time format: {value!r}. Expected HH:MM format.") from exc


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def _format_minutes(value: int) -> str:
    return f"{value // 60:02d}:{value % 60:02d}"


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open overlap test on minute offsets."""
    return start_a < end_b and start_b < end_a


@dataclass(frozen=True)
class TimeRange:
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(
                f"Time range must end after it starts ({_format_minutes(self.start)}"
                f"-{_format_minutes(self.end)})"
            )

    @classmethod
    def from_times(cls, start: time, end: time) -> "TimeRange":
        return cls(time_to_minutes(start), time_to_minutes(end))

    @classmethod
    def from_duration(cls, start: time, duration_minutes: int) -> "TimeRange":
        begin = time_to_minutes(start)
        return cls(begin, begin + duration_minutes)

    @property
    def duration_minutes(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "TimeRange") -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    def shifted(self, minutes: int) -> "TimeRange":
        return TimeRange(self.start + minutes, self.end + minutes)

    def __str__(self) -> str:
        return f"{_format_minutes(self.start)}-{_format_minutes(self.end)}"
