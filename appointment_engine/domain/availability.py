"""
Weekly availability of an interviewer.

One DayAvailability per weekday: an enabled flag, an open window and an
ordered list of breaks. A day whose window does not close after it opens
is treated as closed. A candidate range is open when it lies inside the
window and overlaps no break under half-open semantics, so a range that
ends exactly where a break starts is allowed.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, time
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from ..core.constants import WEEKDAY_NAMES
from .intervals import TimeRange, format_hhmm, parse_hhmm


def weekday_name(value: date) -> str:
    return WEEKDAY_NAMES[value.weekday()]


def _as_time(value: Any) -> time:
    return value if isinstance(value, time) else parse_hhmm(str(value))


@dataclass(frozen=True)
class BreakInterval:
    start_time: time
    end_time: time

    @property
    def range(self) -> TimeRange:
        return TimeRange.from_times(self.start_time, self.end_time)

    def to_dict(self) -> Dict[str, str]:
        return {"start_time": format_hhmm(self.start_time), "end_time": format_hhmm(self.end_time)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BreakInterval":
        return cls(_as_time(data["start_time"]), _as_time(data["end_time"]))


@dataclass(frozen=True)
class DayAvailability:
    enabled: bool
    start_time: time
    end_time: time
    break_times: Tuple[BreakInterval, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.break_times, key=lambda b: b.start_time))
        object.__setattr__(self, "break_times", ordered)

    @property
    def is_open_day(self) -> bool:
        """Enabled with a window that closes after it opens."""
        return self.enabled and self.start_time < self.end_time

    @property
    def window(self) -> TimeRange:
        return TimeRange.from_times(self.start_time, self.end_time)

    def is_range_open(self, candidate: TimeRange) -> bool:
        """Whether ``candidate`` fits the open window and avoids every break."""
        if not self.is_open_day:
            return False
        if not self.window.contains(candidate):
            return False
        # Breaks that end before they start cover nothing.
        return not any(
            candidate.overlaps(b.range) for b in self.break_times if b.start_time < b.end_time
        )

    def is_open(self, start: time, end: time) -> bool:
        return self.is_range_open(TimeRange.from_times(start, end))

    def iter_sub_slots(self, duration_minutes: int, buffer_minutes: int = 0) -> Iterator[TimeRange]:
        """
        Back-to-back fixed-width sub-slots inside the open window.

        The cursor advances by ``duration + buffer`` each step whether or not the
        candidate is kept; candidates hitting a break or running past close are
        dropped.
        """
        if duration_minutes <= 0:
            raise ValueError("Sub-slot duration must be positive")
        if buffer_minutes < 0:
            raise ValueError("Buffer minutes cannot be negative")
        if not self.is_open_day:
            return
        window = self.window
        cursor = window.start
        while cursor < window.end:
            candidate = TimeRange(cursor, cursor + duration_minutes)
            if candidate.end <= window.end and self.is_range_open(candidate):
                yield candidate
            cursor += duration_minutes + buffer_minutes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "start_time": format_hhmm(self.start_time),
            "end_time": format_hhmm(self.end_time),
            "break_times": [b.to_dict() for b in self.break_times],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DayAvailability":
        return cls(
            enabled=bool(data.get("enabled", False)),
            start_time=_as_time(data.get("start_time", "00:00")),
            end_time=_as_time(data.get("end_time", "00:00")),
            break_times=tuple(BreakInterval.from_dict(b) for b in data.get("break_times") or []),
        )

    @classmethod
    def closed(cls) -> "DayAvailability":
        return cls(enabled=False, start_time=time(0, 0), end_time=time(0, 0))


@dataclass(frozen=True)
class WeeklyAvailability:
    days: Mapping[str, DayAvailability] = field(default_factory=dict)

    def for_weekday(self, name: str) -> Optional[DayAvailability]:
        return self.days.get(name.lower())

    def for_date(self, value: date) -> Optional[DayAvailability]:
        return self.for_weekday(weekday_name(value))

    def is_open(self, value: date, start: time, end: time) -> bool:
        """Missing weekdays are treated as closed."""
        day = self.for_date(value)
        if day is None:
            return False
        try:
            candidate = TimeRange.from_times(start, end)
        except ValueError:
            return False
        return day.is_range_open(candidate)

    def with_day(self, name: str, day: DayAvailability) -> "WeeklyAvailability":
        key = name.lower()
        if key not in WEEKDAY_NAMES:
            raise ValueError(f"Unknown weekday: {name}")
        return replace(self, days={**self.days, key: day})

    def enabled_weekdays(self) -> List[str]:
        return [name for name in WEEKDAY_NAMES if (d := self.days.get(name)) and d.enabled]

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {name: self.days[name].to_dict() for name in WEEKDAY_NAMES if name in self.days}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "WeeklyAvailability":
        days: Dict[str, DayAvailability] = {}
        for name, entry in (data or {}).items():
            key = name.lower()
            if key in WEEKDAY_NAMES and entry is not None:
                days[key] = DayAvailability.from_dict(entry)
        return cls(days=days)
