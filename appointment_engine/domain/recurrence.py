"""
Recurring slot patterns.

A RecurringPattern expands one slot template into a bounded run of dates.
Every date yielded consumes one occurrence, including dates that later turn
out to be closed, so a pattern always terminates within its cap.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, Optional, Tuple

from ..core.constants import DAYS_PER_WEEK, DEFAULT_MAX_OCCURRENCES
from ..core.enums import RecurrenceType


def js_weekday(value: date) -> int:
    """Weekday number with 0=Sunday ... 6=Saturday."""
    return (value.weekday() + 1) % 7


def add_months(value: date, months: int) -> date:
    """Add calendar months, clamping to the end of shorter months."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(value.day, last_day))


@dataclass(frozen=True)
class RecurringPattern:
    type: RecurrenceType
    interval: int = 1
    days_of_week: Optional[Tuple[int, ...]] = None
    end_date: Optional[date] = None
    max_occurrences: Optional[int] = None

    def __post_init__(self) -> None:
        if self.interval < 1:
            raise ValueError("Recurrence interval must be at least 1")
        if self.max_occurrences is not None and self.max_occurrences < 1:
            raise ValueError("max_occurrences must be at least 1")
        if self.days_of_week is not None:
            if any(day < 0 or day > 6 for day in self.days_of_week):
                raise ValueError("days_of_week values must be between 0 (Sunday) and 6 (Saturday)")
            object.__setattr__(self, "days_of_week", tuple(sorted(set(self.days_of_week))))

    def occurrence_cap(self, default: int = DEFAULT_MAX_OCCURRENCES) -> int:
        return self.max_occurrences or default

    @property
    def filters_weekdays(self) -> bool:
        return self.type == RecurrenceType.WEEKLY and bool(self.days_of_week)

    def step(self, start: date, index: int) -> date:
        """Date of the ``index``-th unfiltered step from ``start``."""
        if self.type == RecurrenceType.DAILY:
            return start + timedelta(days=index * self.interval)
        if self.type == RecurrenceType.WEEKLY:
            return start + timedelta(weeks=index * self.interval)
        return add_months(start, index * self.interval)

    def iter_dates(
        self, start: date, default_cap: int = DEFAULT_MAX_OCCURRENCES
    ) -> Iterator[date]:
        cap = self.occurrence_cap(default_cap)
        if self.filters_weekdays:
            yield from self._iter_filtered_weeks(start, cap)
            return
        for index in range(cap):
            current = self.step(start, index)
            if self.end_date and current > self.end_date:
                return
            yield current

    def _iter_filtered_weeks(self, start: date, cap: int) -> Iterator[date]:
        # Non-matching weekdays are walked past without using up an occurrence;
        # the walk still ends after ``cap`` weeks of ``interval`` weeks each.
        wanted = set(self.days_of_week or ())
        emitted = 0
        for week in range(cap):
            week_start = start + timedelta(weeks=week * self.interval)
            for offset in range(DAYS_PER_WEEK):
                current = week_start + timedelta(days=offset)
                if js_weekday(current) not in wanted:
                    continue
                if self.end_date and current > self.end_date:
                    return
                yield current
                emitted += 1
                if emitted >= cap:
                    return
