"""Pure scheduling rules: intervals, weekly availability, recurrence and lifecycle."""

from .availability import BreakInterval, DayAvailability, WeeklyAvailability, weekday_name
from .intervals import TimeRange, format_hhmm, overlaps, parse_hhmm
from .lifecycle import ALLOWED_TRANSITIONS, TERMINAL_STATUSES, can_transition, ensure_transition
from .recurrence import RecurringPattern, js_weekday

__all__ = [
    "ALLOWED_TRANSITIONS",
    "BreakInterval",
    "DayAvailability",
    "RecurringPattern",
    "TERMINAL_STATUSES",
    "TimeRange",
    "WeeklyAvailability",
    "can_transition",
    "ensure_transition",
    "format_hhmm",
    "js_weekday",
    "overlaps",
    "parse_hhmm",
    "weekday_name",
]
