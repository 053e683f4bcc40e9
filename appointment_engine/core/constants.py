"""Engine-wide constants for appointment scheduling."""

from __future__ import annotations

# Slot defaults
DEFAULT_SLOT_DURATION_MINUTES = 30
DEFAULT_SLOT_CAPACITY = 1
DEFAULT_CANCELLATION_DEADLINE_HOURS = 24
DEFAULT_TIMEZONE = "Asia/Taipei"

# Recurrence
DEFAULT_MAX_OCCURRENCES = 52  # one year of weekly slots
DAYS_PER_WEEK = 7

# Reminders
MAX_REMINDERS_PER_BOOKING = 3
DEFAULT_REMINDER_LEAD_HOURS = 24

# Interviewer defaults
DEFAULT_MAX_DAILY_APPOINTMENTS = 8
DEFAULT_BUFFER_TIME_MINUTES = 15
DEFAULT_ADVANCE_BOOKING_DAYS = 30

# Ratings
MIN_RATING = 1
MAX_RATING = 5

# Query limits
DEFAULT_TOP_PERFORMERS_LIMIT = 5

# Availability is keyed by these names; index matches date.weekday()
WEEKDAY_NAMES = [
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
]
