"""Request and response DTOs for the appointment engine."""

from .booking import (
    BookingCreate,
    BookingResponse,
    BookingStatusUpdate,
    CancelRequest,
    RescheduleRequest,
)
from .interviewer import (
    DayAvailabilitySchema,
    InterviewerCreate,
    InterviewerPerformance,
    InterviewerResponse,
    InterviewerUpdate,
)
from .slot import (
    RecurringPatternSchema,
    SkippedDate,
    SlotBatchResult,
    SlotCreate,
    SlotResponse,
    SlotUpdate,
)
from .stats import AppointmentStatistics, BookingStatistics, SlotStatistics

__all__ = [
    "AppointmentStatistics",
    "BookingCreate",
    "BookingResponse",
    "BookingStatistics",
    "BookingStatusUpdate",
    "CancelRequest",
    "DayAvailabilitySchema",
    "InterviewerCreate",
    "InterviewerPerformance",
    "InterviewerResponse",
    "InterviewerUpdate",
    "RecurringPatternSchema",
    "RescheduleRequest",
    "SkippedDate",
    "SlotBatchResult",
    "SlotCreate",
    "SlotResponse",
    "SlotStatistics",
    "SlotUpdate",
]
