"""Outbound appointment events."""

from .appointment_events import (
    BookingCancelled,
    BookingCreated,
    BookingRescheduled,
    InterviewCompleted,
)
from .publisher import EventListener, EventPublisher

__all__ = [
    "BookingCancelled",
    "BookingCreated",
    "BookingRescheduled",
    "EventListener",
    "EventPublisher",
    "InterviewCompleted",
]
