"""
Core enums for the appointment engine.

All enums inherit from (str, Enum) so the stored column value is the
enum value itself.
"""

from enum import Enum


class AppointmentType(str, Enum):
    """Kinds of appointment a slot can offer."""

    CONSULTATION = "consultation"
    MEMBER_INTERVIEW = "member_interview"


class AppointmentStatus(str, Enum):
    """Booking lifecycle statuses. AVAILABLE only describes an unbooked slot."""

    AVAILABLE = "available"
    BOOKED = "booked"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


ACTIVE_BOOKING_STATUSES = (AppointmentStatus.BOOKED, AppointmentStatus.CONFIRMED)


class InterviewType(str, Enum):
    """How the appointment is conducted."""

    VIDEO_CALL = "video_call"
    PHONE_CALL = "phone_call"
    IN_PERSON = "in_person"


class RecurrenceType(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class BookingOutcome(str, Enum):
    """Result recorded when an interview completes."""

    APPROVED = "approved"
    REJECTED = "rejected"
    PENDING_REVIEW = "pending_review"


class PreferredContact(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    LINE = "line"
