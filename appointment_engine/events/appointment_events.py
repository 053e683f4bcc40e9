"""Appointment domain events."""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class BookingCreated:
    """Fired after a booking is committed."""

    booking_id: str
    slot_id: str
    interviewer_id: Optional[str]
    appointment_type: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingCancelled:
    """Fired after a booking is cancelled and its seat released."""

    booking_id: str
    slot_id: str
    cancelled_at: datetime
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BookingRescheduled:
    """Fired after a booking moved from one slot to another."""

    booking_id: str
    from_slot_id: str
    to_slot_id: str
    reschedule_count: int
    rescheduled_at: datetime
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class InterviewCompleted:
    """
    Fired when a member interview completes with an approved outcome.

    Consumed by the user-profile store, which marks the member's interview
    as completed and links this booking.
    """

    booking_id: str
    user_id: str
    interviewer_id: Optional[str]
    outcome: str
    completed_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
