"""
Booking schemas.

Requester identity (user id or guest email) is checked by the booking
service, which raises ValidationException before touching the store.
"""

from datetime import date, datetime, time
from typing import Any, Dict, List, Optional

from pydantic import EmailStr, Field, field_validator

from ..core.constants import MAX_RATING, MIN_RATING
from ..core.enums import AppointmentStatus, BookingOutcome, PreferredContact
from .base import StandardizedModel, StrictRequestModel


class BookingCreate(StrictRequestModel):
    slot_id: str = Field(..., min_length=1)
    user_id: Optional[str] = None
    guest_name: Optional[str] = Field(None, max_length=100)
    guest_email: Optional[EmailStr] = None
    guest_phone: Optional[str] = Field(None, max_length=50)
    preferred_contact: PreferredContact = PreferredContact.EMAIL
    purpose: Optional[str] = Field(None, max_length=2000)
    questions: List[str] = Field(default_factory=list)
    membership_interest: Optional[Dict[str, Any]] = None

    @field_validator("guest_name", "purpose")
    @classmethod
    def _strip(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class BookingStatusUpdate(StrictRequestModel):
    """Privileged status change with the fields each transition may record."""

    status: AppointmentStatus
    notes: Optional[str] = Field(None, max_length=5000)
    rating: Optional[int] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    outcome: Optional[BookingOutcome] = None
    cancellation_reason: Optional[str] = Field(None, max_length=1000)
    follow_up_required: Optional[bool] = None


class RescheduleRequest(StrictRequestModel):
    new_slot_id: str = Field(..., min_length=1)
    reason: Optional[str] = Field(None, max_length=1000)


class CancelRequest(StrictRequestModel):
    reason: Optional[str] = Field(None, max_length=1000)


class BookingResponse(StandardizedModel):
    id: str
    slot_id: str
    interviewer_id: Optional[str] = None
    user_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_email: Optional[str] = None
    guest_phone: Optional[str] = None
    preferred_contact: Optional[str] = None
    appointment_type: str
    status: str
    scheduled_date: date
    scheduled_time: time
    duration_minutes: int
    timezone: str
    meeting_url: Optional[str] = None
    location: Optional[str] = None
    reminders_sent: int
    reschedule_count: int
    reschedule_reason: Optional[str] = None
    rating: Optional[int] = None
    outcome: Optional[str] = None
    booked_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    cancellation_reason: Optional[str] = None
