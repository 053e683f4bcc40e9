# appointment_engine/models/interviewer.py
"""
Interviewer model.

An interviewer owns a weekly availability document (one entry per weekday
with an open window and breaks), booking preferences and rolling
performance counters. Interviewers are soft-deactivated rather than deleted
while bookings still reference them.
"""

from datetime import datetime, timezone
import logging
from typing import Any, Dict, List

from sqlalchemy import JSON, Boolean, CheckConstraint, Column, DateTime, Float, Integer, String
from sqlalchemy.orm import relationship

from ..core.constants import (
    DEFAULT_ADVANCE_BOOKING_DAYS,
    DEFAULT_BUFFER_TIME_MINUTES,
    DEFAULT_MAX_DAILY_APPOINTMENTS,
)
from ..core.identifiers import new_id
from ..database import Base
from ..domain.availability import WeeklyAvailability

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Interviewer(Base):
    """
    Model representing an interviewer.

    Attributes:
        appointment_types: Appointment kinds this interviewer handles
        interview_types: Supported modalities (video_call, phone_call, in_person)
        default_availability: Weekly availability keyed by weekday name
        buffer_time_minutes: Gap inserted between generated slots
        advance_booking_days: How far ahead a slot may be booked
        auto_approval: Bookings skip the pre-approval step when set
        total_appointments / completed_appointments / average_rating / rating_count:
            Rolling counters maintained by the booking workflow
    """

    __tablename__ = "interviewers"

    id = Column(String(26), primary_key=True, index=True, default=new_id)
    user_id = Column(String(26), nullable=True, index=True)

    name = Column(String(100), nullable=False)
    title = Column(String(100), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    appointment_types = Column(JSON, nullable=False, default=list)
    interview_types = Column(JSON, nullable=False, default=list)
    languages = Column(JSON, nullable=False, default=list)
    specialties = Column(JSON, nullable=False, default=list)

    is_active = Column(Boolean, nullable=False, default=True, index=True)
    default_availability = Column(JSON, nullable=False, default=dict)

    # Booking preferences
    max_daily_appointments = Column(Integer, nullable=False, default=DEFAULT_MAX_DAILY_APPOINTMENTS)
    buffer_time_minutes = Column(Integer, nullable=False, default=DEFAULT_BUFFER_TIME_MINUTES)
    advance_booking_days = Column(Integer, nullable=False, default=DEFAULT_ADVANCE_BOOKING_DAYS)
    auto_approval = Column(Boolean, nullable=False, default=False)

    # Rolling performance counters
    total_appointments = Column(Integer, nullable=False, default=0)
    completed_appointments = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0.0)
    rating_count = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    slots = relationship("AppointmentSlot", back_populates="interviewer", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("max_daily_appointments >= 1", name="ck_interviewers_max_daily"),
        CheckConstraint("buffer_time_minutes >= 0", name="ck_interviewers_buffer"),
        CheckConstraint("advance_booking_days >= 1", name="ck_interviewers_advance_days"),
    )

    def __repr__(self) -> str:
        return f"<Interviewer {self.id}: {self.name} active={self.is_active}>"

    @property
    def availability(self) -> WeeklyAvailability:
        return WeeklyAvailability.from_dict(self.default_availability)

    def supports_appointment_type(self, appointment_type: str) -> bool:
        return appointment_type in (self.appointment_types or [])

    def supports_interview_type(self, interview_type: str) -> bool:
        return interview_type in (self.interview_types or [])

    def to_dict(self) -> Dict[str, Any]:
        supported: List[str] = list(self.appointment_types or [])
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "title": self.title,
            "email": self.email,
            "phone": self.phone,
            "appointment_types": supported,
            "interview_types": list(self.interview_types or []),
            "languages": list(self.languages or []),
            "specialties": list(self.specialties or []),
            "is_active": self.is_active,
            "default_availability": self.default_availability or {},
            "max_daily_appointments": self.max_daily_appointments,
            "buffer_time_minutes": self.buffer_time_minutes,
            "advance_booking_days": self.advance_booking_days,
            "auto_approval": self.auto_approval,
            "total_appointments": self.total_appointments,
            "completed_appointments": self.completed_appointments,
            "average_rating": self.average_rating,
            "rating_count": self.rating_count,
        }
