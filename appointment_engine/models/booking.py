# appointment_engine/models/booking.py
"""
AppointmentBooking model.

A booking is a requester's claim on one seat of a slot. It stores a copy of
the slot's date, time, duration and timezone so it stays meaningful after
the slot is edited or deleted, which is why ``slot_id`` is a plain column
rather than a foreign key. Bookings are never physically deleted;
cancellation is a status.
"""

from datetime import date, datetime, time, timezone
import logging
from typing import Any, Dict, Optional, cast

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Index,
    Integer,
    String,
    Text,
    Time,
)

from ..core.constants import DEFAULT_TIMEZONE
from ..core.enums import AppointmentStatus
from ..core.identifiers import new_id
from ..database import Base
from ..domain import lifecycle
from ..domain.intervals import TimeRange, format_hhmm

logger = logging.getLogger(__name__)

UTC = timezone.utc


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AppointmentBooking(Base):
    """
    Booking of one seat on an appointment slot.

    The requester is either an authenticated user (``user_id``) or a guest
    identified by ``guest_email``; at least one is always set. Lifecycle
    methods validate the transition before stamping timestamps, so an
    illegal change raises instead of being coerced.
    """

    __tablename__ = "appointment_bookings"

    id = Column(String(26), primary_key=True, index=True, default=new_id)
    slot_id = Column(String(26), nullable=False)
    interviewer_id = Column(String(26), nullable=True, index=True)

    # Requester (user or guest)
    user_id = Column(String(26), nullable=True)
    guest_name = Column(String(100), nullable=True)
    guest_email = Column(String(255), nullable=True)
    guest_phone = Column(String(50), nullable=True)
    preferred_contact = Column(String(20), nullable=True)

    # Schedule snapshot
    appointment_type = Column(String(30), nullable=False)
    status = Column(String(20), nullable=False, default=AppointmentStatus.BOOKED.value, index=True)
    scheduled_date = Column(Date, nullable=False)
    scheduled_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)

    # Intake
    purpose = Column(Text, nullable=True)
    questions = Column(JSON, nullable=False, default=list)
    membership_interest = Column(JSON, nullable=True)

    # Meeting details copied from the slot
    meeting_url = Column(String(500), nullable=True)
    meeting_id = Column(String(100), nullable=True)
    dial_in_number = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)

    # Follow-up
    confirmation_sent = Column(Boolean, nullable=False, default=False)
    reminders_sent = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    outcome = Column(String(20), nullable=True)
    interview_notes = Column(Text, nullable=True)
    rating = Column(Integer, nullable=True)
    follow_up_required = Column(Boolean, nullable=False, default=False)

    # Timestamps
    booked_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(Text, nullable=True)
    reschedule_count = Column(Integer, nullable=False, default=0)
    reschedule_reason = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    __table_args__ = (
        Index("ix_appointment_bookings_user_id", "user_id"),
        Index("ix_appointment_bookings_guest_email", "guest_email"),
        Index("ix_appointment_bookings_slot_id", "slot_id"),
        Index("ix_appointment_bookings_scheduled_date", "scheduled_date"),
        CheckConstraint(
            "user_id IS NOT NULL OR guest_email IS NOT NULL",
            name="ck_appointment_bookings_requester",
        ),
        CheckConstraint("reminders_sent >= 0", name="ck_appointment_bookings_reminders"),
        CheckConstraint("reschedule_count >= 0", name="ck_appointment_bookings_reschedules"),
        CheckConstraint(
            "rating IS NULL OR (rating >= 1 AND rating <= 5)",
            name="ck_appointment_bookings_rating",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<AppointmentBooking {self.id}: slot={self.slot_id}, "
            f"date={self.scheduled_date}, time={self.scheduled_time}, status={self.status}>"
        )

    @property
    def is_active(self) -> bool:
        return lifecycle.is_active(cast(str, self.status))

    @property
    def is_guest(self) -> bool:
        return self.user_id is None

    @property
    def requester(self) -> Dict[str, Optional[str]]:
        """Filter identifying the owner: user id when present, guest email otherwise."""
        if self.user_id:
            return {"user_id": self.user_id}
        return {"guest_email": self.guest_email}

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.from_duration(cast(time, self.scheduled_time), int(self.duration_minutes))

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(
            cast(date, self.scheduled_date), cast(time, self.scheduled_time), tzinfo=UTC
        )

    def hours_until(self, now: datetime) -> float:
        return (self.starts_at - now).total_seconds() / 3600

    # Lifecycle transitions

    def confirm(self, now: datetime) -> None:
        lifecycle.ensure_transition(self.status, AppointmentStatus.CONFIRMED, self.id)
        self.status = AppointmentStatus.CONFIRMED.value
        self.confirmed_at = now
        logger.info(f"Booking {self.id} confirmed")

    def complete(
        self,
        now: datetime,
        *,
        rating: Optional[int] = None,
        outcome: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        lifecycle.ensure_transition(self.status, AppointmentStatus.COMPLETED, self.id)
        self.status = AppointmentStatus.COMPLETED.value
        self.completed = True
        self.completed_at = now
        if rating is not None:
            self.rating = rating
        if outcome is not None:
            self.outcome = outcome
        if notes is not None:
            self.interview_notes = notes
        logger.info(f"Booking {self.id} marked as completed")

    def cancel(self, now: datetime, reason: Optional[str] = None) -> None:
        lifecycle.ensure_transition(self.status, AppointmentStatus.CANCELLED, self.id)
        self.status = AppointmentStatus.CANCELLED.value
        self.cancelled_at = now
        self.cancellation_reason = reason
        logger.info(f"Booking {self.id} cancelled")

    def mark_no_show(self, now: datetime) -> None:
        lifecycle.ensure_transition(self.status, AppointmentStatus.NO_SHOW, self.id)
        self.status = AppointmentStatus.NO_SHOW.value
        logger.info(f"Booking {self.id} marked as no-show")

    def move_to_slot(self, slot: Any, reason: Optional[str] = None) -> None:
        """Point the booking at ``slot`` and re-enter the pipeline at booked."""
        self.slot_id = slot.id
        self.interviewer_id = slot.interviewer_id
        self.scheduled_date = slot.slot_date
        self.scheduled_time = slot.start_time
        self.duration_minutes = slot.duration_minutes
        self.timezone = slot.timezone
        self.meeting_url = slot.meeting_url
        self.meeting_id = slot.meeting_id
        self.dial_in_number = slot.phone_number
        self.location = slot.location
        self.status = AppointmentStatus.BOOKED.value
        self.confirmed_at = None
        self.reschedule_count = int(self.reschedule_count or 0) + 1
        self.reschedule_reason = reason

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "slot_id": self.slot_id,
            "interviewer_id": self.interviewer_id,
            "user_id": self.user_id,
            "guest_name": self.guest_name,
            "guest_email": self.guest_email,
            "appointment_type": self.appointment_type,
            "status": self.status,
            "scheduled_date": self.scheduled_date.isoformat() if self.scheduled_date else None,
            "scheduled_time": format_hhmm(self.scheduled_time) if self.scheduled_time else None,
            "duration_minutes": self.duration_minutes,
            "timezone": self.timezone,
            "reminders_sent": self.reminders_sent,
            "reschedule_count": self.reschedule_count,
            "reschedule_reason": self.reschedule_reason,
            "rating": self.rating,
            "outcome": self.outcome,
            "cancellation_reason": self.cancellation_reason,
        }
