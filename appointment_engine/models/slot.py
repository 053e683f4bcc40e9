# appointment_engine/models/slot.py
"""
AppointmentSlot model.

A slot is a concrete, dated, capacity-bounded window for one interviewer.
``booked_count`` is only ever changed through the capacity ledger's
conditional updates; the check constraint keeps it inside [0, capacity]
at the database level as well.
"""

from datetime import date, datetime, time, timezone
import logging
from typing import Any, Dict, cast

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship

from ..core.constants import (
    DEFAULT_CANCELLATION_DEADLINE_HOURS,
    DEFAULT_SLOT_CAPACITY,
    DEFAULT_TIMEZONE,
)
from ..core.enums import InterviewType
from ..core.identifiers import new_id
from ..database import Base
from ..domain.intervals import TimeRange, format_hhmm

logger = logging.getLogger(__name__)


UTC = timezone.utc


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AppointmentSlot(Base):
    """Bookable time window owned by exactly one interviewer."""

    __tablename__ = "appointment_slots"

    id = Column(String(26), primary_key=True, index=True, default=new_id)
    interviewer_id = Column(
        String(26), ForeignKey("interviewers.id", ondelete="RESTRICT"), nullable=False
    )
    interviewer_name = Column(String(100), nullable=True)

    appointment_type = Column(String(30), nullable=False, index=True)
    slot_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    timezone = Column(String(64), nullable=False, default=DEFAULT_TIMEZONE)
    interview_type = Column(String(20), nullable=False, default=InterviewType.VIDEO_CALL.value)

    # Capacity ledger
    is_available = Column(Boolean, nullable=False, default=True)
    capacity = Column(Integer, nullable=False, default=DEFAULT_SLOT_CAPACITY)
    booked_count = Column(Integer, nullable=False, default=0)

    # Recurrence linkage
    is_recurring = Column(Boolean, nullable=False, default=False)
    parent_slot_id = Column(String(26), nullable=True, index=True)

    # Meeting details
    location = Column(String(255), nullable=True)
    meeting_url = Column(String(500), nullable=True)
    meeting_id = Column(String(100), nullable=True)
    phone_number = Column(String(50), nullable=True)

    requires_pre_approval = Column(Boolean, nullable=False, default=False)
    cancellation_deadline_hours = Column(
        Integer, nullable=False, default=DEFAULT_CANCELLATION_DEADLINE_HOURS
    )
    notes = Column(Text, nullable=True)
    created_by = Column(String(26), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    interviewer = relationship("Interviewer", back_populates="slots")

    __table_args__ = (
        Index("ix_appointment_slots_interviewer_date", "interviewer_id", "slot_date"),
        Index("ix_appointment_slots_date_type", "slot_date", "appointment_type"),
        CheckConstraint("capacity >= 1", name="ck_appointment_slots_capacity"),
        CheckConstraint(
            "booked_count >= 0 AND booked_count <= capacity",
            name="ck_appointment_slots_booked_count",
        ),
        CheckConstraint("duration_minutes > 0", name="ck_appointment_slots_duration"),
        CheckConstraint("start_time < end_time", name="ck_appointment_slots_time_order"),
    )

    def __repr__(self) -> str:
        return (
            f"<AppointmentSlot {self.id}: interviewer={self.interviewer_id}, "
            f"date={self.slot_date}, time={self.start_time}-{self.end_time}, "
            f"booked={self.booked_count}/{self.capacity}>"
        )

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.from_times(cast(time, self.start_time), cast(time, self.end_time))

    @property
    def remaining_capacity(self) -> int:
        return max(int(self.capacity) - int(self.booked_count or 0), 0)

    @property
    def is_full(self) -> bool:
        return int(self.booked_count or 0) >= int(self.capacity)

    @property
    def is_bookable(self) -> bool:
        """Offered by the availability query: open and not at capacity."""
        return bool(self.is_available) and not self.is_full

    @property
    def starts_at(self) -> datetime:
        """Start as a UTC datetime (the timezone label is informational only)."""
        return datetime.combine(
            cast(date, self.slot_date), cast(time, self.start_time), tzinfo=UTC
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "interviewer_id": self.interviewer_id,
            "interviewer_name": self.interviewer_name,
            "appointment_type": self.appointment_type,
            "date": self.slot_date.isoformat() if self.slot_date else None,
            "start_time": format_hhmm(self.start_time) if self.start_time else None,
            "end_time": format_hhmm(self.end_time) if self.end_time else None,
            "duration_minutes": self.duration_minutes,
            "timezone": self.timezone,
            "interview_type": self.interview_type,
            "is_available": self.is_available,
            "capacity": self.capacity,
            "booked_count": self.booked_count,
            "remaining_capacity": self.remaining_capacity,
            "is_recurring": self.is_recurring,
            "parent_slot_id": self.parent_slot_id,
            "requires_pre_approval": self.requires_pre_approval,
            "cancellation_deadline_hours": self.cancellation_deadline_hours,
        }
