# appointment_engine/services/conflict_detector.py
"""
Conflict Detector for the appointment engine.

One rule for both uses: [s1, e1) and [s2, e2) conflict iff s1 < e2 and
s2 < e1. Slots are compared against the same interviewer's slots on the
same date; bookings against the same requester's active bookings on the
same date.
"""

from datetime import date
import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import BookingConflictException, SlotConflictException
from ..domain.intervals import TimeRange
from ..models.booking import AppointmentBooking
from ..models.slot import AppointmentSlot
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.slot_repository import SlotRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class ConflictDetector(BaseService):
    """Interval-overlap checks for slots and bookings."""

    def __init__(
        self,
        db: Session,
        slot_repository: Optional[SlotRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        **kwargs,
    ):
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )

    def find_slot_conflict(
        self,
        interviewer_id: str,
        slot_date: date,
        time_range: TimeRange,
        exclude_slot_id: Optional[str] = None,
    ) -> Optional[AppointmentSlot]:
        """First slot of the interviewer on ``slot_date`` overlapping ``time_range``."""
        for slot in self.slot_repository.find_by_interviewer_and_date(
            interviewer_id, slot_date, exclude_slot_id=exclude_slot_id
        ):
            if slot.time_range.overlaps(time_range):
                return slot
        return None

    def ensure_no_slot_conflict(
        self,
        interviewer_id: str,
        slot_date: date,
        time_range: TimeRange,
        exclude_slot_id: Optional[str] = None,
    ) -> None:
        conflict = self.find_slot_conflict(interviewer_id, slot_date, time_range, exclude_slot_id)
        if conflict is not None:
            self.logger.info(
                "Slot conflict detected",
                extra={
                    "interviewer_id": interviewer_id,
                    "slot_date": slot_date.isoformat(),
                    "conflicting_slot_id": conflict.id,
                },
            )
            raise SlotConflictException(
                slot_date.isoformat(),
                str(time_range),
                str(conflict.time_range),
                conflicting_slot_id=conflict.id,
            )

    def find_booking_conflict(
        self,
        scheduled_date: date,
        time_range: TimeRange,
        *,
        user_id: Optional[str] = None,
        guest_email: Optional[str] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[AppointmentBooking]:
        """The requester's first active booking overlapping ``time_range`` that day, or None."""
        candidates = self.booking_repository.find_active_for_requester_on(
            scheduled_date,
            user_id=user_id,
            guest_email=guest_email,
            exclude_booking_id=exclude_booking_id,
        )
        for booking in candidates:
            if booking.time_range.overlaps(time_range):
                return booking
        return None

    def ensure_no_booking_conflict(
        self,
        scheduled_date: date,
        time_range: TimeRange,
        *,
        user_id: Optional[str] = None,
        guest_email: Optional[str] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        conflict = self.find_booking_conflict(
            scheduled_date,
            time_range,
            user_id=user_id,
            guest_email=guest_email,
            exclude_booking_id=exclude_booking_id,
        )
        if conflict is not None:
            raise BookingConflictException(
                details={
                    "date": scheduled_date.isoformat(),
                    "requested_time": str(time_range),
                    "conflicting_booking_id": conflict.id,
                    "conflicting_time": str(conflict.time_range),
                }
            )
