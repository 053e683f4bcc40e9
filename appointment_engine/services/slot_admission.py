# appointment_engine/services/slot_admission.py
"""
Slot admission rules for the appointment engine.

Whether a slot may take one more booking right now: the slot is open and
has a free seat, its interviewer is active, it has not started, it lies
inside the interviewer's advance-booking window, and opening it would not
exceed the interviewer's daily cap. New bookings and reschedules both pass
through here before the ledger reserves a seat.
"""

from datetime import timedelta
import logging
from typing import Any, Optional, cast

from sqlalchemy.orm import Session

from ..core.exceptions import (
    CapacityExhaustedException,
    FailedPreconditionException,
    SlotUnavailableException,
)
from ..models.interviewer import Interviewer
from ..models.slot import AppointmentSlot
from ..repositories import RepositoryFactory
from ..repositories.interviewer_repository import InterviewerRepository
from ..repositories.slot_repository import SlotRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class SlotAdmission(BaseService):
    def __init__(
        self,
        db: Session,
        slot_repository: Optional[SlotRepository] = None,
        interviewer_repository: Optional[InterviewerRepository] = None,
        **kwargs,
    ):
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)
        self.interviewer_repository = (
            interviewer_repository or RepositoryFactory.create_interviewer_repository(db)
        )

    def ensure_admissible(
        self, slot: AppointmentSlot, moving_from: Optional[AppointmentSlot] = None
    ) -> Interviewer:
        """
        Check that ``slot`` can take one more booking.

        ``moving_from`` is the slot a rescheduled booking is leaving; its seat
        is about to be released, so it does not count against the daily cap.

        Returns:
            The slot's interviewer

        Raises:
            SlotUnavailableException: Slot closed or interviewer inactive
            CapacityExhaustedException: Slot is full
            FailedPreconditionException: Started, outside the booking window
                or over the daily cap
        """
        if not slot.is_available:
            raise SlotUnavailableException(slot.id)
        if slot.is_full:
            raise CapacityExhaustedException(slot.id, slot.capacity)

        interviewer = self.interviewer_repository.get_by_id(slot.interviewer_id)
        if interviewer is None or not interviewer.is_active:
            raise SlotUnavailableException(slot.id, "Interviewer is not accepting bookings")

        now = self.now()
        if slot.starts_at <= now:
            raise FailedPreconditionException(
                "This appointment slot has already started",
                code="SLOT_IN_PAST",
                details={"slot_id": slot.id},
            )
        last_bookable = now.date() + timedelta(days=int(interviewer.advance_booking_days))
        if slot.slot_date > last_bookable:
            raise FailedPreconditionException(
                f"Appointments can be booked at most {interviewer.advance_booking_days} days ahead",
                code="OUTSIDE_BOOKING_WINDOW",
                details={"slot_id": slot.id, "last_bookable_date": last_bookable.isoformat()},
            )
        self._check_daily_cap(slot, interviewer, moving_from)
        return interviewer

    def _check_daily_cap(
        self,
        slot: AppointmentSlot,
        interviewer: Interviewer,
        moving_from: Optional[AppointmentSlot],
    ) -> None:
        # Joining a slot that already holds a booking does not add an appointment to the day.
        if int(slot.booked_count or 0) > 0:
            return
        booked_today = self.slot_repository.count_booked_slots_on(
            interviewer.id, cast(Any, slot.slot_date)
        )
        if (
            moving_from is not None
            and moving_from.interviewer_id == interviewer.id
            and moving_from.slot_date == slot.slot_date
            and int(moving_from.booked_count or 0) == 1
        ):
            booked_today -= 1
        if booked_today >= int(interviewer.max_daily_appointments):
            raise FailedPreconditionException(
                "Interviewer has reached the maximum appointments for this day",
                code="DAILY_LIMIT_REACHED",
                details={
                    "interviewer_id": interviewer.id,
                    "date": slot.slot_date.isoformat(),
                    "max_daily_appointments": interviewer.max_daily_appointments,
                },
            )
