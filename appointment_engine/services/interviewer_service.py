# appointment_engine/services/interviewer_service.py
"""
Interviewer Service for the appointment engine.

Interviewer profiles, weekly availability and the availability check
used before slots are offered. Interviewers referenced by active bookings
are deactivated, never deleted.
"""

from datetime import date, time
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_TOP_PERFORMERS_LIMIT, WEEKDAY_NAMES
from ..core.exceptions import FailedPreconditionException, NotFoundException, ValidationException
from ..models.interviewer import Interviewer
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.interviewer_repository import InterviewerRepository
from ..repositories.slot_repository import SlotRepository
from ..schemas.interviewer import (
    DayAvailabilitySchema,
    InterviewerCreate,
    InterviewerUpdate,
    availability_to_domain,
)
from .base import BaseService

logger = logging.getLogger(__name__)


class InterviewerService(BaseService):
    def __init__(
        self,
        db: Session,
        interviewer_repository: Optional[InterviewerRepository] = None,
        slot_repository: Optional[SlotRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        **kwargs,
    ):
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        self.interviewer_repository = (
            interviewer_repository or RepositoryFactory.create_interviewer_repository(db)
        )
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )

    def get_interviewer(self, interviewer_id: str) -> Interviewer:
        interviewer = self.interviewer_repository.get_by_id(interviewer_id)
        if interviewer is None:
            raise NotFoundException(
                f"Interviewer {interviewer_id} not found", code="INTERVIEWER_NOT_FOUND"
            )
        return interviewer

    @BaseService.measure_operation("create_interviewer")
    def create_interviewer(self, data: InterviewerCreate) -> Interviewer:
        fields = data.model_dump(exclude={"default_availability"})
        with self.transaction():
            interviewer = self.interviewer_repository.create(
                **fields,
                default_availability=availability_to_domain(data.default_availability).to_dict(),
                is_active=True,
            )
        self.log_operation("create_interviewer", interviewer_id=interviewer.id)
        return interviewer

    @BaseService.measure_operation("update_interviewer")
    def update_interviewer(self, interviewer_id: str, data: InterviewerUpdate) -> Interviewer:
        interviewer = self.get_interviewer(interviewer_id)
        changes = data.model_dump(exclude_unset=True, exclude={"default_availability"})
        if data.default_availability is not None:
            changes["default_availability"] = availability_to_domain(
                data.default_availability
            ).to_dict()
        with self.transaction():
            for field, value in changes.items():
                setattr(interviewer, field, value)
        self.log_operation(
            "update_interviewer", interviewer_id=interviewer_id, fields=sorted(changes)
        )
        return interviewer

    @BaseService.measure_operation("set_day_availability")
    def set_day_availability(
        self, interviewer_id: str, weekday: str, day: DayAvailabilitySchema
    ) -> Interviewer:
        """Replace one weekday's entry, keeping the rest of the week."""
        if weekday.lower() not in WEEKDAY_NAMES:
            raise ValidationException(
                f"Unknown weekday: {weekday}", code="INVALID_WEEKDAY", details={"weekday": weekday}
            )
        interviewer = self.get_interviewer(interviewer_id)
        updated = interviewer.availability.with_day(weekday, day.to_domain())
        with self.transaction():
            # JSON columns are replaced wholesale so the change is tracked.
            interviewer.default_availability = updated.to_dict()
        return interviewer

    def _set_active(self, interviewer_id: str, active: bool) -> Interviewer:
        interviewer = self.get_interviewer(interviewer_id)
        with self.transaction():
            interviewer.is_active = active
        self.log_operation(
            "activate_interviewer" if active else "deactivate_interviewer",
            interviewer_id=interviewer_id,
        )
        return interviewer

    def activate_interviewer(self, interviewer_id: str) -> Interviewer:
        return self._set_active(interviewer_id, True)

    def deactivate_interviewer(self, interviewer_id: str) -> Interviewer:
        return self._set_active(interviewer_id, False)

    @BaseService.measure_operation("delete_interviewer")
    def delete_interviewer(self, interviewer_id: str) -> bool:
        """
        Delete an interviewer and their slots.

        Raises:
            FailedPreconditionException: Active bookings still reference the
                interviewer; deactivate instead
        """
        interviewer = self.get_interviewer(interviewer_id)
        active = self.booking_repository.count_active_for_interviewer(interviewer_id)
        if active:
            raise FailedPreconditionException(
                "Interviewer has active bookings; deactivate instead",
                code="INTERVIEWER_HAS_BOOKINGS",
                details={"interviewer_id": interviewer_id, "active_bookings": active},
            )
        with self.transaction():
            for slot in self.slot_repository.find_by(interviewer_id=interviewer.id):
                self.slot_repository.delete(slot.id)
            self.interviewer_repository.delete(interviewer.id)
        self.log_operation("delete_interviewer", interviewer_id=interviewer_id)
        return True

    def list_active_interviewers(
        self,
        appointment_type: Optional[str] = None,
        interview_type: Optional[str] = None,
    ) -> List[Interviewer]:
        return self.interviewer_repository.find_active(
            appointment_type=appointment_type, interview_type=interview_type
        )

    def check_availability(
        self, interviewer_id: str, slot_date: date, start_time: time, end_time: time
    ) -> bool:
        """Whether an active interviewer's weekly availability covers the range."""
        interviewer = self.get_interviewer(interviewer_id)
        if not interviewer.is_active:
            return False
        return interviewer.availability.is_open(slot_date, start_time, end_time)

    def get_daily_appointment_count(self, interviewer_id: str, slot_date: date) -> int:
        return self.slot_repository.count_booked_slots_on(interviewer_id, slot_date)

    def get_top_performers(self, limit: int = DEFAULT_TOP_PERFORMERS_LIMIT) -> List[Interviewer]:
        return self.interviewer_repository.find_top_performers(limit)
