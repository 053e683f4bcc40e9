# appointment_engine/services/slot_service.py
"""
Slot Service for the appointment engine.

Slot management around the generator: the availability query, slot
details, schedule/capacity updates and guarded deletion.
"""

from datetime import date
import logging
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..core.enums import ACTIVE_BOOKING_STATUSES
from ..core.exceptions import FailedPreconditionException, NotFoundException, ValidationException
from ..core.slot_lock import SlotLock, default_slot_lock
from ..domain.intervals import TimeRange
from ..models.slot import AppointmentSlot
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.interviewer_repository import InterviewerRepository
from ..repositories.slot_repository import SlotRepository
from ..schemas.slot import SlotBatchResult, SlotCreate, SlotUpdate
from .base import BaseService
from .conflict_detector import ConflictDetector
from .slot_generator import SlotGenerator

logger = logging.getLogger(__name__)


class SlotService(BaseService):
    """
    Service layer for appointment slots.

    Creation is delegated to the SlotGenerator; this service owns the
    queries and the mutations of existing slots.
    """

    def __init__(
        self,
        db: Session,
        slot_repository: Optional[SlotRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        interviewer_repository: Optional[InterviewerRepository] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        slot_generator: Optional[SlotGenerator] = None,
        slot_lock: Optional[SlotLock] = None,
        **kwargs,
    ):
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        shared = {"config": self.config, "clock": self.clock}
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.interviewer_repository = (
            interviewer_repository or RepositoryFactory.create_interviewer_repository(db)
        )
        self.conflict_detector = conflict_detector or ConflictDetector(
            db,
            slot_repository=self.slot_repository,
            booking_repository=self.booking_repository,
            **shared,
        )
        self.slot_generator = slot_generator or SlotGenerator(
            db,
            slot_repository=self.slot_repository,
            interviewer_repository=self.interviewer_repository,
            conflict_detector=self.conflict_detector,
            **shared,
        )
        self.slot_lock = slot_lock or default_slot_lock()

    def get_slot(self, slot_id: str) -> AppointmentSlot:
        slot = self.slot_repository.get_by_id(slot_id)
        if slot is None:
            raise NotFoundException(f"Appointment slot {slot_id} not found", code="SLOT_NOT_FOUND")
        return slot

    def create_slots(self, data: SlotCreate) -> Union[AppointmentSlot, SlotBatchResult]:
        """Single slot, or a batch when the template carries a recurring pattern."""
        if data.is_recurring:
            return self.slot_generator.generate_recurring_slots(data)
        return self.slot_generator.create_slot(data)

    @BaseService.measure_operation("get_available_slots")
    def get_available_slots(
        self,
        appointment_type: str,
        start_date: date,
        end_date: Optional[date] = None,
        interviewer_id: Optional[str] = None,
    ) -> List[AppointmentSlot]:
        """
        Open slots with seats left, ordered by date then start time.

        Each slot exposes ``remaining_capacity``.
        """
        if end_date is not None and end_date < start_date:
            raise ValidationException(
                "end_date must not be before start_date", code="INVALID_DATE_RANGE"
            )
        return self.slot_repository.find_in_range(
            start_date,
            end_date,
            appointment_type=appointment_type,
            interviewer_id=interviewer_id,
            bookable_only=True,
        )

    def get_slot_details(self, slot_id: str) -> Dict[str, Any]:
        slot = self.slot_repository.get_with_interviewer(slot_id)
        if slot is None:
            raise NotFoundException(f"Appointment slot {slot_id} not found", code="SLOT_NOT_FOUND")
        return {
            "slot": slot,
            "bookings": self.booking_repository.find_by_slot(slot_id),
            "interviewer": slot.interviewer,
            "remaining_capacity": slot.remaining_capacity,
        }

    def list_interviewer_slots(
        self,
        interviewer_id: str,
        start_date: date,
        end_date: Optional[date] = None,
    ) -> List[AppointmentSlot]:
        return self.slot_repository.find_in_range(
            start_date, end_date, interviewer_id=interviewer_id
        )

    @BaseService.measure_operation("update_slot")
    def update_slot(self, slot_id: str, data: SlotUpdate) -> AppointmentSlot:
        """
        Update a slot.

        Date/time changes are checked against the interviewer's other slots.
        Capacity can not drop below the seats already booked.

        Raises:
            NotFoundException: Unknown slot
            ValidationException: New end time is not after the start time
            SlotConflictException: New schedule overlaps another slot
            FailedPreconditionException: Capacity below booked seats
        """
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        with self.slot_lock.hold(slot_id):
            with self.transaction():
                slot = self.slot_repository.reload(slot_id)
                if slot is None:
                    raise NotFoundException(
                        f"Appointment slot {slot_id} not found", code="SLOT_NOT_FOUND"
                    )

                if data.changes_schedule:
                    new_date = data.slot_date or slot.slot_date
                    new_start = data.start_time or slot.start_time
                    new_end = data.end_time or slot.end_time
                    if new_end <= new_start:
                        raise ValidationException(
                            "end_time must be after start_time",
                            code="INVALID_TIME_RANGE",
                            details={"slot_id": slot_id},
                        )
                    time_range = TimeRange.from_times(new_start, new_end)
                    self.conflict_detector.ensure_no_slot_conflict(
                        slot.interviewer_id, new_date, time_range, exclude_slot_id=slot.id
                    )
                    changes["duration_minutes"] = time_range.duration_minutes

                if data.capacity is not None and data.capacity < int(slot.booked_count or 0):
                    raise FailedPreconditionException(
                        f"Capacity cannot be lower than the {slot.booked_count} "
                        "seats already booked",
                        code="CAPACITY_BELOW_BOOKED",
                        details={
                            "slot_id": slot_id,
                            "capacity": data.capacity,
                            "booked_count": slot.booked_count,
                        },
                    )

                for field, value in changes.items():
                    setattr(slot, field, value)

        self.log_operation("update_slot", slot_id=slot_id, fields=sorted(changes))
        return slot

    @BaseService.measure_operation("delete_slot")
    def delete_slot(self, slot_id: str) -> bool:
        """
        Delete a slot with no active bookings.

        Raises:
            NotFoundException: Unknown slot
            FailedPreconditionException: Booked or confirmed bookings still reference it
        """
        with self.slot_lock.hold(slot_id):
            with self.transaction():
                slot = self.slot_repository.reload(slot_id)
                if slot is None:
                    raise NotFoundException(
                        f"Appointment slot {slot_id} not found", code="SLOT_NOT_FOUND"
                    )
                active = self.booking_repository.find_by_slot(
                    slot_id, statuses=ACTIVE_BOOKING_STATUSES
                )
                if active:
                    raise FailedPreconditionException(
                        "Cannot delete a slot with active bookings",
                        code="SLOT_HAS_BOOKINGS",
                        details={"slot_id": slot_id, "active_bookings": len(active)},
                    )
                self.slot_repository.delete(slot_id)

        self.log_operation("delete_slot", slot_id=slot_id)
        return True
