# appointment_engine/repositories/slot_repository.py
"""
Slot Repository for the appointment engine.

Query builders per access pattern (interviewer + date, date range, bookable
slots) and the capacity ledger's conditional updates. Ledger updates are a
single ``UPDATE ... WHERE`` keyed by slot id; the affected row count tells
the caller whether the bound held.
"""

from datetime import date
import logging
from typing import List, Optional, cast

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.slot import AppointmentSlot
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class SlotRepository(BaseRepository[AppointmentSlot]):
    """Data access for appointment slots."""

    def __init__(self, db: Session):
        super().__init__(db, AppointmentSlot)
        self.logger = logging.getLogger(__name__)

    # Query builders

    def find_by_interviewer_and_date(
        self,
        interviewer_id: str,
        slot_date: date,
        exclude_slot_id: Optional[str] = None,
    ) -> List[AppointmentSlot]:
        """
        Slots of one interviewer on one date, ordered by start time.

        Args:
            interviewer_id: Owning interviewer
            slot_date: Calendar date
            exclude_slot_id: Slot to leave out (the slot being updated)
        """
        try:
            query = self.db.query(AppointmentSlot).filter(
                AppointmentSlot.interviewer_id == interviewer_id,
                AppointmentSlot.slot_date == slot_date,
            )
            if exclude_slot_id:
                query = query.filter(AppointmentSlot.id != exclude_slot_id)
            return cast(List[AppointmentSlot], query.order_by(AppointmentSlot.start_time).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting slots for interviewer date: {str(e)}")
            raise RepositoryException(f"Failed to get slots: {str(e)}")

    def find_in_range(
        self,
        start_date: date,
        end_date: Optional[date] = None,
        *,
        appointment_type: Optional[str] = None,
        interviewer_id: Optional[str] = None,
        bookable_only: bool = False,
    ) -> List[AppointmentSlot]:
        """
        Slots from ``start_date`` (through ``end_date`` when given).

        ``bookable_only`` keeps slots that are open and below capacity.
        """
        try:
            query = self.db.query(AppointmentSlot).filter(AppointmentSlot.slot_date >= start_date)
            if end_date is not None:
                query = query.filter(AppointmentSlot.slot_date <= end_date)
            if appointment_type:
                query = query.filter(AppointmentSlot.appointment_type == appointment_type)
            if interviewer_id:
                query = query.filter(AppointmentSlot.interviewer_id == interviewer_id)
            if bookable_only:
                query = query.filter(
                    AppointmentSlot.is_available.is_(True),
                    AppointmentSlot.booked_count < AppointmentSlot.capacity,
                )
            query = query.order_by(AppointmentSlot.slot_date, AppointmentSlot.start_time)
            return cast(List[AppointmentSlot], query.all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting slots in range: {str(e)}")
            raise RepositoryException(f"Failed to get slots: {str(e)}")

    def get_with_interviewer(self, slot_id: str) -> Optional[AppointmentSlot]:
        try:
            return cast(
                Optional[AppointmentSlot],
                self.db.query(AppointmentSlot)
                .options(joinedload(AppointmentSlot.interviewer))
                .filter(AppointmentSlot.id == slot_id)
                .first(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting slot {slot_id}: {str(e)}")
            raise RepositoryException(f"Failed to get slot: {str(e)}")

    def count_booked_slots_on(self, interviewer_id: str, slot_date: date) -> int:
        """Number of the interviewer's slots on ``slot_date`` holding at least one booking."""
        query = self.db.query(func.count(AppointmentSlot.id)).filter(
            AppointmentSlot.interviewer_id == interviewer_id,
            AppointmentSlot.slot_date == slot_date,
            AppointmentSlot.booked_count > 0,
        )
        return int(self._execute_scalar(query) or 0)

    # Capacity ledger

    def increment_booked_count(self, slot_id: str) -> bool:
        """Take one seat if the slot is open and below capacity."""
        query = self.db.query(AppointmentSlot).filter(
            AppointmentSlot.id == slot_id,
            AppointmentSlot.is_available.is_(True),
            AppointmentSlot.booked_count < AppointmentSlot.capacity,
        )
        updated = self._execute_update(
            query, {AppointmentSlot.booked_count: AppointmentSlot.booked_count + 1}
        )
        return updated == 1

    def decrement_booked_count(self, slot_id: str) -> bool:
        """Give back one seat if the slot has any booked."""
        query = self.db.query(AppointmentSlot).filter(
            AppointmentSlot.id == slot_id,
            AppointmentSlot.booked_count > 0,
        )
        updated = self._execute_update(
            query, {AppointmentSlot.booked_count: AppointmentSlot.booked_count - 1}
        )
        return updated == 1
