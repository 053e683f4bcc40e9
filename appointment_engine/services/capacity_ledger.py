# appointment_engine/services/capacity_ledger.py
"""
Capacity Ledger for the appointment engine.

``booked_count`` moves only through the repository's conditional UPDATEs,
so the check and the adjustment are one statement. When an increment is
refused the slot is re-read to report why. A refused decrement means the
ledger and the bookings disagree; that is logged as critical and raised,
never clamped.

The ledger does not commit: callers wrap it in their own transaction so a
failed step rolls back every adjustment made before it.
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    CapacityExhaustedException,
    CapacityInvariantError,
    NotFoundException,
    SlotUnavailableException,
)
from ..models.slot import AppointmentSlot
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.slot_repository import SlotRepository
from .base import BaseService

logger = logging.getLogger(__name__)


class CapacityLedger(BaseService):
    def __init__(
        self,
        db: Session,
        slot_repository: Optional[SlotRepository] = None,
        **kwargs,
    ):
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)

    @BaseService.measure_operation("reserve_seat")
    def reserve_seat(self, slot_id: str) -> AppointmentSlot:
        """
        Take one seat on ``slot_id``.

        Raises:
            NotFoundException: The slot does not exist
            SlotUnavailableException: The slot is closed for booking
            CapacityExhaustedException: Every seat is taken
        """
        if self.slot_repository.increment_booked_count(slot_id):
            prometheus_metrics.record_ledger_adjustment("increment", "applied")
            slot = self.slot_repository.reload(slot_id)
            self.logger.debug(
                "Seat reserved",
                extra={"slot_id": slot_id, "booked_count": slot.booked_count if slot else None},
            )
            return slot

        slot = self.slot_repository.reload(slot_id)
        if slot is None:
            prometheus_metrics.record_ledger_adjustment("increment", "not_found")
            raise NotFoundException(f"Appointment slot {slot_id} not found", code="SLOT_NOT_FOUND")
        if not slot.is_available:
            prometheus_metrics.record_ledger_adjustment("increment", "unavailable")
            raise SlotUnavailableException(slot_id)
        prometheus_metrics.record_ledger_adjustment("increment", "full")
        raise CapacityExhaustedException(slot_id, slot.capacity)

    @BaseService.measure_operation("release_seat")
    def release_seat(self, slot_id: str) -> bool:
        """
        Give back one seat on ``slot_id``.

        Returns False when the slot no longer exists (its bookings keep their
        own copy of the schedule).

        Raises:
            CapacityInvariantError: booked_count is already 0
        """
        if self.slot_repository.decrement_booked_count(slot_id):
            prometheus_metrics.record_ledger_adjustment("decrement", "applied")
            self.slot_repository.reload(slot_id)
            return True

        slot = self.slot_repository.reload(slot_id)
        if slot is None:
            prometheus_metrics.record_ledger_adjustment("decrement", "not_found")
            self.logger.warning(
                "Released seat on a slot that no longer exists", extra={"slot_id": slot_id}
            )
            return False

        prometheus_metrics.record_ledger_adjustment("decrement", "invariant_violation")
        self.logger.critical(
            "Capacity ledger would go negative",
            extra={
                "slot_id": slot_id,
                "booked_count": slot.booked_count,
                "capacity": slot.capacity,
            },
        )
        raise CapacityInvariantError(
            slot_id, f"Slot {slot_id} has no booked seats to release"
        )
