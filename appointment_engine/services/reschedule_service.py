# appointment_engine/services/reschedule_service.py
"""
Reschedule/Cancel workflow for the appointment engine.

Cancel is the requester-facing path: the owning slot's cancellation
deadline applies, and a booking whose slot no longer exists cannot be
cancelled here (there is no deadline to check it against).

Reschedule moves an active booking to another slot in one transaction:
the new seat is reserved before the old one is released, so a full
target leaves the booking and the old slot untouched.
"""

import logging
from typing import Optional, cast

from sqlalchemy.orm import Session

from ..core.enums import AppointmentStatus
from ..core.exceptions import (
    CancellationDeadlineException,
    FailedPreconditionException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from ..core.slot_lock import SlotLock, default_slot_lock
from ..domain import lifecycle
from ..domain.intervals import TimeRange
from ..events import BookingCancelled, BookingRescheduled, EventPublisher
from ..models.booking import AppointmentBooking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.slot_repository import SlotRepository
from .base import BaseService
from .capacity_ledger import CapacityLedger
from .conflict_detector import ConflictDetector
from .slot_admission import SlotAdmission

logger = logging.getLogger(__name__)


class RescheduleService(BaseService):
    def __init__(
        self,
        db: Session,
        booking_repository: Optional[BookingRepository] = None,
        slot_repository: Optional[SlotRepository] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        capacity_ledger: Optional[CapacityLedger] = None,
        slot_admission: Optional[SlotAdmission] = None,
        slot_lock: Optional[SlotLock] = None,
        event_publisher: Optional[EventPublisher] = None,
        **kwargs,
    ):
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        shared = {"config": self.config, "clock": self.clock}
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)
        self.conflict_detector = conflict_detector or ConflictDetector(
            db,
            slot_repository=self.slot_repository,
            booking_repository=self.booking_repository,
            **shared,
        )
        self.capacity_ledger = capacity_ledger or CapacityLedger(
            db, slot_repository=self.slot_repository, **shared
        )
        self.slot_admission = slot_admission or SlotAdmission(
            db, slot_repository=self.slot_repository, **shared
        )
        self.slot_lock = slot_lock or default_slot_lock()
        self.event_publisher = event_publisher or EventPublisher()

    def _get_booking(self, booking_id: str) -> AppointmentBooking:
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> AppointmentBooking:
        """
        Cancel a booking on behalf of its requester.

        Returns the booking unchanged if it is already cancelled.

        Raises:
            NotFoundException: Unknown booking
            InvalidTransitionException: Booking is completed or a no-show
            FailedPreconditionException: The booking's slot no longer exists
            CancellationDeadlineException: Too close to the start time
        """
        booking = self._get_booking(booking_id)
        if booking.status == AppointmentStatus.CANCELLED.value:
            self.logger.info("Booking already cancelled", extra={"booking_id": booking_id})
            return booking
        lifecycle.ensure_transition(booking.status, AppointmentStatus.CANCELLED, booking.id)

        with self.slot_lock.hold(booking.slot_id):
            with self.transaction():
                booking = cast(AppointmentBooking, self.booking_repository.reload(booking_id))
                if booking.status == AppointmentStatus.CANCELLED.value:
                    return booking
                previous = str(booking.status)

                slot = self.slot_repository.reload(booking.slot_id)
                if slot is None:
                    raise FailedPreconditionException(
                        "The appointment slot no longer exists; contact an administrator to cancel",
                        code="SLOT_MISSING",
                        details={"booking_id": booking.id, "slot_id": booking.slot_id},
                    )
                now = self.now()
                hours_remaining = booking.hours_until(now)
                required = int(slot.cancellation_deadline_hours)
                if hours_remaining < required:
                    raise CancellationDeadlineException(booking.id, required, hours_remaining)

                booking.cancel(now, reason)
                self.capacity_ledger.release_seat(slot.id)

        prometheus_metrics.record_transition(previous, AppointmentStatus.CANCELLED.value)
        self.log_operation("cancel_booking", booking_id=booking.id, slot_id=booking.slot_id)
        self.event_publisher.publish(
            BookingCancelled(
                booking_id=booking.id,
                slot_id=booking.slot_id,
                cancelled_at=booking.cancelled_at,
                reason=reason,
            )
        )
        return booking

    @BaseService.measure_operation("reschedule_booking")
    def reschedule_booking(
        self, booking_id: str, new_slot_id: str, reason: Optional[str] = None
    ) -> AppointmentBooking:
        """
        Move an active booking to ``new_slot_id``.

        The booking re-enters the pipeline at ``booked``, its reschedule
        count goes up by one and ``reason`` is kept on it. The target
        must pass the same admission rules as a new booking. Nothing changes
        if any step fails.

        Raises:
            NotFoundException: Unknown booking or target slot
            InvalidTransitionException: Booking is not booked/confirmed
            ValidationException: Target is the booking's current slot
            SlotUnavailableException: Target slot is closed or its interviewer inactive
            CapacityExhaustedException: Target slot is full
            FailedPreconditionException: Target has started, is outside the
                booking window or would exceed the daily cap
            BookingConflictException: Requester has another booking at the new time
        """
        booking = self._get_booking(booking_id)
        if not booking.is_active:
            raise InvalidTransitionException(
                booking.id, str(booking.status), AppointmentStatus.BOOKED.value
            )
        if booking.slot_id == new_slot_id:
            raise ValidationException(
                "Booking is already on this slot",
                code="SAME_SLOT",
                details={"booking_id": booking.id, "slot_id": new_slot_id},
            )
        old_slot_id = str(booking.slot_id)

        with self.slot_lock.hold(old_slot_id, new_slot_id):
            with self.transaction():
                booking = cast(AppointmentBooking, self.booking_repository.reload(booking_id))
                if not booking.is_active:
                    raise InvalidTransitionException(
                        booking.id, str(booking.status), AppointmentStatus.BOOKED.value
                    )
                target = self.slot_repository.reload(new_slot_id)
                if target is None:
                    raise NotFoundException(
                        f"Appointment slot {new_slot_id} not found", code="SLOT_NOT_FOUND"
                    )
                self.slot_admission.ensure_admissible(
                    target, moving_from=self.slot_repository.reload(old_slot_id)
                )
                self.conflict_detector.ensure_no_booking_conflict(
                    target.slot_date,
                    TimeRange.from_duration(target.start_time, int(target.duration_minutes)),
                    user_id=booking.user_id,
                    guest_email=booking.guest_email,
                    exclude_booking_id=booking.id,
                )

                target = self.capacity_ledger.reserve_seat(target.id)
                self.capacity_ledger.release_seat(old_slot_id)
                previous = str(booking.status)
                booking.move_to_slot(target, reason)

        prometheus_metrics.record_transition(previous, AppointmentStatus.BOOKED.value)
        self.log_operation(
            "reschedule_booking",
            booking_id=booking.id,
            from_slot_id=old_slot_id,
            to_slot_id=booking.slot_id,
            reason=reason,
        )
        self.event_publisher.publish(
            BookingRescheduled(
                booking_id=booking.id,
                from_slot_id=old_slot_id,
                to_slot_id=booking.slot_id,
                reschedule_count=int(booking.reschedule_count),
                rescheduled_at=self.now(),
                reason=reason,
            )
        )
        return booking
