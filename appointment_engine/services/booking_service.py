# appointment_engine/services/booking_service.py
"""
Booking Service for the appointment engine.

Handles booking creation against a slot, privileged status changes and
the read queries around bookings (requester listing, details, today's
schedule, reminder selection).

Seat accounting goes through the CapacityLedger inside the same
transaction as the booking row, and the whole operation runs while the
slot's lock is held. Events are published only after commit.
"""

from datetime import timedelta
import logging
from typing import Any, Dict, List, Optional, cast

from sqlalchemy.orm import Session

from ..core.enums import AppointmentStatus, AppointmentType, BookingOutcome
from ..core.exceptions import (
    FailedPreconditionException,
    NotFoundException,
    ValidationException,
)
from ..core.slot_lock import SlotLock, default_slot_lock
from ..domain import lifecycle
from ..domain.intervals import TimeRange
from ..events import BookingCancelled, BookingCreated, EventPublisher, InterviewCompleted
from ..models.booking import AppointmentBooking
from ..models.slot import AppointmentSlot
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository, StatusFilter
from ..repositories.interviewer_repository import InterviewerRepository
from ..repositories.slot_repository import SlotRepository
from ..schemas.booking import BookingCreate, BookingStatusUpdate
from .base import BaseService
from .capacity_ledger import CapacityLedger
from .conflict_detector import ConflictDetector
from .slot_admission import SlotAdmission
from .statistics_service import StatisticsService

logger = logging.getLogger(__name__)


class BookingService(BaseService):
    """
    Service layer for appointment bookings.

    Dependencies are injected; anything omitted is built from the session.
    """

    def __init__(
        self,
        db: Session,
        booking_repository: Optional[BookingRepository] = None,
        slot_repository: Optional[SlotRepository] = None,
        interviewer_repository: Optional[InterviewerRepository] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        capacity_ledger: Optional[CapacityLedger] = None,
        statistics_service: Optional[StatisticsService] = None,
        slot_admission: Optional[SlotAdmission] = None,
        slot_lock: Optional[SlotLock] = None,
        event_publisher: Optional[EventPublisher] = None,
        **kwargs,
    ):
        """
        Initialize booking service.

        Args:
            db: Database session
            booking_repository: Optional BookingRepository instance
            slot_repository: Optional SlotRepository instance
            interviewer_repository: Optional InterviewerRepository instance
            conflict_detector: Optional ConflictDetector instance
            capacity_ledger: Optional CapacityLedger instance
            statistics_service: Optional StatisticsService for rolling counters
            slot_admission: Optional SlotAdmission for the slot booking rules
            slot_lock: Per-slot lock (defaults to the process-wide lock)
            event_publisher: Receives events after commit
            **kwargs: ``config`` and ``clock`` overrides for BaseService
        """
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        shared = {"config": self.config, "clock": self.clock}
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)
        self.interviewer_repository = (
            interviewer_repository or RepositoryFactory.create_interviewer_repository(db)
        )
        self.conflict_detector = conflict_detector or ConflictDetector(
            db,
            slot_repository=self.slot_repository,
            booking_repository=self.booking_repository,
            **shared,
        )
        self.capacity_ledger = capacity_ledger or CapacityLedger(
            db, slot_repository=self.slot_repository, **shared
        )
        self.statistics_service = statistics_service or StatisticsService(
            db,
            slot_repository=self.slot_repository,
            booking_repository=self.booking_repository,
            interviewer_repository=self.interviewer_repository,
            **shared,
        )
        self.slot_admission = slot_admission or SlotAdmission(
            db,
            slot_repository=self.slot_repository,
            interviewer_repository=self.interviewer_repository,
            **shared,
        )
        self.slot_lock = slot_lock or default_slot_lock()
        self.event_publisher = event_publisher or EventPublisher()

    # Lookups

    def get_booking(self, booking_id: str) -> AppointmentBooking:
        booking = self.booking_repository.get_by_id(booking_id)
        if booking is None:
            raise NotFoundException(f"Booking {booking_id} not found", code="BOOKING_NOT_FOUND")
        return booking

    def _get_slot(self, slot_id: str) -> AppointmentSlot:
        slot = self.slot_repository.reload(slot_id)
        if slot is None:
            raise NotFoundException(f"Appointment slot {slot_id} not found", code="SLOT_NOT_FOUND")
        return slot

    # Creation

    def _validate_requester(self, data: BookingCreate) -> None:
        if data.user_id:
            return
        missing = [
            name for name in ("guest_name", "guest_email") if not getattr(data, name, None)
        ]
        if missing:
            raise ValidationException(
                "Guest bookings require a name and an email",
                code="GUEST_CONTACT_REQUIRED",
                details={"missing_fields": missing},
            )

    @BaseService.measure_operation("create_booking")
    def create_booking(self, data: BookingCreate) -> AppointmentBooking:
        """
        Book one seat on ``data.slot_id``.

        Returns:
            The committed booking in ``booked`` status

        Raises:
            ValidationException: Neither a user id nor guest contact details
            NotFoundException: Unknown slot
            SlotUnavailableException: Slot is closed for booking
            CapacityExhaustedException: Slot is full
            BookingConflictException: Requester already holds an overlapping booking
            FailedPreconditionException: Interviewer booking rules refuse the slot
        """
        self._validate_requester(data)
        guest_email = data.guest_email.lower() if data.guest_email else None
        self.log_operation("create_booking", slot_id=data.slot_id, user_id=data.user_id)

        with self.slot_lock.hold(data.slot_id):
            with self.transaction():
                slot = self._get_slot(data.slot_id)
                self.slot_admission.ensure_admissible(slot)

                self.conflict_detector.ensure_no_booking_conflict(
                    slot.slot_date,
                    TimeRange.from_duration(slot.start_time, int(slot.duration_minutes)),
                    user_id=data.user_id,
                    guest_email=guest_email,
                )

                slot = self.capacity_ledger.reserve_seat(slot.id)
                booking = self.booking_repository.create(
                    slot_id=slot.id,
                    interviewer_id=slot.interviewer_id,
                    user_id=data.user_id,
                    guest_name=data.guest_name,
                    guest_email=guest_email,
                    guest_phone=data.guest_phone,
                    preferred_contact=data.preferred_contact,
                    appointment_type=slot.appointment_type,
                    status=AppointmentStatus.BOOKED.value,
                    scheduled_date=slot.slot_date,
                    scheduled_time=slot.start_time,
                    duration_minutes=slot.duration_minutes,
                    timezone=slot.timezone,
                    purpose=data.purpose,
                    questions=list(data.questions),
                    membership_interest=data.membership_interest,
                    meeting_url=slot.meeting_url,
                    meeting_id=slot.meeting_id,
                    dial_in_number=slot.phone_number,
                    location=slot.location,
                    booked_at=self.now(),
                )
                self.statistics_service.record_new_booking(slot.interviewer_id)

        prometheus_metrics.record_transition(
            AppointmentStatus.AVAILABLE.value, AppointmentStatus.BOOKED.value
        )
        self.event_publisher.publish(
            BookingCreated(
                booking_id=booking.id,
                slot_id=booking.slot_id,
                interviewer_id=booking.interviewer_id,
                appointment_type=booking.appointment_type,
                created_at=booking.booked_at,
            )
        )
        return booking

    # Status changes

    def _apply_status(self, booking: AppointmentBooking, data: BookingStatusUpdate) -> None:
        now = self.now()
        target = lifecycle.as_status(data.status)

        if target == AppointmentStatus.CONFIRMED:
            booking.confirm(now)
        elif target == AppointmentStatus.COMPLETED:
            booking.complete(now, rating=data.rating, outcome=data.outcome, notes=data.notes)
            if booking.interviewer_id:
                self.statistics_service.record_completion(booking.interviewer_id, data.rating)
        elif target == AppointmentStatus.CANCELLED:
            releases = lifecycle.releases_capacity(booking.status, target)
            booking.cancel(now, data.cancellation_reason)
            if releases:
                self.capacity_ledger.release_seat(booking.slot_id)
        elif target == AppointmentStatus.NO_SHOW:
            booking.mark_no_show(now)
        else:
            lifecycle.ensure_transition(booking.status, target, booking.id)

        if data.notes is not None and target != AppointmentStatus.COMPLETED:
            booking.interview_notes = data.notes
        if data.follow_up_required is not None:
            booking.follow_up_required = data.follow_up_required

    @BaseService.measure_operation("update_booking_status")
    def update_status(self, booking_id: str, data: BookingStatusUpdate) -> AppointmentBooking:
        """
        Move a booking through its lifecycle.

        Cancelling here skips the requester's cancellation deadline but still
        returns the seat. Re-cancelling a cancelled booking is a no-op.

        Raises:
            NotFoundException: Unknown booking
            InvalidTransitionException: The lifecycle forbids the change
        """
        booking = self.get_booking(booking_id)
        target = lifecycle.as_status(data.status)
        if target == AppointmentStatus.CANCELLED and booking.status == target.value:
            self.logger.info("Booking already cancelled", extra={"booking_id": booking_id})
            return booking
        lifecycle.ensure_transition(booking.status, target, booking.id)

        with self.slot_lock.hold(booking.slot_id):
            with self.transaction():
                booking = cast(AppointmentBooking, self.booking_repository.reload(booking_id))
                previous = str(booking.status)
                if target == AppointmentStatus.CANCELLED and previous == target.value:
                    return booking
                self._apply_status(booking, data)

        prometheus_metrics.record_transition(previous, target.value)
        self.log_operation(
            "update_booking_status",
            booking_id=booking.id,
            from_status=previous,
            to_status=target.value,
        )
        self._publish_status_events(booking, target)
        return booking

    def _publish_status_events(
        self, booking: AppointmentBooking, target: AppointmentStatus
    ) -> None:
        if target == AppointmentStatus.CANCELLED:
            self.event_publisher.publish(
                BookingCancelled(
                    booking_id=booking.id,
                    slot_id=booking.slot_id,
                    cancelled_at=booking.cancelled_at,
                    reason=booking.cancellation_reason,
                )
            )
        elif (
            target == AppointmentStatus.COMPLETED
            and booking.appointment_type == AppointmentType.MEMBER_INTERVIEW.value
            and booking.outcome == BookingOutcome.APPROVED.value
            and booking.user_id
        ):
            self.event_publisher.publish(
                InterviewCompleted(
                    booking_id=booking.id,
                    user_id=booking.user_id,
                    interviewer_id=booking.interviewer_id,
                    outcome=booking.outcome,
                    completed_at=booking.completed_at,
                )
            )

    def confirm_booking(self, booking_id: str) -> AppointmentBooking:
        return self.update_status(
            booking_id, BookingStatusUpdate(status=AppointmentStatus.CONFIRMED)
        )

    def complete_booking(
        self,
        booking_id: str,
        *,
        rating: Optional[int] = None,
        outcome: Optional[BookingOutcome] = None,
        notes: Optional[str] = None,
    ) -> AppointmentBooking:
        return self.update_status(
            booking_id,
            BookingStatusUpdate(
                status=AppointmentStatus.COMPLETED, rating=rating, outcome=outcome, notes=notes
            ),
        )

    def mark_no_show(self, booking_id: str) -> AppointmentBooking:
        return self.update_status(booking_id, BookingStatusUpdate(status=AppointmentStatus.NO_SHOW))

    # Queries

    def get_bookings_for_requester(
        self,
        *,
        user_id: Optional[str] = None,
        guest_email: Optional[str] = None,
        statuses: Optional[StatusFilter] = None,
    ) -> List[AppointmentBooking]:
        """Requester's bookings, newest first."""
        if not user_id and not guest_email:
            raise ValidationException(
                "A user id or guest email is required", code="REQUESTER_REQUIRED"
            )
        return self.booking_repository.find_by_requester(
            user_id=user_id, guest_email=guest_email, statuses=statuses
        )

    def get_booking_details(self, booking_id: str) -> Dict[str, Any]:
        """
        Booking with its slot and interviewer.

        ``slot`` is None when the slot has since been deleted; the booking
        keeps its own copy of the schedule.
        """
        booking = self.get_booking(booking_id)
        slot = self.slot_repository.get_by_id(booking.slot_id)
        interviewer = (
            self.interviewer_repository.get_by_id(booking.interviewer_id)
            if booking.interviewer_id
            else None
        )
        return {"booking": booking, "slot": slot, "interviewer": interviewer}

    def get_todays_bookings(self) -> List[AppointmentBooking]:
        return self.booking_repository.find_active_on(self.now().date())

    def get_reminder_candidates(self, lead_hours: Optional[int] = None) -> List[AppointmentBooking]:
        """Active bookings starting within ``lead_hours`` that still have reminders left."""
        now = self.now()
        lead = lead_hours if lead_hours is not None else self.config.reminder_lead_hours
        return self.booking_repository.find_reminder_candidates(
            now, now + timedelta(hours=lead), self.config.reminder_max_sends
        )

    @BaseService.measure_operation("record_reminder_sent")
    def record_reminder_sent(self, booking_id: str) -> AppointmentBooking:
        """Count one delivered reminder; refuses once the limit is reached."""
        self.get_booking(booking_id)
        with self.transaction():
            if not self.booking_repository.increment_reminders_sent(
                booking_id, self.config.reminder_max_sends
            ):
                raise FailedPreconditionException(
                    "Reminder limit reached for this booking",
                    code="REMINDER_LIMIT_REACHED",
                    details={
                        "booking_id": booking_id,
                        "max_reminders": self.config.reminder_max_sends,
                    },
                )
            booking = cast(AppointmentBooking, self.booking_repository.reload(booking_id))
        return booking
