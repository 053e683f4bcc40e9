# appointment_engine/services/slot_generator.py
"""
Slot Generator for the appointment engine.

Turns a slot template into persisted slots:

- ``create_slot``: one slot, all-or-nothing.
- ``generate_recurring_slots``: expands a RecurringPattern. Each date is
  created in its own transaction; closed weekdays, conflicts and store
  failures are skipped with a reason and the batch returns what succeeded.
- ``seed_from_availability``: fixed-width sub-slots across the weekly
  availability for a horizon of days, used by operator tooling.
"""

from datetime import date, datetime, timedelta
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import AppointmentType
from ..core.exceptions import (
    FailedPreconditionException,
    InterviewerUnavailableException,
    NotFoundException,
    ServiceException,
    ValidationException,
)
from ..domain.intervals import TimeRange, minutes_to_time
from ..models.interviewer import Interviewer
from ..models.slot import AppointmentSlot
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.interviewer_repository import InterviewerRepository
from ..repositories.slot_repository import SlotRepository
from ..schemas.slot import SkippedDate, SlotBatchResult, SlotCreate, SlotResponse
from .base import BaseService
from .conflict_detector import ConflictDetector

logger = logging.getLogger(__name__)


class SlotGenerator(BaseService):
    """Materializes bookable slots from templates and weekly availability."""

    def __init__(
        self,
        db: Session,
        slot_repository: Optional[SlotRepository] = None,
        interviewer_repository: Optional[InterviewerRepository] = None,
        conflict_detector: Optional[ConflictDetector] = None,
        **kwargs,
    ):
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)
        self.interviewer_repository = (
            interviewer_repository or RepositoryFactory.create_interviewer_repository(db)
        )
        self.conflict_detector = conflict_detector or ConflictDetector(
            db,
            slot_repository=self.slot_repository,
            config=self.config,
            clock=self.clock,
        )

    # Helpers

    def _get_bookable_interviewer(self, interviewer_id: str, appointment_type: str) -> Interviewer:
        interviewer = self.interviewer_repository.get_by_id(interviewer_id)
        if interviewer is None:
            raise NotFoundException(
                f"Interviewer {interviewer_id} not found", code="INTERVIEWER_NOT_FOUND"
            )
        if not interviewer.is_active:
            raise FailedPreconditionException(
                "Interviewer is not active",
                code="INTERVIEWER_INACTIVE",
                details={"interviewer_id": interviewer_id},
            )
        if not interviewer.supports_appointment_type(appointment_type):
            raise ValidationException(
                f"Interviewer does not handle {appointment_type} appointments",
                code="UNSUPPORTED_APPOINTMENT_TYPE",
                details={"interviewer_id": interviewer_id, "appointment_type": appointment_type},
            )
        return interviewer

    def _slot_fields(self, data: SlotCreate, interviewer: Interviewer) -> Dict[str, Any]:
        requires_pre_approval = data.requires_pre_approval
        if requires_pre_approval is None:
            requires_pre_approval = not interviewer.auto_approval
        deadline = data.cancellation_deadline_hours
        if deadline is None:
            deadline = self.config.default_cancellation_deadline_hours
        return {
            "interviewer_id": interviewer.id,
            "interviewer_name": interviewer.name,
            "appointment_type": data.appointment_type,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "duration_minutes": data.resolved_duration_minutes,
            "timezone": data.timezone,
            "interview_type": data.interview_type,
            "capacity": data.capacity,
            "booked_count": 0,
            "is_available": True,
            "location": data.location,
            "meeting_url": data.meeting_url,
            "meeting_id": data.meeting_id,
            "phone_number": data.phone_number,
            "requires_pre_approval": requires_pre_approval,
            "cancellation_deadline_hours": deadline,
            "notes": data.notes,
            "created_by": data.created_by,
        }

    def _skip_reason(
        self, interviewer: Interviewer, slot_date: date, time_range: TimeRange
    ) -> Optional[str]:
        day = interviewer.availability.for_date(slot_date)
        if day is None or not day.is_range_open(time_range):
            return f"Interviewer unavailable at {time_range}"
        conflict = self.conflict_detector.find_slot_conflict(interviewer.id, slot_date, time_range)
        if conflict is not None:
            return f"Conflicts with existing slot {conflict.time_range}"
        return None

    # Operations

    @BaseService.measure_operation("create_slot")
    def create_slot(self, data: SlotCreate) -> AppointmentSlot:
        """
        Create one slot.

        Raises:
            NotFoundException: Unknown interviewer
            InterviewerUnavailableException: Outside the interviewer's availability
            SlotConflictException: Overlaps another slot of the interviewer
        """
        interviewer = self._get_bookable_interviewer(data.interviewer_id, data.appointment_type)
        time_range = data.time_range
        if not interviewer.availability.is_open(data.slot_date, data.start_time, data.end_time):
            raise InterviewerUnavailableException(
                interviewer.id, data.slot_date.isoformat(), str(time_range)
            )
        self.conflict_detector.ensure_no_slot_conflict(interviewer.id, data.slot_date, time_range)

        with self.transaction():
            slot = self.slot_repository.create(
                slot_date=data.slot_date, is_recurring=False, **self._slot_fields(data, interviewer)
            )

        self.log_operation("create_slot", slot_id=slot.id, interviewer_id=interviewer.id)
        prometheus_metrics.record_slot_generation(created=1, skipped=0)
        return slot

    @BaseService.measure_operation("generate_recurring_slots")
    def generate_recurring_slots(self, data: SlotCreate) -> SlotBatchResult:
        """
        Expand ``data.recurring_pattern`` from ``data.slot_date``.

        Returns:
            SlotBatchResult whose ``requested`` counts every date the pattern
            produced; ``created`` and ``skipped`` account for each of them.
        """
        if data.recurring_pattern is None:
            raise ValidationException(
                "recurring_pattern is required for recurring slots", code="PATTERN_REQUIRED"
            )
        interviewer = self._get_bookable_interviewer(data.interviewer_id, data.appointment_type)
        pattern = data.recurring_pattern.to_domain()
        time_range = data.time_range
        fields = self._slot_fields(data, interviewer)

        dates = list(pattern.iter_dates(data.slot_date, self.config.max_recurring_occurrences))
        created: List[AppointmentSlot] = []
        skipped: List[SkippedDate] = []
        parent_slot_id: Optional[str] = None

        for slot_date in dates:
            reason = self._skip_reason(interviewer, slot_date, time_range)
            if reason is not None:
                self.logger.info(
                    "Skipping recurring slot date",
                    extra={"slot_date": slot_date.isoformat(), "reason": reason},
                )
                skipped.append(SkippedDate(slot_date=slot_date, reason=reason))
                continue
            try:
                with self.transaction():
                    slot = self.slot_repository.create(
                        slot_date=slot_date,
                        is_recurring=True,
                        parent_slot_id=parent_slot_id,
                        **fields,
                    )
            except ServiceException as exc:
                self.logger.warning(
                    "Recurring slot creation failed",
                    extra={"slot_date": slot_date.isoformat(), "error": exc.message},
                )
                skipped.append(
                    SkippedDate(slot_date=slot_date, reason=f"Creation failed: {exc.message}")
                )
                continue
            if parent_slot_id is None:
                parent_slot_id = slot.id
            created.append(slot)

        prometheus_metrics.record_slot_generation(created=len(created), skipped=len(skipped))
        self.log_operation(
            "generate_recurring_slots",
            interviewer_id=interviewer.id,
            requested=len(dates),
            created_count=len(created),
            skipped_count=len(skipped),
        )
        return SlotBatchResult(
            created=[SlotResponse.model_validate(slot) for slot in created],
            skipped=skipped,
            requested=len(dates),
        )

    def expand_sub_slots(
        self,
        interviewer: Interviewer,
        slot_date: date,
        duration_minutes: Optional[int] = None,
    ) -> List[TimeRange]:
        """Back-to-back sub-slots of the interviewer's open window on ``slot_date``."""
        day = interviewer.availability.for_date(slot_date)
        if day is None:
            return []
        duration = duration_minutes or self.config.seed_sub_slot_minutes
        return list(day.iter_sub_slots(duration, int(interviewer.buffer_time_minutes or 0)))

    @BaseService.measure_operation("seed_from_availability")
    def seed_from_availability(
        self,
        interviewer_id: str,
        start_date: Optional[date] = None,
        days: Optional[int] = None,
        duration_minutes: Optional[int] = None,
    ) -> SlotBatchResult:
        """
        Create sub-slots across the interviewer's weekly availability.

        Sub-slots are offered for the interviewer's appointment kinds in
        rotation. Sub-slots that already started, or that overlap an existing
        slot, are skipped.
        """
        interviewer = self.interviewer_repository.get_by_id(interviewer_id)
        if interviewer is None:
            raise NotFoundException(
                f"Interviewer {interviewer_id} not found", code="INTERVIEWER_NOT_FOUND"
            )
        now = self.now()
        first_day = start_date or now.date()
        horizon = days or self.config.seed_horizon_days
        kinds = list(interviewer.appointment_types or []) or [AppointmentType.CONSULTATION.value]

        created: List[AppointmentSlot] = []
        skipped: List[SkippedDate] = []
        requested = 0
        turn = 0

        for offset in range(horizon):
            slot_date = first_day + timedelta(days=offset)
            for sub_slot in self.expand_sub_slots(interviewer, slot_date, duration_minutes):
                requested += 1
                start = minutes_to_time(sub_slot.start)
                end = minutes_to_time(sub_slot.end)
                if datetime.combine(slot_date, start, tzinfo=now.tzinfo) <= now:
                    reason = f"{sub_slot} has started"
                    skipped.append(SkippedDate(slot_date=slot_date, reason=reason))
                    continue
                conflict = self.conflict_detector.find_slot_conflict(
                    interviewer.id, slot_date, sub_slot
                )
                if conflict is not None:
                    skipped.append(
                        SkippedDate(
                            slot_date=slot_date,
                            reason=f"{sub_slot} conflicts with existing slot {conflict.time_range}",
                        )
                    )
                    continue
                kind = kinds[turn % len(kinds)]
                turn += 1
                try:
                    with self.transaction():
                        slot = self.slot_repository.create(
                            interviewer_id=interviewer.id,
                            interviewer_name=interviewer.name,
                            appointment_type=kind,
                            slot_date=slot_date,
                            start_time=start,
                            end_time=end,
                            duration_minutes=sub_slot.duration_minutes,
                            timezone=self.config.default_timezone,
                            capacity=self.config.default_capacity,
                            requires_pre_approval=not interviewer.auto_approval,
                            cancellation_deadline_hours=(
                                self.config.default_cancellation_deadline_hours
                            ),
                        )
                except ServiceException as exc:
                    self.logger.warning(
                        "Seed slot creation failed",
                        extra={"slot_date": slot_date.isoformat(), "error": exc.message},
                    )
                    skipped.append(
                        SkippedDate(slot_date=slot_date, reason=f"Creation failed: {exc.message}")
                    )
                    continue
                created.append(slot)

        prometheus_metrics.record_slot_generation(created=len(created), skipped=len(skipped))
        self.log_operation(
            "seed_from_availability",
            interviewer_id=interviewer.id,
            created_count=len(created),
            skipped_count=len(skipped),
        )
        return SlotBatchResult(
            created=[SlotResponse.model_validate(slot) for slot in created],
            skipped=skipped,
            requested=requested,
        )
