# appointment_engine/services/statistics_service.py
"""
Statistics Aggregator for the appointment engine.

Read-only rollups over slots and bookings for a date range, plus the
interviewer's rolling counters that the booking lifecycle feeds. Every
rate is 0.0 when its denominator is 0.
"""

from collections import Counter
from datetime import date
import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from ..core.enums import AppointmentStatus, AppointmentType
from ..core.exceptions import NotFoundException, ValidationException
from ..models.booking import AppointmentBooking
from ..models.slot import AppointmentSlot
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.interviewer_repository import InterviewerRepository
from ..repositories.slot_repository import SlotRepository
from ..schemas.interviewer import InterviewerPerformance
from ..schemas.stats import AppointmentStatistics, BookingStatistics, SlotStatistics
from .base import BaseService

logger = logging.getLogger(__name__)


def _rate(numerator: int, denominator: int) -> float:
    if denominator <= 0:
        return 0.0
    return round(numerator / denominator, 4)


def summarize_slots(slots: Iterable[AppointmentSlot]) -> SlotStatistics:
    total = available = full = capacity = booked = consultation = interview = 0
    for slot in slots:
        total += 1
        capacity += int(slot.capacity)
        booked += int(slot.booked_count or 0)
        if slot.is_bookable:
            available += 1
        if slot.is_full:
            full += 1
        if slot.appointment_type == AppointmentType.CONSULTATION.value:
            consultation += 1
        elif slot.appointment_type == AppointmentType.MEMBER_INTERVIEW.value:
            interview += 1
    return SlotStatistics(
        total_slots=total,
        available_slots=available,
        fully_booked_slots=full,
        total_capacity=capacity,
        total_booked=booked,
        utilization=_rate(booked, capacity),
        consultation_slots=consultation,
        interview_slots=interview,
    )


def summarize_bookings(bookings: Iterable[AppointmentBooking]) -> BookingStatistics:
    rows = list(bookings)
    total = len(rows)
    by_status = Counter(str(b.status) for b in rows)
    by_type = Counter(str(b.appointment_type) for b in rows)
    rescheduled = sum(1 for b in rows if int(b.reschedule_count or 0) > 0)
    ratings = [int(b.rating) for b in rows if b.rating and int(b.rating) > 0]

    completed = by_status.get(AppointmentStatus.COMPLETED.value, 0)
    no_show = by_status.get(AppointmentStatus.NO_SHOW.value, 0)
    return BookingStatistics(
        total_bookings=total,
        completed=completed,
        cancelled=by_status.get(AppointmentStatus.CANCELLED.value, 0),
        no_show=no_show,
        rescheduled=rescheduled,
        completion_rate=_rate(completed, total),
        no_show_rate=_rate(no_show, total),
        reschedule_rate=_rate(rescheduled, total),
        average_rating=round(sum(ratings) / len(ratings), 2) if ratings else 0.0,
        rated_bookings=len(ratings),
        by_status=dict(by_status),
        by_type=dict(by_type),
    )


class StatisticsService(BaseService):
    """Date-range rollups and interviewer performance."""

    def __init__(
        self,
        db: Session,
        slot_repository: Optional[SlotRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
        interviewer_repository: Optional[InterviewerRepository] = None,
        **kwargs,
    ):
        super().__init__(db, **kwargs)
        self.logger = logging.getLogger(__name__)
        self.slot_repository = slot_repository or RepositoryFactory.create_slot_repository(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.interviewer_repository = (
            interviewer_repository or RepositoryFactory.create_interviewer_repository(db)
        )

    @BaseService.measure_operation("get_statistics")
    def get_statistics(
        self,
        start_date: date,
        end_date: date,
        appointment_type: Optional[str] = None,
    ) -> AppointmentStatistics:
        """
        Slot and booking rollups for ``start_date``..``end_date`` inclusive.

        Raises:
            ValidationException: end_date precedes start_date
        """
        if end_date < start_date:
            raise ValidationException(
                "end_date must not be before start_date",
                code="INVALID_DATE_RANGE",
                details={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
            )
        slots = self.slot_repository.find_in_range(
            start_date, end_date, appointment_type=appointment_type
        )
        bookings = self.booking_repository.find_in_date_range(
            start_date, end_date, appointment_type=appointment_type
        )
        return AppointmentStatistics(
            start_date=start_date,
            end_date=end_date,
            appointment_type=appointment_type,
            slots=summarize_slots(slots),
            bookings=summarize_bookings(bookings),
        )

    @BaseService.measure_operation("get_interviewer_performance")
    def get_interviewer_performance(
        self,
        interviewer_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> InterviewerPerformance:
        interviewer = self.interviewer_repository.get_by_id(interviewer_id)
        if interviewer is None:
            raise NotFoundException(
                f"Interviewer {interviewer_id} not found", code="INTERVIEWER_NOT_FOUND"
            )
        bookings: List[AppointmentBooking] = [
            b
            for b in self.booking_repository.find_by_interviewer(interviewer_id)
            if (start_date is None or b.scheduled_date >= start_date)
            and (end_date is None or b.scheduled_date <= end_date)
        ]
        summary = summarize_bookings(bookings)
        return InterviewerPerformance(
            interviewer_id=interviewer.id,
            name=interviewer.name,
            total_bookings=summary.total_bookings,
            completed=summary.completed,
            cancelled=summary.cancelled,
            no_show=summary.no_show,
            completion_rate=summary.completion_rate,
            average_rating=float(interviewer.average_rating or 0.0),
            rating_count=int(interviewer.rating_count or 0),
            by_type=summary.by_type,
        )

    # Rolling counters. Callers own the transaction.

    def record_new_booking(self, interviewer_id: str) -> bool:
        return self.interviewer_repository.increment_total_appointments(interviewer_id)

    def record_completion(self, interviewer_id: str, rating: Optional[int] = None) -> bool:
        updated = self.interviewer_repository.record_completion(interviewer_id, rating)
        if not updated:
            self.logger.warning(
                "Completion recorded for unknown interviewer",
                extra={"interviewer_id": interviewer_id},
            )
        return updated
