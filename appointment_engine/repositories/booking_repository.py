# appointment_engine/repositories/booking_repository.py
"""
Booking Repository for the appointment engine.

Bookings are looked up by requester (user id or guest email, never both),
by slot, by scheduled date range and by reminder eligibility. Status
filters always take an explicit set of statuses.
"""

from datetime import date, datetime
import logging
from typing import Iterable, List, Optional, Union, cast

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from ..core.enums import ACTIVE_BOOKING_STATUSES, AppointmentStatus
from ..core.exceptions import RepositoryException
from ..models.booking import AppointmentBooking
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)

ACTIVE_STATUS_VALUES = [status.value for status in ACTIVE_BOOKING_STATUSES]

StatusFilter = Iterable[Union[AppointmentStatus, str]]


def _status_values(statuses: StatusFilter) -> List[str]:
    return [s.value if isinstance(s, AppointmentStatus) else str(s) for s in statuses]


class BookingRepository(BaseRepository[AppointmentBooking]):
    """Data access for appointment bookings."""

    def __init__(self, db: Session):
        super().__init__(db, AppointmentBooking)
        self.logger = logging.getLogger(__name__)

    def _requester_query(
        self, user_id: Optional[str], guest_email: Optional[str]
    ) -> Query:
        # A user id identifies the requester when present; the guest email is
        # only consulted for guests.
        query = self.db.query(AppointmentBooking)
        if user_id:
            return query.filter(AppointmentBooking.user_id == user_id)
        if guest_email:
            return query.filter(
                AppointmentBooking.user_id.is_(None),
                func.lower(AppointmentBooking.guest_email) == guest_email.lower(),
            )
        raise RepositoryException("A user id or guest email is required to look up bookings")

    def find_by_requester(
        self,
        *,
        user_id: Optional[str] = None,
        guest_email: Optional[str] = None,
        statuses: Optional[StatusFilter] = None,
    ) -> List[AppointmentBooking]:
        """Requester's bookings, newest first."""
        try:
            query = self._requester_query(user_id, guest_email)
            if statuses is not None:
                query = query.filter(AppointmentBooking.status.in_(_status_values(statuses)))
            query = query.order_by(
                AppointmentBooking.booked_at.desc(), AppointmentBooking.id.desc()
            )
            return cast(List[AppointmentBooking], query.all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for requester: {str(e)}")
            raise RepositoryException(f"Failed to get requester bookings: {str(e)}")

    def find_active_for_requester_on(
        self,
        scheduled_date: date,
        *,
        user_id: Optional[str] = None,
        guest_email: Optional[str] = None,
        exclude_booking_id: Optional[str] = None,
    ) -> List[AppointmentBooking]:
        """Requester's booked/confirmed bookings on one date (conflict candidates)."""
        try:
            query = self._requester_query(user_id, guest_email).filter(
                AppointmentBooking.scheduled_date == scheduled_date,
                AppointmentBooking.status.in_(ACTIVE_STATUS_VALUES),
            )
            if exclude_booking_id:
                query = query.filter(AppointmentBooking.id != exclude_booking_id)
            return cast(
                List[AppointmentBooking], query.order_by(AppointmentBooking.scheduled_time).all()
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for conflict check: {str(e)}")
            raise RepositoryException(f"Failed to get conflict bookings: {str(e)}")

    def find_by_slot(
        self, slot_id: str, statuses: Optional[StatusFilter] = None
    ) -> List[AppointmentBooking]:
        try:
            query = self.db.query(AppointmentBooking).filter(AppointmentBooking.slot_id == slot_id)
            if statuses is not None:
                query = query.filter(AppointmentBooking.status.in_(_status_values(statuses)))
            query = query.order_by(AppointmentBooking.booked_at)
            return cast(List[AppointmentBooking], query.all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for slot {slot_id}: {str(e)}")
            raise RepositoryException(f"Failed to get slot bookings: {str(e)}")

    def count_active_for_slot(self, slot_id: str) -> int:
        query = self.db.query(func.count(AppointmentBooking.id)).filter(
            AppointmentBooking.slot_id == slot_id,
            AppointmentBooking.status.in_(ACTIVE_STATUS_VALUES),
        )
        return int(self._execute_scalar(query) or 0)

    def count_active_for_interviewer(self, interviewer_id: str) -> int:
        query = self.db.query(func.count(AppointmentBooking.id)).filter(
            AppointmentBooking.interviewer_id == interviewer_id,
            AppointmentBooking.status.in_(ACTIVE_STATUS_VALUES),
        )
        return int(self._execute_scalar(query) or 0)

    def find_in_date_range(
        self,
        start_date: date,
        end_date: date,
        *,
        appointment_type: Optional[str] = None,
        interviewer_id: Optional[str] = None,
    ) -> List[AppointmentBooking]:
        """Bookings scheduled between ``start_date`` and ``end_date`` inclusive."""
        try:
            query = self.db.query(AppointmentBooking).filter(
                AppointmentBooking.scheduled_date >= start_date,
                AppointmentBooking.scheduled_date <= end_date,
            )
            if appointment_type:
                query = query.filter(AppointmentBooking.appointment_type == appointment_type)
            if interviewer_id:
                query = query.filter(AppointmentBooking.interviewer_id == interviewer_id)
            query = query.order_by(
                AppointmentBooking.scheduled_date, AppointmentBooking.scheduled_time
            )
            return cast(List[AppointmentBooking], query.all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings in range: {str(e)}")
            raise RepositoryException(f"Failed to get bookings: {str(e)}")

    def find_by_interviewer(self, interviewer_id: str) -> List[AppointmentBooking]:
        try:
            return cast(
                List[AppointmentBooking],
                self.db.query(AppointmentBooking)
                .filter(AppointmentBooking.interviewer_id == interviewer_id)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for interviewer: {str(e)}")
            raise RepositoryException(f"Failed to get interviewer bookings: {str(e)}")

    def find_active_on(self, target_date: date) -> List[AppointmentBooking]:
        """Booked/confirmed bookings on ``target_date`` ordered by time."""
        try:
            return cast(
                List[AppointmentBooking],
                self.db.query(AppointmentBooking)
                .filter(
                    AppointmentBooking.scheduled_date == target_date,
                    AppointmentBooking.status.in_(ACTIVE_STATUS_VALUES),
                )
                .order_by(AppointmentBooking.scheduled_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for date: {str(e)}")
            raise RepositoryException(f"Failed to get bookings: {str(e)}")

    def find_reminder_candidates(
        self, window_start: datetime, window_end: datetime, max_reminders: int
    ) -> List[AppointmentBooking]:
        """
        Active bookings starting inside [window_start, window_end] that have
        been reminded fewer than ``max_reminders`` times.

        The date filter runs in SQL; the time-of-day edge of the window is
        applied to the narrowed rows.
        """
        try:
            rows = cast(
                List[AppointmentBooking],
                self.db.query(AppointmentBooking)
                .filter(
                    AppointmentBooking.scheduled_date >= window_start.date(),
                    AppointmentBooking.scheduled_date <= window_end.date(),
                    AppointmentBooking.status.in_(ACTIVE_STATUS_VALUES),
                    AppointmentBooking.reminders_sent < max_reminders,
                )
                .order_by(AppointmentBooking.scheduled_date, AppointmentBooking.scheduled_time)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting reminder candidates: {str(e)}")
            raise RepositoryException(f"Failed to get reminder candidates: {str(e)}")
        return [b for b in rows if window_start <= b.starts_at <= window_end]

    def increment_reminders_sent(self, booking_id: str, max_reminders: int) -> bool:
        query = self.db.query(AppointmentBooking).filter(
            AppointmentBooking.id == booking_id,
            AppointmentBooking.reminders_sent < max_reminders,
        )
        updated = self._execute_update(
            query, {AppointmentBooking.reminders_sent: AppointmentBooking.reminders_sent + 1}
        )
        return updated == 1
