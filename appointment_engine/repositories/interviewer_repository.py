# appointment_engine/repositories/interviewer_repository.py
"""Interviewer Repository: listings and rolling performance counters."""

import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.constants import DEFAULT_TOP_PERFORMERS_LIMIT
from ..core.exceptions import RepositoryException
from ..models.interviewer import Interviewer
from .base_repository import BaseRepository

logger = logging.getLogger(__name__)


class InterviewerRepository(BaseRepository[Interviewer]):
    def __init__(self, db: Session):
        super().__init__(db, Interviewer)
        self.logger = logging.getLogger(__name__)

    def find_active(
        self,
        *,
        appointment_type: Optional[str] = None,
        interview_type: Optional[str] = None,
    ) -> List[Interviewer]:
        """
        Active interviewers, best rated first, then by total appointments.

        The kind/modality filters test membership in JSON arrays, which is
        applied after the SQL query to stay dialect neutral.
        """
        try:
            rows = cast(
                List[Interviewer],
                self.db.query(Interviewer)
                .filter(Interviewer.is_active.is_(True))
                .order_by(
                    Interviewer.average_rating.desc(),
                    Interviewer.total_appointments.desc(),
                    Interviewer.name,
                )
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting active interviewers: {str(e)}")
            raise RepositoryException(f"Failed to get interviewers: {str(e)}")
        if appointment_type:
            rows = [i for i in rows if i.supports_appointment_type(appointment_type)]
        if interview_type:
            rows = [i for i in rows if i.supports_interview_type(interview_type)]
        return rows

    def find_top_performers(self, limit: int = DEFAULT_TOP_PERFORMERS_LIMIT) -> List[Interviewer]:
        try:
            return cast(
                List[Interviewer],
                self.db.query(Interviewer)
                .filter(
                    Interviewer.is_active.is_(True),
                    Interviewer.completed_appointments > 0,
                )
                .order_by(
                    Interviewer.average_rating.desc(),
                    Interviewer.completed_appointments.desc(),
                )
                .limit(limit)
                .all(),
            )
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting top performers: {str(e)}")
            raise RepositoryException(f"Failed to get top performers: {str(e)}")

    # Rolling counters, each a single UPDATE so concurrent completions do not
    # lose increments.

    def increment_total_appointments(self, interviewer_id: str) -> bool:
        query = self.db.query(Interviewer).filter(Interviewer.id == interviewer_id)
        updated = self._execute_update(
            query, {Interviewer.total_appointments: Interviewer.total_appointments + 1}
        )
        return updated == 1

    def record_completion(self, interviewer_id: str, rating: Optional[int] = None) -> bool:
        """
        Count one completed appointment and fold ``rating`` into the average.

        All right-hand sides read the pre-update row, so the new average is
        (avg * n + rating) / (n + 1).
        """
        values = {Interviewer.completed_appointments: Interviewer.completed_appointments + 1}
        if rating is not None:
            values[Interviewer.average_rating] = (
                Interviewer.average_rating * Interviewer.rating_count + float(rating)
            ) / (Interviewer.rating_count + 1)
            values[Interviewer.rating_count] = Interviewer.rating_count + 1
        query = self.db.query(Interviewer).filter(Interviewer.id == interviewer_id)
        return self._execute_update(query, values) == 1

