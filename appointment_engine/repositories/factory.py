# appointment_engine/repositories/factory.py
"""
Repository Factory for the appointment engine.

Provides centralized creation of repository instances so services can be
handed explicit repositories in tests and default-build them from a session
otherwise.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .interviewer_repository import InterviewerRepository
    from .slot_repository import SlotRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_interviewer_repository(db: Session) -> "InterviewerRepository":
        """Create repository for interviewer profiles and counters."""
        from .interviewer_repository import InterviewerRepository

        return InterviewerRepository(db)

    @staticmethod
    def create_slot_repository(db: Session) -> "SlotRepository":
        """Create repository for slot queries and capacity ledger updates."""
        from .slot_repository import SlotRepository

        return SlotRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        """Create repository for booking operations."""
        from .booking_repository import BookingRepository

        return BookingRepository(db)
