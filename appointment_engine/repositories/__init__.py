"""
Repository layer for the appointment engine.

The storage port the services are built on: one repository per entity,
created through RepositoryFactory.
"""

from .base_repository import BaseRepository, IRepository
from .booking_repository import BookingRepository
from .factory import RepositoryFactory
from .interviewer_repository import InterviewerRepository
from .slot_repository import SlotRepository

__all__ = [
    "BaseRepository",
    "BookingRepository",
    "IRepository",
    "InterviewerRepository",
    "RepositoryFactory",
    "SlotRepository",
]
