"""
Service layer for the appointment engine.

Services own business rules and transactions; repositories only flush.
"""

from .base import BaseService
from .booking_service import BookingService
from .capacity_ledger import CapacityLedger
from .conflict_detector import ConflictDetector
from .interviewer_service import InterviewerService
from .reschedule_service import RescheduleService
from .slot_admission import SlotAdmission
from .slot_generator import SlotGenerator
from .slot_service import SlotService
from .statistics_service import StatisticsService

__all__ = [
    "BaseService",
    "BookingService",
    "CapacityLedger",
    "ConflictDetector",
    "InterviewerService",
    "RescheduleService",
    "SlotAdmission",
    "SlotGenerator",
    "SlotService",
    "StatisticsService",
]
