"""Statistics rollup schemas. Every rate is 0.0 when its denominator is 0."""

from datetime import date
from typing import Dict, Optional

from pydantic import Field

from .base import StandardizedModel


class SlotStatistics(StandardizedModel):
    total_slots: int = 0
    available_slots: int = 0
    fully_booked_slots: int = 0
    total_capacity: int = 0
    total_booked: int = 0
    utilization: float = 0.0
    consultation_slots: int = 0
    interview_slots: int = 0


class BookingStatistics(StandardizedModel):
    total_bookings: int = 0
    completed: int = 0
    cancelled: int = 0
    no_show: int = 0
    rescheduled: int = 0
    completion_rate: float = 0.0
    no_show_rate: float = 0.0
    reschedule_rate: float = 0.0
    average_rating: float = 0.0
    rated_bookings: int = 0
    by_status: Dict[str, int] = Field(default_factory=dict)
    by_type: Dict[str, int] = Field(default_factory=dict)


class AppointmentStatistics(StandardizedModel):
    start_date: date
    end_date: date
    appointment_type: Optional[str] = None
    slots: SlotStatistics
    bookings: BookingStatistics
