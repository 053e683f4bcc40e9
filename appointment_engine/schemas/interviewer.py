"""
Interviewer schemas.

Weekly availability travels as a mapping of lowercase weekday name to a
day entry: ``{"monday": {"enabled": true, "start_time": "09:00",
"end_time": "17:00", "break_times": [{"start_time": "12:00", "end_time": "13:00"}]}}``.
"""

from datetime import time
from typing import Dict, List, Optional

from pydantic import EmailStr, Field, field_validator, model_validator

from ..core.constants import (
    DEFAULT_ADVANCE_BOOKING_DAYS,
    DEFAULT_BUFFER_TIME_MINUTES,
    DEFAULT_MAX_DAILY_APPOINTMENTS,
    WEEKDAY_NAMES,
)
from ..core.enums import AppointmentType, InterviewType
from ..domain.availability import BreakInterval, DayAvailability, WeeklyAvailability
from ..domain.intervals import format_hhmm
from .base import StandardizedModel, StrictRequestModel, parse_time_value


class BreakTime(StrictRequestModel):
    start_time: time
    end_time: time

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_time_value(v)

    @model_validator(mode="after")
    def _validate_order(self) -> "BreakTime":
        if self.end_time <= self.start_time:
            raise ValueError("Break end_time must be after start_time")
        return self


class DayAvailabilitySchema(StrictRequestModel):
    """One weekday of an interviewer's availability."""

    enabled: bool = False
    start_time: time = time(9, 0)
    end_time: time = time(17, 0)
    break_times: List[BreakTime] = Field(default_factory=list)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_time_value(v)

    @model_validator(mode="after")
    def _validate_window(self) -> "DayAvailabilitySchema":
        if self.end_time <= self.start_time:
            raise ValueError("Day end_time must be after start_time")
        for item in self.break_times:
            if item.start_time < self.start_time or item.end_time > self.end_time:
                raise ValueError(
                    f"Break {format_hhmm(item.start_time)}-{format_hhmm(item.end_time)} "
                    "falls outside the open window"
                )
        return self

    def to_domain(self) -> DayAvailability:
        return DayAvailability(
            enabled=self.enabled,
            start_time=self.start_time,
            end_time=self.end_time,
            break_times=tuple(BreakInterval(b.start_time, b.end_time) for b in self.break_times),
        )


AvailabilityMap = Dict[str, DayAvailabilitySchema]


def _validate_weekday_keys(value: Optional[AvailabilityMap]) -> Optional[AvailabilityMap]:
    if value is None:
        return value
    normalized = {}
    for key, day in value.items():
        name = key.lower()
        if name not in WEEKDAY_NAMES:
            raise ValueError(f"Unknown weekday: {key}")
        normalized[name] = day
    return normalized


def availability_to_domain(value: Optional[AvailabilityMap]) -> WeeklyAvailability:
    return WeeklyAvailability(days={name: day.to_domain() for name, day in (value or {}).items()})


class InterviewerCreate(StrictRequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    title: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    user_id: Optional[str] = None
    appointment_types: List[AppointmentType] = Field(..., min_length=1)
    interview_types: List[InterviewType] = Field(
        default_factory=lambda: [InterviewType.VIDEO_CALL]
    )
    languages: List[str] = Field(default_factory=list)
    specialties: List[str] = Field(default_factory=list)
    default_availability: AvailabilityMap = Field(default_factory=dict)
    max_daily_appointments: int = Field(DEFAULT_MAX_DAILY_APPOINTMENTS, ge=1, le=50)
    buffer_time_minutes: int = Field(DEFAULT_BUFFER_TIME_MINUTES, ge=0, le=240)
    advance_booking_days: int = Field(DEFAULT_ADVANCE_BOOKING_DAYS, ge=1, le=365)
    auto_approval: bool = False

    @field_validator("default_availability")
    @classmethod
    def _weekday_keys(cls, v: AvailabilityMap) -> AvailabilityMap:
        return _validate_weekday_keys(v) or {}


class InterviewerUpdate(StrictRequestModel):
    """Partial profile update; availability goes through its own operation."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    title: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    appointment_types: Optional[List[AppointmentType]] = Field(None, min_length=1)
    interview_types: Optional[List[InterviewType]] = None
    languages: Optional[List[str]] = None
    specialties: Optional[List[str]] = None
    default_availability: Optional[AvailabilityMap] = None
    max_daily_appointments: Optional[int] = Field(None, ge=1, le=50)
    buffer_time_minutes: Optional[int] = Field(None, ge=0, le=240)
    advance_booking_days: Optional[int] = Field(None, ge=1, le=365)
    auto_approval: Optional[bool] = None

    @field_validator("default_availability")
    @classmethod
    def _weekday_keys(cls, v: Optional[AvailabilityMap]) -> Optional[AvailabilityMap]:
        return _validate_weekday_keys(v)


class InterviewerResponse(StandardizedModel):
    id: str
    user_id: Optional[str] = None
    name: str
    title: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    appointment_types: List[str]
    interview_types: List[str]
    languages: List[str]
    specialties: List[str]
    is_active: bool
    default_availability: Dict[str, dict]
    max_daily_appointments: int
    buffer_time_minutes: int
    advance_booking_days: int
    auto_approval: bool
    total_appointments: int
    completed_appointments: int
    average_rating: float
    rating_count: int


class InterviewerPerformance(StandardizedModel):
    interviewer_id: str
    name: str
    total_bookings: int
    completed: int
    cancelled: int
    no_show: int
    completion_rate: float
    average_rating: float
    rating_count: int
    by_type: Dict[str, int]
