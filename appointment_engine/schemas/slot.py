"""
Slot schemas.

A slot request carries one template. With ``is_recurring`` and a
``recurring_pattern`` the generator expands it into a batch, otherwise a
single slot is created.
"""

from datetime import date, time
from typing import List, Optional

from pydantic import Field, field_validator, model_validator

from ..core.constants import DEFAULT_TIMEZONE
from ..core.enums import AppointmentType, InterviewType, RecurrenceType
from ..domain.intervals import TimeRange
from ..domain.recurrence import RecurringPattern
from .base import StandardizedModel, StrictRequestModel, ensure_date_only, parse_time_value


class RecurringPatternSchema(StrictRequestModel):
    type: RecurrenceType
    interval: int = Field(1, ge=1, le=52)
    days_of_week: Optional[List[int]] = Field(
        None, description="Weekday filter for weekly patterns, 0=Sunday ... 6=Saturday"
    )
    end_date: Optional[date] = None
    max_occurrences: Optional[int] = Field(None, ge=1, le=366)

    @field_validator("days_of_week")
    @classmethod
    def _validate_days(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("days_of_week values must be between 0 (Sunday) and 6 (Saturday)")
        return sorted(set(v))

    def to_domain(self) -> RecurringPattern:
        return RecurringPattern(
            type=RecurrenceType(self.type),
            interval=self.interval,
            days_of_week=tuple(self.days_of_week) if self.days_of_week else None,
            end_date=self.end_date,
            max_occurrences=self.max_occurrences,
        )


class SlotCreate(StrictRequestModel):
    """Slot template: where, when and how many seats."""

    interviewer_id: str
    appointment_type: AppointmentType
    slot_date: date
    start_time: time
    end_time: time
    duration_minutes: Optional[int] = Field(
        None, gt=0, description="Defaults to the span between start_time and end_time"
    )
    timezone: str = DEFAULT_TIMEZONE
    interview_type: InterviewType = InterviewType.VIDEO_CALL
    capacity: int = Field(1, ge=1, le=100)
    location: Optional[str] = Field(None, max_length=255)
    meeting_url: Optional[str] = Field(None, max_length=500)
    meeting_id: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=50)
    requires_pre_approval: Optional[bool] = None
    cancellation_deadline_hours: Optional[int] = Field(None, ge=0, le=720)
    notes: Optional[str] = None
    created_by: Optional[str] = None
    is_recurring: bool = False
    recurring_pattern: Optional[RecurringPatternSchema] = None

    @field_validator("slot_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "slot_date")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_time_value(v)

    @model_validator(mode="after")
    def _validate_times(self) -> "SlotCreate":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        span = self.time_range.duration_minutes
        if self.duration_minutes is not None and self.duration_minutes != span:
            raise ValueError(
                f"duration_minutes ({self.duration_minutes}) does not match the "
                f"{span} minutes between start_time and end_time"
            )
        if self.is_recurring and self.recurring_pattern is None:
            raise ValueError("recurring_pattern is required when is_recurring is set")
        return self

    @property
    def time_range(self) -> TimeRange:
        return TimeRange.from_times(self.start_time, self.end_time)

    @property
    def resolved_duration_minutes(self) -> int:
        return self.duration_minutes or self.time_range.duration_minutes


class SlotUpdate(StrictRequestModel):
    slot_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    capacity: Optional[int] = Field(None, ge=1, le=100)
    is_available: Optional[bool] = None
    interview_type: Optional[InterviewType] = None
    location: Optional[str] = Field(None, max_length=255)
    meeting_url: Optional[str] = Field(None, max_length=500)
    meeting_id: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=50)
    requires_pre_approval: Optional[bool] = None
    cancellation_deadline_hours: Optional[int] = Field(None, ge=0, le=720)
    notes: Optional[str] = None

    @field_validator("slot_date", mode="before")
    @classmethod
    def _enforce_date_only(cls, v: object) -> object:
        return ensure_date_only(v, "slot_date")

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _parse_time(cls, v: object) -> object:
        return parse_time_value(v)

    @property
    def changes_schedule(self) -> bool:
        return any(v is not None for v in (self.slot_date, self.start_time, self.end_time))


class SlotResponse(StandardizedModel):
    id: str
    interviewer_id: str
    interviewer_name: Optional[str] = None
    appointment_type: str
    slot_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    timezone: str
    interview_type: str
    is_available: bool
    capacity: int
    booked_count: int
    remaining_capacity: int
    is_recurring: bool
    parent_slot_id: Optional[str] = None
    requires_pre_approval: bool
    cancellation_deadline_hours: int


class SkippedDate(StandardizedModel):
    slot_date: date
    reason: str


class SlotBatchResult(StandardizedModel):
    """
    Outcome of a recurring generation.

    Partial success is expected: ``requested`` counts every date the pattern
    produced, ``created`` holds the slots that were persisted and
    ``skipped`` explains every other date.
    """

    created: List[SlotResponse] = Field(default_factory=list)
    skipped: List[SkippedDate] = Field(default_factory=list)
    requested: int = 0

    @property
    def created_count(self) -> int:
        return len(self.created)
