"""
Base schemas shared by the request and response DTOs.
"""
from datetime import time
import re
from typing import Any

from pydantic import BaseModel, ConfigDict

from ..domain.intervals import parse_hhmm

DATE_ONLY_REGEX = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class StandardizedModel(BaseModel):
    """Base model with standardized JSON encoding"""

    model_config = ConfigDict(use_enum_values=True, populate_by_name=True, from_attributes=True)


class StrictModel(BaseModel):
    """Neutral strict base for response DTOs."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(
        extra="forbid", validate_assignment=True, validate_default=True, use_enum_values=True
    )


def ensure_date_only(value: object, field_name: str) -> object:
    if isinstance(value, str):
        candidate = value.strip()
        if not DATE_ONLY_REGEX.fullmatch(candidate):
            raise ValueError(f"{field_name} must be a YYYY-MM-DD date-only string")
        return candidate
    return value


def parse_time_value(value: Any) -> Any:
    """Convert ``HH:MM`` strings to time objects; leave everything else to pydantic."""
    if isinstance(value, str) and not isinstance(value, time):
        return parse_hhmm(value)
    return value
