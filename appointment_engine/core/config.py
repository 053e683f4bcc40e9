# appointment_engine/core/config.py
from functools import lru_cache
import logging
import os
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import (
    DEFAULT_CANCELLATION_DEADLINE_HOURS,
    DEFAULT_MAX_OCCURRENCES,
    DEFAULT_REMINDER_LEAD_HOURS,
    DEFAULT_SLOT_CAPACITY,
    DEFAULT_SLOT_DURATION_MINUTES,
    DEFAULT_TIMEZONE,
    MAX_REMINDERS_PER_BOOKING,
)

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="APPOINTMENT_",
        extra="ignore",
    )

    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development", description="Deployment environment name"
    )
    database_url: str = Field(
        default="sqlite:///./appointments.db",
        description="SQLAlchemy URL of the slot/booking store",
    )
    database_echo: bool = Field(default=False, description="Echo SQL statements")
    log_level: str = Field(default="INFO", description="Root log level for CLI entry points")

    # Slot defaults
    default_timezone: str = Field(default=DEFAULT_TIMEZONE)
    default_slot_duration_minutes: int = Field(default=DEFAULT_SLOT_DURATION_MINUTES, ge=5)
    default_capacity: int = Field(default=DEFAULT_SLOT_CAPACITY, ge=1)
    default_cancellation_deadline_hours: int = Field(
        default=DEFAULT_CANCELLATION_DEADLINE_HOURS, ge=0
    )
    max_recurring_occurrences: int = Field(
        default=DEFAULT_MAX_OCCURRENCES,
        ge=1,
        description="Occurrence cap used when a recurring pattern does not set one",
    )

    # Reminder selection
    reminder_max_sends: int = Field(default=MAX_REMINDERS_PER_BOOKING, ge=1)
    reminder_lead_hours: int = Field(default=DEFAULT_REMINDER_LEAD_HOURS, ge=1)

    # Per-slot locking
    slot_lock_backend: Literal["memory", "redis"] = Field(
        default="memory", description="memory for single-process, redis for multi-process"
    )
    redis_url: str = Field(default="redis://localhost:6379/0")
    slot_lock_namespace: str = Field(default="appointments")
    slot_lock_ttl_seconds: int = Field(default=30, ge=1)
    slot_lock_wait_seconds: float = Field(default=5.0, gt=0)

    # Observability
    slow_operation_threshold_seconds: float = Field(default=1.0, gt=0)

    # Seeding / backfill
    seed_horizon_days: int = Field(default=14, ge=1)
    seed_sub_slot_minutes: int = Field(default=30, ge=5)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings(env_file: Optional[str] = None) -> Settings:
    """Load settings once per process (tests construct Settings directly)."""
    if env_file:
        return Settings(_env_file=env_file)
    return Settings()


settings = get_settings()
