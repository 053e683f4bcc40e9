"""
Shared fixtures for the appointment engine tests.

Every test gets a fresh in-memory SQLite database, a fixed clock
(Monday 2030-01-07 08:00 UTC) and its own in-process slot lock, so nothing
depends on the environment or the wall clock.
"""

from datetime import date, datetime, time, timezone
from typing import Any, Callable, Dict, Optional
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import Session

from appointment_engine.core.config import Settings
from appointment_engine.core.enums import AppointmentStatus, AppointmentType
from appointment_engine.core.slot_lock import InProcessSlotLock
from appointment_engine.database import Base, create_db_engine, create_session_factory, init_db
from appointment_engine.events import EventPublisher
from appointment_engine.models import AppointmentBooking, AppointmentSlot, Interviewer
from appointment_engine.services import (
    BookingService,
    InterviewerService,
    RescheduleService,
    SlotGenerator,
    SlotService,
    StatisticsService,
)

FIXED_NOW = datetime(2030, 1, 7, 8, 0, tzinfo=timezone.utc)  # a Monday

WORKDAY = {
    "enabled": True,
    "start_time": "09:00",
    "end_time": "17:00",
    "break_times": [{"start_time": "12:00", "end_time": "13:00"}],
}

WEEKDAY_AVAILABILITY: Dict[str, Dict[str, Any]] = {
    "monday": WORKDAY,
    "tuesday": WORKDAY,
    "wednesday": WORKDAY,
    "thursday": WORKDAY,
    "friday": WORKDAY,
    "saturday": {"enabled": False, "start_time": "09:00", "end_time": "17:00", "break_times": []},
}


class FixedClock:
    """Settable clock handed to services."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    init_db(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    session = create_session_factory(engine)()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def config() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def slot_lock() -> InProcessSlotLock:
    return InProcessSlotLock(wait_s=1.0)


@pytest.fixture
def publisher() -> EventPublisher:
    return EventPublisher()


@pytest.fixture
def listener(publisher: EventPublisher) -> MagicMock:
    mock = MagicMock()
    publisher.register(mock)
    return mock


# Entity factories


@pytest.fixture
def make_interviewer(db: Session) -> Callable[..., Interviewer]:
    counter = {"n": 0}

    def _make(**overrides: Any) -> Interviewer:
        counter["n"] += 1
        fields: Dict[str, Any] = {
            "name": f"Interviewer {counter['n']}",
            "appointment_types": [
                AppointmentType.CONSULTATION.value,
                AppointmentType.MEMBER_INTERVIEW.value,
            ],
            "interview_types": ["video_call"],
            "default_availability": WEEKDAY_AVAILABILITY,
            "max_daily_appointments": 8,
            "buffer_time_minutes": 15,
            "advance_booking_days": 30,
            "auto_approval": False,
            "is_active": True,
        }
        fields.update(overrides)
        interviewer = Interviewer(**fields)
        db.add(interviewer)
        db.commit()
        return interviewer

    return _make


@pytest.fixture
def interviewer(make_interviewer) -> Interviewer:
    return make_interviewer()


@pytest.fixture
def make_slot(db: Session, interviewer: Interviewer) -> Callable[..., AppointmentSlot]:
    def _make(
        owner: Optional[Interviewer] = None,
        *,
        slot_date: date = date(2030, 1, 8),
        start_time: time = time(10, 0),
        end_time: time = time(10, 30),
        **overrides: Any,
    ) -> AppointmentSlot:
        owner = owner or interviewer
        start = datetime.combine(slot_date, start_time)
        end = datetime.combine(slot_date, end_time)
        fields: Dict[str, Any] = {
            "interviewer_id": owner.id,
            "interviewer_name": owner.name,
            "appointment_type": AppointmentType.CONSULTATION.value,
            "slot_date": slot_date,
            "start_time": start_time,
            "end_time": end_time,
            "duration_minutes": int((end - start).total_seconds() // 60),
            "capacity": 1,
            "booked_count": 0,
            "is_available": True,
            "cancellation_deadline_hours": 24,
        }
        fields.update(overrides)
        slot = AppointmentSlot(**fields)
        db.add(slot)
        db.commit()
        return slot

    return _make


@pytest.fixture
def make_booking(db: Session) -> Callable[..., AppointmentBooking]:
    """Insert a booking row directly; the slot's ledger is left as is."""

    def _make(slot: AppointmentSlot, **overrides: Any) -> AppointmentBooking:
        fields: Dict[str, Any] = {
            "slot_id": slot.id,
            "interviewer_id": slot.interviewer_id,
            "guest_name": "Guest",
            "guest_email": "guest@example.com",
            "appointment_type": slot.appointment_type,
            "status": AppointmentStatus.BOOKED.value,
            "scheduled_date": slot.slot_date,
            "scheduled_time": slot.start_time,
            "duration_minutes": slot.duration_minutes,
            "booked_at": FIXED_NOW,
        }
        fields.update(overrides)
        booking = AppointmentBooking(**fields)
        db.add(booking)
        db.commit()
        return booking

    return _make


# Services


@pytest.fixture
def service_kwargs(config: Settings, clock: FixedClock) -> Dict[str, Any]:
    return {"config": config, "clock": clock}


@pytest.fixture
def slot_generator(db: Session, service_kwargs) -> SlotGenerator:
    return SlotGenerator(db, **service_kwargs)


@pytest.fixture
def slot_service(db: Session, slot_lock, service_kwargs) -> SlotService:
    return SlotService(db, slot_lock=slot_lock, **service_kwargs)


@pytest.fixture
def booking_service(db: Session, slot_lock, publisher, service_kwargs) -> BookingService:
    return BookingService(db, slot_lock=slot_lock, event_publisher=publisher, **service_kwargs)


@pytest.fixture
def reschedule_service(db: Session, slot_lock, publisher, service_kwargs) -> RescheduleService:
    return RescheduleService(db, slot_lock=slot_lock, event_publisher=publisher, **service_kwargs)


@pytest.fixture
def statistics_service(db: Session, service_kwargs) -> StatisticsService:
    return StatisticsService(db, **service_kwargs)


@pytest.fixture
def interviewer_service(db: Session, service_kwargs) -> InterviewerService:
    return InterviewerService(db, **service_kwargs)
