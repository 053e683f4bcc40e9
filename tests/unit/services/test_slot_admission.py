from datetime import date, time

import pytest

from appointment_engine.core.exceptions import (
    CapacityExhaustedException,
    FailedPreconditionException,
    SlotUnavailableException,
)
from appointment_engine.services import SlotAdmission


@pytest.fixture
def admission(db, service_kwargs):
    return SlotAdmission(db, **service_kwargs)


class TestSlotAdmission:
    def test_open_slot_returns_its_interviewer(self, admission, make_slot, interviewer):
        assert admission.ensure_admissible(make_slot()).id == interviewer.id

    def test_closed_slot(self, admission, make_slot):
        with pytest.raises(SlotUnavailableException):
            admission.ensure_admissible(make_slot(is_available=False))

    def test_full_slot_is_a_conflict(self, admission, make_slot):
        with pytest.raises(CapacityExhaustedException):
            admission.ensure_admissible(make_slot(booked_count=1))

    def test_slot_starting_now_has_started(self, admission, make_slot):
        slot = make_slot(slot_date=date(2030, 1, 7), start_time=time(8, 0), end_time=time(8, 30))

        with pytest.raises(FailedPreconditionException) as exc_info:
            admission.ensure_admissible(slot)

        assert exc_info.value.code == "SLOT_IN_PAST"

    def test_vacated_slot_on_another_day_still_counts(
        self, admission, make_slot, make_interviewer
    ):
        capped = make_interviewer(max_daily_appointments=1)
        make_slot(capped, start_time=time(9, 0), end_time=time(9, 30), booked_count=1)
        elsewhere = make_slot(capped, slot_date=date(2030, 1, 9), booked_count=1)
        target = make_slot(capped, start_time=time(14, 0), end_time=time(14, 30))

        with pytest.raises(FailedPreconditionException) as exc_info:
            admission.ensure_admissible(target, moving_from=elsewhere)

        assert exc_info.value.code == "DAILY_LIMIT_REACHED"

    def test_vacated_slot_shared_with_others_still_counts(
        self, admission, make_slot, make_interviewer
    ):
        capped = make_interviewer(max_daily_appointments=1)
        group = make_slot(
            capped, start_time=time(9, 0), end_time=time(9, 30), capacity=3, booked_count=2
        )
        target = make_slot(capped, start_time=time(14, 0), end_time=time(14, 30))

        with pytest.raises(FailedPreconditionException):
            admission.ensure_admissible(target, moving_from=group)
