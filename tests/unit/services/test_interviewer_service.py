from datetime import date, time

import pytest
from pydantic import ValidationError

from appointment_engine.core.exceptions import (
    FailedPreconditionException,
    NotFoundException,
    ValidationException,
)
from appointment_engine.schemas import DayAvailabilitySchema, InterviewerCreate, InterviewerUpdate

MONDAY = date(2030, 1, 7)
SATURDAY = date(2030, 1, 12)


def _create_payload(**overrides):
    fields = {
        "name": "Lin",
        "email": "lin@example.com",
        "appointment_types": ["consultation"],
        "default_availability": {
            "Monday": {
                "enabled": True,
                "start_time": "09:00",
                "end_time": "12:00",
                "break_times": [{"start_time": "10:00", "end_time": "10:15"}],
            }
        },
    }
    fields.update(overrides)
    return InterviewerCreate(**fields)


class TestProfiles:
    def test_create_stores_availability_as_strings(self, interviewer_service):
        created = interviewer_service.create_interviewer(_create_payload())

        assert created.is_active is True
        assert created.appointment_types == ["consultation"]
        assert created.interview_types == ["video_call"]
        assert created.default_availability == {
            "monday": {
                "enabled": True,
                "start_time": "09:00",
                "end_time": "12:00",
                "break_times": [{"start_time": "10:00", "end_time": "10:15"}],
            }
        }

    def test_create_rejects_unknown_weekday(self):
        with pytest.raises(ValidationError):
            _create_payload(default_availability={"funday": {"enabled": True}})

    def test_create_rejects_break_outside_window(self):
        with pytest.raises(ValidationError):
            DayAvailabilitySchema(
                enabled=True,
                start_time="09:00",
                end_time="12:00",
                break_times=[{"start_time": "12:30", "end_time": "13:00"}],
            )

    def test_update(self, interviewer_service, interviewer):
        updated = interviewer_service.update_interviewer(
            interviewer.id, InterviewerUpdate(title="Lead", buffer_time_minutes=0)
        )

        assert updated.title == "Lead"
        assert updated.buffer_time_minutes == 0
        assert updated.name == interviewer.name

    def test_unknown_interviewer(self, interviewer_service):
        with pytest.raises(NotFoundException) as exc_info:
            interviewer_service.get_interviewer("missing")

        assert exc_info.value.code == "INTERVIEWER_NOT_FOUND"


class TestAvailability:
    def test_set_day_availability_keeps_other_days(self, interviewer_service, interviewer):
        updated = interviewer_service.set_day_availability(
            interviewer.id,
            "Saturday",
            DayAvailabilitySchema(enabled=True, start_time="10:00", end_time="14:00"),
        )

        assert updated.default_availability["saturday"]["enabled"] is True
        assert updated.default_availability["monday"]["start_time"] == "09:00"
        assert interviewer_service.check_availability(
            interviewer.id, SATURDAY, time(10, 0), time(11, 0)
        )

    def test_invalid_weekday(self, interviewer_service, interviewer):
        with pytest.raises(ValidationException) as exc_info:
            interviewer_service.set_day_availability(
                interviewer.id, "someday", DayAvailabilitySchema()
            )

        assert exc_info.value.code == "INVALID_WEEKDAY"

    def test_check_availability(self, interviewer_service, interviewer):
        check = interviewer_service.check_availability

        assert check(interviewer.id, MONDAY, time(11, 0), time(12, 0))
        assert not check(interviewer.id, MONDAY, time(11, 30), time(12, 30))
        assert not check(interviewer.id, SATURDAY, time(10, 0), time(11, 0))

    def test_inactive_interviewer_is_unavailable(self, interviewer_service, interviewer):
        interviewer_service.deactivate_interviewer(interviewer.id)

        assert not interviewer_service.check_availability(
            interviewer.id, MONDAY, time(10, 0), time(11, 0)
        )
        assert interviewer_service.activate_interviewer(interviewer.id).is_active is True


class TestDeletion:
    def test_delete_removes_slots(self, interviewer_service, interviewer, make_slot):
        slot = make_slot()
        slot_id = slot.id

        assert interviewer_service.delete_interviewer(interviewer.id) is True

        assert interviewer_service.slot_repository.get_by_id(slot_id) is None
        with pytest.raises(NotFoundException):
            interviewer_service.get_interviewer(interviewer.id)

    def test_active_bookings_block_delete(
        self, interviewer_service, interviewer, make_slot, make_booking
    ):
        make_booking(make_slot(booked_count=1))

        with pytest.raises(FailedPreconditionException) as exc_info:
            interviewer_service.delete_interviewer(interviewer.id)

        assert exc_info.value.code == "INTERVIEWER_HAS_BOOKINGS"


class TestListings:
    def test_list_active(self, interviewer_service, make_interviewer):
        active = make_interviewer(interview_types=["phone_call"])
        make_interviewer(is_active=False)

        listed = interviewer_service.list_active_interviewers(interview_type="phone_call")

        assert [i.id for i in listed] == [active.id]

    def test_daily_count_and_top_performers(
        self, interviewer_service, interviewer, make_interviewer, make_slot
    ):
        make_slot(booked_count=1)
        make_slot(start_time=time(11, 0), end_time=time(11, 30))
        star = make_interviewer(average_rating=4.9, completed_appointments=3)

        count = interviewer_service.get_daily_appointment_count(interviewer.id, date(2030, 1, 8))
        assert count == 1
        assert [i.id for i in interviewer_service.get_top_performers()] == [star.id]
