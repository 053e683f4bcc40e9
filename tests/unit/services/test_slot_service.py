from datetime import date, time

import pytest

from appointment_engine.core.exceptions import (
    FailedPreconditionException,
    NotFoundException,
    SlotConflictException,
    ValidationException,
)
from appointment_engine.models import AppointmentSlot
from appointment_engine.schemas import SlotBatchResult, SlotCreate, SlotUpdate

TUESDAY = date(2030, 1, 8)


class TestCreateSlots:
    def test_single_slot(self, slot_service, interviewer):
        result = slot_service.create_slots(
            SlotCreate(
                interviewer_id=interviewer.id,
                appointment_type="consultation",
                slot_date="2030-01-08",
                start_time="14:00",
                end_time="15:00",
            )
        )

        assert isinstance(result, AppointmentSlot)
        assert result.duration_minutes == 60

    def test_recurring_batch(self, slot_service, interviewer):
        result = slot_service.create_slots(
            SlotCreate(
                interviewer_id=interviewer.id,
                appointment_type="member_interview",
                slot_date=TUESDAY,
                start_time="14:00",
                end_time="15:00",
                is_recurring=True,
                recurring_pattern={"type": "weekly", "max_occurrences": 2},
            )
        )

        assert isinstance(result, SlotBatchResult)
        assert [s.slot_date for s in result.created] == [TUESDAY, date(2030, 1, 15)]


class TestAvailableSlots:
    def test_only_bookable_slots_of_type(self, slot_service, make_slot):
        open_slot = make_slot(
            start_time=time(9, 0), end_time=time(9, 30), capacity=3, booked_count=1
        )
        make_slot(start_time=time(10, 0), end_time=time(10, 30), booked_count=1)
        make_slot(start_time=time(11, 0), end_time=time(11, 30), is_available=False)
        make_slot(
            start_time=time(14, 0), end_time=time(14, 30), appointment_type="member_interview"
        )

        slots = slot_service.get_available_slots("consultation", TUESDAY, TUESDAY)

        assert [s.id for s in slots] == [open_slot.id]
        assert slots[0].remaining_capacity == 2

    def test_filters_by_interviewer(self, slot_service, make_slot, make_interviewer):
        other = make_interviewer()
        mine = make_slot()
        make_slot(other)

        slots = slot_service.get_available_slots(
            "consultation", TUESDAY, interviewer_id=mine.interviewer_id
        )

        assert [s.id for s in slots] == [mine.id]

    def test_invalid_range(self, slot_service):
        with pytest.raises(ValidationException) as exc_info:
            slot_service.get_available_slots("consultation", TUESDAY, date(2030, 1, 1))

        assert exc_info.value.code == "INVALID_DATE_RANGE"


class TestSlotDetails:
    def test_details(self, slot_service, make_slot, make_booking, interviewer):
        slot = make_slot(capacity=2, booked_count=1)
        booking = make_booking(slot)

        details = slot_service.get_slot_details(slot.id)

        assert details["slot"].id == slot.id
        assert [b.id for b in details["bookings"]] == [booking.id]
        assert details["interviewer"].id == interviewer.id
        assert details["remaining_capacity"] == 1

    def test_unknown_slot(self, slot_service):
        with pytest.raises(NotFoundException):
            slot_service.get_slot_details("missing")
        with pytest.raises(NotFoundException):
            slot_service.get_slot("missing")

    def test_list_interviewer_slots(self, slot_service, make_slot, interviewer):
        first = make_slot()
        second = make_slot(slot_date=date(2030, 1, 9), is_available=False)

        slots = slot_service.list_interviewer_slots(interviewer.id, TUESDAY)

        assert [s.id for s in slots] == [first.id, second.id]


class TestUpdateSlot:
    def test_reschedule_recomputes_duration(self, slot_service, make_slot):
        slot = make_slot()

        updated = slot_service.update_slot(
            slot.id, SlotUpdate(start_time="11:00", end_time="12:00")
        )

        assert updated.start_time == time(11, 0)
        assert updated.duration_minutes == 60

    def test_move_onto_other_slot_conflicts(self, slot_service, make_slot):
        make_slot(start_time=time(11, 0), end_time=time(11, 30))
        slot = make_slot()

        with pytest.raises(SlotConflictException):
            slot_service.update_slot(slot.id, SlotUpdate(start_time="11:15", end_time="11:45"))

    def test_partial_time_change_uses_existing_end(self, slot_service, make_slot):
        slot = make_slot()

        with pytest.raises(ValidationException) as exc_info:
            slot_service.update_slot(slot.id, SlotUpdate(start_time="10:30"))

        assert exc_info.value.code == "INVALID_TIME_RANGE"

    def test_capacity_cannot_drop_below_booked(self, slot_service, make_slot):
        slot = make_slot(capacity=3, booked_count=2)

        with pytest.raises(FailedPreconditionException) as exc_info:
            slot_service.update_slot(slot.id, SlotUpdate(capacity=1))

        assert exc_info.value.code == "CAPACITY_BELOW_BOOKED"
        assert slot_service.get_slot(slot.id).capacity == 3

    def test_close_slot_and_change_capacity(self, slot_service, make_slot):
        slot = make_slot(capacity=3, booked_count=2)

        updated = slot_service.update_slot(slot.id, SlotUpdate(capacity=2, is_available=False))

        assert updated.capacity == 2
        assert updated.is_available is False
        assert not updated.is_bookable

    def test_unknown_slot(self, slot_service):
        with pytest.raises(NotFoundException):
            slot_service.update_slot("missing", SlotUpdate(notes="x"))


class TestDeleteSlot:
    def test_delete_unbooked_slot(self, slot_service, make_slot, make_booking):
        slot = make_slot()
        make_booking(slot, status="cancelled")

        assert slot_service.delete_slot(slot.id) is True
        with pytest.raises(NotFoundException):
            slot_service.get_slot(slot.id)

    def test_active_booking_blocks_delete(self, slot_service, make_slot, make_booking):
        slot = make_slot(booked_count=1)
        make_booking(slot, status="confirmed")

        with pytest.raises(FailedPreconditionException) as exc_info:
            slot_service.delete_slot(slot.id)

        assert exc_info.value.code == "SLOT_HAS_BOOKINGS"
