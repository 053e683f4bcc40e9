"""
BookingService behavior against a real SQLite session.

The clock is fixed at Monday 2030-01-07 08:00 UTC; the default slot is on
Tuesday 10:00, 26 hours out.
"""

from datetime import date, datetime, time, timezone

import pytest

from appointment_engine.core.enums import AppointmentStatus, BookingOutcome
from appointment_engine.core.exceptions import (
    BookingConflictException,
    CapacityExhaustedException,
    FailedPreconditionException,
    InvalidTransitionException,
    NotFoundException,
    SlotUnavailableException,
    ValidationException,
)
from appointment_engine.events import BookingCancelled, BookingCreated, InterviewCompleted
from appointment_engine.schemas import BookingCreate, BookingStatusUpdate


FIXED_NOW = datetime(2030, 1, 7, 8, 0, tzinfo=timezone.utc)


def _guest(slot, **overrides):
    fields = {"slot_id": slot.id, "guest_name": "Ada", "guest_email": "Ada@Example.com"}
    fields.update(overrides)
    return BookingCreate(**fields)


def _events(listener, event_type):
    return [c.args[0] for c in listener.call_args_list if isinstance(c.args[0], event_type)]


class TestCreateBooking:
    def test_guest_booking(self, booking_service, make_slot, interviewer, listener, db):
        slot = make_slot(meeting_url="https://meet.example.com/x", phone_number="+886-2-1234")

        booking = booking_service.create_booking(_guest(slot, questions=["Fees?"]))

        assert booking.status == AppointmentStatus.BOOKED.value
        assert booking.guest_email == "ada@example.com"
        assert booking.scheduled_date == slot.slot_date
        assert booking.scheduled_time == slot.start_time
        assert booking.duration_minutes == 30
        assert booking.meeting_url == "https://meet.example.com/x"
        assert booking.dial_in_number == "+886-2-1234"
        assert booking.questions == ["Fees?"]
        assert booking.booked_at == FIXED_NOW
        assert booking.preferred_contact == "email"

        assert booking_service.slot_repository.reload(slot.id).booked_count == 1
        db.refresh(interviewer)
        assert interviewer.total_appointments == 1

        [event] = _events(listener, BookingCreated)
        assert event.booking_id == booking.id
        assert event.slot_id == slot.id

    def test_user_booking_needs_no_guest_details(self, booking_service, make_slot):
        booking = booking_service.create_booking(
            BookingCreate(slot_id=make_slot().id, user_id="u1")
        )

        assert booking.user_id == "u1"
        assert booking.is_guest is False

    def test_guest_without_email_rejected(self, booking_service, make_slot):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.create_booking(BookingCreate(slot_id=make_slot().id, guest_name="Ada"))

        assert exc_info.value.code == "GUEST_CONTACT_REQUIRED"
        assert exc_info.value.details["missing_fields"] == ["guest_email"]

    def test_unknown_slot(self, booking_service, make_slot):
        slot = make_slot()

        with pytest.raises(NotFoundException):
            booking_service.create_booking(_guest(slot, slot_id="missing"))

    def test_full_slot(self, booking_service, make_slot):
        slot = make_slot(booked_count=1)

        with pytest.raises(CapacityExhaustedException):
            booking_service.create_booking(_guest(slot))

    def test_closed_slot(self, booking_service, make_slot):
        slot = make_slot(is_available=False)

        with pytest.raises(SlotUnavailableException):
            booking_service.create_booking(_guest(slot))

    def test_inactive_interviewer(self, booking_service, make_slot, make_interviewer):
        slot = make_slot(make_interviewer(is_active=False))

        with pytest.raises(SlotUnavailableException) as exc_info:
            booking_service.create_booking(_guest(slot))

        assert exc_info.value.message == "Interviewer is not accepting bookings"

    def test_started_slot(self, booking_service, make_slot):
        slot = make_slot(slot_date=date(2030, 1, 7), start_time=time(8, 0), end_time=time(8, 30))

        with pytest.raises(FailedPreconditionException) as exc_info:
            booking_service.create_booking(_guest(slot))

        assert exc_info.value.code == "SLOT_IN_PAST"

    def test_beyond_advance_booking_window(self, booking_service, make_slot):
        slot = make_slot(slot_date=date(2030, 2, 7))

        with pytest.raises(FailedPreconditionException) as exc_info:
            booking_service.create_booking(_guest(slot))

        assert exc_info.value.code == "OUTSIDE_BOOKING_WINDOW"
        assert exc_info.value.details["last_bookable_date"] == "2030-02-06"

    def test_last_day_of_window_is_bookable(self, booking_service, make_slot):
        slot = make_slot(slot_date=date(2030, 2, 6))

        assert booking_service.create_booking(_guest(slot)).slot_id == slot.id

    def test_daily_limit(self, booking_service, make_interviewer, make_slot):
        interviewer = make_interviewer(max_daily_appointments=1)
        make_slot(interviewer, start_time=time(9, 0), end_time=time(9, 30), booked_count=1)
        slot = make_slot(interviewer)

        with pytest.raises(FailedPreconditionException) as exc_info:
            booking_service.create_booking(_guest(slot))

        assert exc_info.value.code == "DAILY_LIMIT_REACHED"

    def test_joining_a_booked_group_slot_ignores_daily_limit(
        self, booking_service, make_interviewer, make_slot
    ):
        interviewer = make_interviewer(max_daily_appointments=1)
        slot = make_slot(interviewer, capacity=3, booked_count=1)

        booking = booking_service.create_booking(_guest(slot))

        assert booking.slot_id == slot.id
        assert booking_service.slot_repository.reload(slot.id).booked_count == 2

    def test_overlapping_booking_for_same_guest(self, booking_service, make_slot, make_interviewer):
        first = make_slot()
        second = make_slot(make_interviewer(), start_time=time(10, 15), end_time=time(10, 45))
        booking_service.create_booking(_guest(first))

        with pytest.raises(BookingConflictException):
            booking_service.create_booking(_guest(second, guest_email="ada@example.com"))

        assert booking_service.slot_repository.reload(second.id).booked_count == 0

    def test_group_slot_fills_up(self, booking_service, make_slot):
        slot = make_slot(capacity=2)
        booking_service.create_booking(_guest(slot, guest_email="a@example.com"))
        booking_service.create_booking(_guest(slot, guest_email="b@example.com"))

        with pytest.raises(CapacityExhaustedException):
            booking_service.create_booking(_guest(slot, guest_email="c@example.com"))

        assert booking_service.slot_repository.reload(slot.id).booked_count == 2


@pytest.fixture
def booked(booking_service, make_slot):
    slot = make_slot(capacity=2)
    booking = booking_service.create_booking(_guest(slot))
    return slot, booking


class TestStatusChanges:
    def test_confirm(self, booking_service, booked):
        _, booking = booked

        confirmed = booking_service.confirm_booking(booking.id)

        assert confirmed.status == AppointmentStatus.CONFIRMED.value
        assert confirmed.confirmed_at == FIXED_NOW

    def test_complete_requires_confirmation(self, booking_service, booked):
        _, booking = booked

        with pytest.raises(InvalidTransitionException):
            booking_service.complete_booking(booking.id, rating=5)

        assert booking_service.get_booking(booking.id).status == AppointmentStatus.BOOKED.value

    def test_complete_updates_interviewer_counters(
        self, booking_service, booked, interviewer, db
    ):
        _, booking = booked
        booking_service.confirm_booking(booking.id)

        completed = booking_service.complete_booking(
            booking.id, rating=4, outcome=BookingOutcome.PENDING_REVIEW, notes="Good fit"
        )

        assert completed.status == AppointmentStatus.COMPLETED.value
        assert completed.completed is True
        assert completed.rating == 4
        assert completed.outcome == "pending_review"
        assert completed.interview_notes == "Good fit"
        db.refresh(interviewer)
        assert interviewer.completed_appointments == 1
        assert interviewer.rating_count == 1
        assert interviewer.average_rating == pytest.approx(4.0)

    def test_cancel_releases_seat(self, booking_service, booked, listener):
        slot, booking = booked

        cancelled = booking_service.update_status(
            booking.id,
            BookingStatusUpdate(status="cancelled", cancellation_reason="Schedule change"),
        )

        assert cancelled.status == AppointmentStatus.CANCELLED.value
        assert cancelled.cancelled_at == FIXED_NOW
        assert cancelled.cancellation_reason == "Schedule change"
        assert booking_service.slot_repository.reload(slot.id).booked_count == 0
        [event] = _events(listener, BookingCancelled)
        assert event.reason == "Schedule change"

    def test_cancelling_twice_is_a_no_op(self, booking_service, booked, listener):
        slot, booking = booked
        update = BookingStatusUpdate(status="cancelled")
        booking_service.update_status(booking.id, update)

        again = booking_service.update_status(booking.id, update)

        assert again.status == AppointmentStatus.CANCELLED.value
        assert booking_service.slot_repository.reload(slot.id).booked_count == 0
        assert len(_events(listener, BookingCancelled)) == 1

    def test_no_show_keeps_seat(self, booking_service, booked):
        slot, booking = booked
        booking_service.confirm_booking(booking.id)

        no_show = booking_service.mark_no_show(booking.id)

        assert no_show.status == AppointmentStatus.NO_SHOW.value
        assert booking_service.slot_repository.reload(slot.id).booked_count == 1

    def test_terminal_status_cannot_change(self, booking_service, booked):
        _, booking = booked
        booking_service.confirm_booking(booking.id)
        booking_service.mark_no_show(booking.id)

        with pytest.raises(InvalidTransitionException):
            booking_service.update_status(booking.id, BookingStatusUpdate(status="cancelled"))

    def test_follow_up_and_notes(self, booking_service, booked):
        _, booking = booked

        updated = booking_service.update_status(
            booking.id,
            BookingStatusUpdate(status="confirmed", notes="Bring ID", follow_up_required=True),
        )

        assert updated.interview_notes == "Bring ID"
        assert updated.follow_up_required is True

    def test_approved_member_interview_emits_completion(
        self, booking_service, make_slot, listener
    ):
        slot = make_slot(appointment_type="member_interview")
        booking = booking_service.create_booking(BookingCreate(slot_id=slot.id, user_id="u1"))
        booking_service.confirm_booking(booking.id)

        booking_service.complete_booking(booking.id, outcome=BookingOutcome.APPROVED)

        [event] = _events(listener, InterviewCompleted)
        assert event.user_id == "u1"
        assert event.outcome == "approved"

    def test_consultation_completion_emits_nothing(self, booking_service, booked, listener):
        _, booking = booked
        booking_service.confirm_booking(booking.id)

        booking_service.complete_booking(booking.id, outcome=BookingOutcome.APPROVED)

        assert _events(listener, InterviewCompleted) == []

    def test_unknown_booking(self, booking_service):
        with pytest.raises(NotFoundException) as exc_info:
            booking_service.confirm_booking("missing")

        assert exc_info.value.code == "BOOKING_NOT_FOUND"


class TestQueries:
    def test_requester_bookings(self, booking_service, booked):
        _, booking = booked

        found = booking_service.get_bookings_for_requester(guest_email="ADA@example.com")

        assert [b.id for b in found] == [booking.id]
        assert booking_service.get_bookings_for_requester(
            guest_email="ada@example.com", statuses=[AppointmentStatus.CANCELLED]
        ) == []

    def test_requester_required(self, booking_service):
        with pytest.raises(ValidationException) as exc_info:
            booking_service.get_bookings_for_requester()

        assert exc_info.value.code == "REQUESTER_REQUIRED"

    def test_details_survive_slot_deletion(
        self, booking_service, make_slot, make_booking, interviewer, db
    ):
        slot = make_slot()
        booking = make_booking(slot)
        db.delete(slot)
        db.commit()

        details = booking_service.get_booking_details(booking.id)

        assert details["booking"].id == booking.id
        assert details["slot"] is None
        assert details["interviewer"].id == interviewer.id

    def test_todays_bookings(self, booking_service, make_slot, make_booking):
        today = make_booking(
            make_slot(slot_date=date(2030, 1, 7), start_time=time(15, 0), end_time=time(15, 30))
        )
        make_booking(make_slot())

        assert [b.id for b in booking_service.get_todays_bookings()] == [today.id]


class TestReminders:
    def test_candidates_and_send_limit(self, booking_service, make_slot, make_booking):
        soon = make_booking(
            make_slot(slot_date=date(2030, 1, 7), start_time=time(15, 0), end_time=time(15, 30))
        )
        make_booking(make_slot(slot_date=date(2030, 1, 9)))

        assert [b.id for b in booking_service.get_reminder_candidates()] == [soon.id]

        for expected in (1, 2, 3):
            assert booking_service.record_reminder_sent(soon.id).reminders_sent == expected

        with pytest.raises(FailedPreconditionException) as exc_info:
            booking_service.record_reminder_sent(soon.id)
        assert exc_info.value.code == "REMINDER_LIMIT_REACHED"
        assert booking_service.get_reminder_candidates() == []

    def test_custom_lead_time(self, booking_service, make_slot, make_booking):
        tuesday = make_booking(make_slot())

        assert booking_service.get_reminder_candidates(lead_hours=1) == []
        assert [b.id for b in booking_service.get_reminder_candidates(lead_hours=48)] == [
            tuesday.id
        ]
