import pytest

from appointment_engine.core.enums import AppointmentStatus
from appointment_engine.core.exceptions import InvalidTransitionException
from appointment_engine.domain.lifecycle import (
    TERMINAL_STATUSES,
    can_transition,
    ensure_transition,
    is_active,
    releases_capacity,
)

S = AppointmentStatus


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (S.AVAILABLE, S.BOOKED),
            (S.BOOKED, S.CONFIRMED),
            (S.BOOKED, S.CANCELLED),
            (S.CONFIRMED, S.COMPLETED),
            (S.CONFIRMED, S.CANCELLED),
            (S.CONFIRMED, S.NO_SHOW),
        ],
    )
    def test_allowed(self, current, target):
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            (S.BOOKED, S.COMPLETED),
            (S.BOOKED, S.NO_SHOW),
            (S.COMPLETED, S.BOOKED),
            (S.CANCELLED, S.CONFIRMED),
            (S.NO_SHOW, S.CANCELLED),
            (S.CANCELLED, S.CANCELLED),
        ],
    )
    def test_rejected(self, current, target):
        assert not can_transition(current, target)

    def test_accepts_string_values(self):
        assert can_transition("booked", "confirmed")

    def test_terminal_statuses(self):
        assert TERMINAL_STATUSES == {S.COMPLETED, S.CANCELLED, S.NO_SHOW}

    def test_ensure_transition_raises_with_context(self):
        with pytest.raises(InvalidTransitionException) as exc_info:
            ensure_transition("completed", "booked", "b-1")

        error = exc_info.value
        assert error.code == "INVALID_STATUS_TRANSITION"
        assert error.details == {
            "booking_id": "b-1",
            "current_status": "completed",
            "requested_status": "booked",
        }


class TestCapacityEffects:
    def test_active_statuses(self):
        assert is_active(S.BOOKED)
        assert is_active("confirmed")
        assert not is_active(S.CANCELLED)

    def test_only_cancelling_an_active_booking_frees_a_seat(self):
        assert releases_capacity(S.BOOKED, S.CANCELLED)
        assert releases_capacity(S.CONFIRMED, S.CANCELLED)
        assert not releases_capacity(S.CANCELLED, S.CANCELLED)
        assert not releases_capacity(S.CONFIRMED, S.NO_SHOW)
        assert not releases_capacity(S.CONFIRMED, S.COMPLETED)
