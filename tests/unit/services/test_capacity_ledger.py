import pytest

from appointment_engine.core.exceptions import (
    CapacityExhaustedException,
    CapacityInvariantError,
    NotFoundException,
    SlotUnavailableException,
)
from appointment_engine.services import CapacityLedger


@pytest.fixture
def ledger(db, service_kwargs):
    return CapacityLedger(db, **service_kwargs)


class TestReserveSeat:
    def test_reserve_until_full(self, ledger, make_slot):
        slot = make_slot(capacity=2)

        assert ledger.reserve_seat(slot.id).booked_count == 1
        refreshed = ledger.reserve_seat(slot.id)
        assert refreshed.booked_count == 2
        assert refreshed.is_full

        with pytest.raises(CapacityExhaustedException) as exc_info:
            ledger.reserve_seat(slot.id)
        assert exc_info.value.details == {"slot_id": slot.id, "capacity": 2}

    def test_closed_slot(self, ledger, make_slot):
        slot = make_slot(is_available=False)

        with pytest.raises(SlotUnavailableException):
            ledger.reserve_seat(slot.id)

    def test_unknown_slot(self, ledger):
        with pytest.raises(NotFoundException):
            ledger.reserve_seat("missing")


class TestReleaseSeat:
    def test_release_decrements(self, ledger, make_slot, db):
        slot = make_slot(capacity=3, booked_count=2)

        assert ledger.release_seat(slot.id)

        db.refresh(slot)
        assert slot.booked_count == 1
        assert slot.remaining_capacity == 2

    def test_release_on_empty_slot_raises(self, ledger, make_slot):
        slot = make_slot()

        with pytest.raises(CapacityInvariantError) as exc_info:
            ledger.release_seat(slot.id)

        assert exc_info.value.code == "CAPACITY_INVARIANT_VIOLATION"

    def test_release_on_deleted_slot_returns_false(self, ledger):
        assert ledger.release_seat("gone") is False
