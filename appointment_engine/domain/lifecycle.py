"""
Booking lifecycle.

    available -> booked -> confirmed -> completed | cancelled | no_show
                 booked -> cancelled

Completed, cancelled and no_show are terminal. A reschedule is not a
transition in this table: it puts an active booking back into ``booked``
on a different slot.
"""

from typing import Dict, FrozenSet, Optional, Union

from ..core.enums import ACTIVE_BOOKING_STATUSES, AppointmentStatus
from ..core.exceptions import InvalidTransitionException

StatusLike = Union[AppointmentStatus, str]

ALLOWED_TRANSITIONS: Dict[AppointmentStatus, FrozenSet[AppointmentStatus]] = {
    AppointmentStatus.AVAILABLE: frozenset({AppointmentStatus.BOOKED}),
    AppointmentStatus.BOOKED: frozenset({AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED}),
    AppointmentStatus.CONFIRMED: frozenset(
        {
            AppointmentStatus.COMPLETED,
            AppointmentStatus.CANCELLED,
            AppointmentStatus.NO_SHOW,
        }
    ),
    AppointmentStatus.COMPLETED: frozenset(),
    AppointmentStatus.CANCELLED: frozenset(),
    AppointmentStatus.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def as_status(value: StatusLike) -> AppointmentStatus:
    return value if isinstance(value, AppointmentStatus) else AppointmentStatus(value)


def is_active(status: StatusLike) -> bool:
    return as_status(status) in ACTIVE_BOOKING_STATUSES


def can_transition(current: StatusLike, target: StatusLike) -> bool:
    return as_status(target) in ALLOWED_TRANSITIONS[as_status(current)]


def ensure_transition(
    current: StatusLike, target: StatusLike, booking_id: Optional[str] = None
) -> None:
    if not can_transition(current, target):
        raise InvalidTransitionException(
            booking_id, as_status(current).value, as_status(target).value
        )


def releases_capacity(current: StatusLike, target: StatusLike) -> bool:
    """Only cancelling an active booking frees its seat; a no-show consumed it."""
    return as_status(target) == AppointmentStatus.CANCELLED and is_active(current)
