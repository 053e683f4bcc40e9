# appointment_engine/core/exceptions.py
"""
Domain-specific exceptions for the appointment engine.

Every error carries a message, a stable code and a details mapping
(slot id, booking id, violated rule) so the calling layer can render a
user-facing message. ``to_http_exception`` converts an error for the
HTTP layer that sits in front of the engine.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status

HTTP_422_UNPROCESSABLE: int = getattr(status, "HTTP_422_UNPROCESSABLE_CONTENT", 422)


class DomainException(Exception):
    """Base exception for all domain-specific errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationException(DomainException):
    """Raised when required fields are missing or malformed."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundException(DomainException):
    """Raised when a referenced interviewer, slot or booking does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class ConflictException(DomainException):
    """Raised on overlapping time ranges or exhausted capacity."""

    status_code = status.HTTP_409_CONFLICT


class FailedPreconditionException(DomainException):
    """Raised when the current state does not allow the requested operation."""

    status_code = HTTP_422_UNPROCESSABLE


class UnauthorizedException(DomainException):
    """Raised by the authorization gate. The engine itself never raises it."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ServiceException(DomainException):
    """Raised when a service operation fails for infrastructure reasons."""

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message or "An error occurred processing your request",
                "code": self.code,
                "details": self.details if self.details else {},
            },
        )


# Specific business exceptions


class SlotConflictException(ConflictException):
    """Raised when a slot overlaps another slot of the same interviewer."""

    def __init__(
        self,
        slot_date: str,
        new_range: str,
        conflicting_range: str,
        *,
        conflicting_slot_id: Optional[str] = None,
    ):
        super().__init__(
            message=(
                f"Overlapping slot on {slot_date}: {new_range} conflicts with {conflicting_range}"
            ),
            code="SLOT_CONFLICT",
            details={
                "date": slot_date,
                "new_slot": new_range,
                "conflicting_slot": conflicting_range,
                "conflicting_slot_id": conflicting_slot_id,
            },
        )


class BookingConflictException(ConflictException):
    """Raised when a requester already holds an overlapping active booking."""

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message or "This time conflicts with another of your appointments",
            code="BOOKING_CONFLICT",
            details=details or {},
        )


class CapacityExhaustedException(ConflictException):
    """Raised when a slot has no seats left."""

    def __init__(self, slot_id: str, capacity: Optional[int] = None):
        super().__init__(
            message="This appointment slot is fully booked",
            code="SLOT_FULL",
            details={"slot_id": slot_id, "capacity": capacity},
        )


class InvalidTransitionException(FailedPreconditionException):
    """Raised for a booking status change the lifecycle does not allow."""

    def __init__(self, booking_id: Optional[str], current: str, requested: str):
        super().__init__(
            message=f"Cannot change booking status from {current} to {requested}",
            code="INVALID_STATUS_TRANSITION",
            details={
                "booking_id": booking_id,
                "current_status": current,
                "requested_status": requested,
            },
        )


class CancellationDeadlineException(FailedPreconditionException):
    """Raised when a cancellation arrives after the slot's deadline."""

    def __init__(self, booking_id: str, required_hours: int, hours_remaining: float):
        super().__init__(
            message=f"Appointments must be cancelled at least {required_hours} hours in advance",
            code="CANCELLATION_DEADLINE_PASSED",
            details={
                "booking_id": booking_id,
                "required_hours": required_hours,
                "hours_remaining": round(hours_remaining, 2),
            },
        )


class SlotUnavailableException(FailedPreconditionException):
    """Raised when a slot is closed for booking."""

    def __init__(self, slot_id: str, reason: str = "Slot is not available for booking"):
        super().__init__(
            message=reason,
            code="SLOT_UNAVAILABLE",
            details={"slot_id": slot_id},
        )


class InterviewerUnavailableException(FailedPreconditionException):
    """Raised when the interviewer's weekly availability does not cover a time range."""

    def __init__(self, interviewer_id: str, slot_date: str, time_range: str):
        super().__init__(
            message=f"Interviewer is not available on {slot_date} at {time_range}",
            code="INTERVIEWER_UNAVAILABLE",
            details={
                "interviewer_id": interviewer_id,
                "date": slot_date,
                "time_range": time_range,
            },
        )


class CapacityInvariantError(ServiceException):
    """Raised when a ledger adjustment would leave booked_count outside [0, capacity]."""

    def __init__(self, slot_id: str, message: str):
        super().__init__(
            message=message,
            code="CAPACITY_INVARIANT_VIOLATION",
            details={"slot_id": slot_id},
        )


class RepositoryException(Exception):
    """
    Exception raised for repository layer errors.

    Used when data access operations fail, such as connection issues,
    query failures, or constraint violations.
    """
