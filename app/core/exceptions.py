"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    code: str = "internal_error"

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    code = "validation_error"

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    code = "not_found"

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    code = "authentication_failed"

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    code = "forbidden"

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


# ==================== BOOKING RULE REJECTIONS ====================


class BookingRuleViolation(AppException):
    """Expected business-rule rejection of a booking action."""

    code = "booking_rule_violation"

    def __init__(self, detail: str) -> None:
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ScheduleClosed(BookingRuleViolation):
    """Schedule is cancelled or its date has passed."""

    code = "schedule_closed"

    def __init__(self, detail: str = "This duty is no longer open for booking") -> None:
        super().__init__(detail)


class CapacityExceeded(BookingRuleViolation):
    """Schedule has no free slot left."""

    code = "capacity_exceeded"

    def __init__(self, booked: int | None = None, max_students: int | None = None) -> None:
        detail = "This duty is already full"
        if booked is not None and max_students is not None:
            detail = f"{detail} ({booked}/{max_students} students assigned)"
        super().__init__(f"{detail}.")


class AlreadyBooked(BookingRuleViolation):
    """Student already holds an active booking for the schedule."""

    code = "already_booked"

    def __init__(self, race_detected: bool = False) -> None:
        self.race_detected = race_detected
        detail = "You have already booked this duty"
        if race_detected:
            detail = f"{detail} (a concurrent request was processed first)"
        super().__init__(f"{detail}.")


class RebookingBlocked(BookingRuleViolation):
    """Student cancelled a duty for the same date earlier today."""

    code = "rebooking_blocked"

    def __init__(
        self,
        detail: str = (
            "You cannot book again today because you already cancelled a booking "
            "for this date today. Please try again tomorrow."
        ),
    ) -> None:
        super().__init__(detail)


class CancellationWindowClosed(BookingRuleViolation):
    """Cancellation attempted on the day of the duty."""

    code = "cancellation_window_closed"

    def __init__(self, detail: str = "Cannot cancel duty on the actual day of your scheduled duty.") -> None:
        super().__init__(detail)


class InvalidBookingStatus(AppException):
    """Invalid booking status for operation."""

    code = "invalid_booking_status"

    def __init__(self, detail: str = "This operation is not allowed for the current booking status") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class StoreUnavailable(AppException):
    """Persistence layer failure, distinct from business-rule rejections."""

    code = "store_unavailable"

    def __init__(self, detail: str | None = None) -> None:
        message = "The scheduling store is unavailable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=message)
