"""Core utilities and security modules."""

from app.core.exceptions import (
    AlreadyBooked,
    AppException,
    AuthenticationError,
    AuthorizationError,
    BookingRuleViolation,
    CancellationWindowClosed,
    CapacityExceeded,
    InvalidBookingStatus,
    NotFoundError,
    RebookingBlocked,
    ScheduleClosed,
    StoreUnavailable,
    ValidationError,
)
from app.core.security import verify_token

__all__ = [
    "AlreadyBooked",
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "BookingRuleViolation",
    "CancellationWindowClosed",
    "CapacityExceeded",
    "InvalidBookingStatus",
    "NotFoundError",
    "RebookingBlocked",
    "ScheduleClosed",
    "StoreUnavailable",
    "ValidationError",
    "verify_token",
]
