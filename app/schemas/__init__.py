"""Pydantic schemas for API validation."""

from app.schemas.audit import DutyLogResponse
from app.schemas.booking import (
    BookingCancelRequest,
    BookingListResponse,
    BookingResponse,
    ScheduleSummary,
)
from app.schemas.notification import NotificationListResponse, NotificationResponse
from app.schemas.schedule import (
    ScheduleBookingResponse,
    ScheduleCreate,
    ScheduleRejectResponse,
    ScheduleResponse,
    ScheduleUpdate,
    StudentSummary,
)
from app.schemas.user import ProfileResponse

__all__ = [
    # Profile
    "ProfileResponse",
    # Schedule
    "ScheduleCreate",
    "ScheduleUpdate",
    "ScheduleResponse",
    "ScheduleRejectResponse",
    "ScheduleBookingResponse",
    "StudentSummary",
    # Booking
    "BookingResponse",
    "BookingListResponse",
    "BookingCancelRequest",
    "ScheduleSummary",
    # Notification
    "NotificationResponse",
    "NotificationListResponse",
    # Audit
    "DutyLogResponse",
]
