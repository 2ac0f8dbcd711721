"""Duty booking Pydantic schemas."""

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ScheduleSummary(BaseModel):
    """Schedule details embedded in a booking."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    date: dt.date
    shift_start: dt.time
    shift_end: dt.time
    location: str | None
    status: str
    max_students: int


class BookingResponse(BaseModel):
    """Schema for duty booking response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    schedule_id: UUID
    student_id: UUID

    # Status
    status: str
    can_cancel: bool

    # Cancellation
    cancelled_by: UUID | None
    cancellation_reason: str | None

    # Timestamps
    booked_at: dt.datetime
    cancelled_at: dt.datetime | None
    completed_at: dt.datetime | None

    schedule: ScheduleSummary


class BookingListResponse(BaseModel):
    """Schema for a list of duty bookings."""

    bookings: list[BookingResponse]
    total: int


class BookingCancelRequest(BaseModel):
    """Schema for cancelling a booking."""

    reason: str | None = Field(None, max_length=1000)
