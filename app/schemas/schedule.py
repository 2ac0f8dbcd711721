"""Schedule-related Pydantic schemas."""

import datetime as dt
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class StudentSummary(BaseModel):
    """Student shown on a schedule's roster."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    full_name: str
    student_number: str | None
    year_level: str | None


class ScheduleBookingResponse(BaseModel):
    """Booking as listed under its schedule."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    student_id: UUID
    status: str
    booked_at: dt.datetime
    student: StudentSummary


class ScheduleCreate(BaseModel):
    """Schema for creating a schedule."""

    date: dt.date
    shift_start: dt.time
    shift_end: dt.time
    location: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=2000)
    max_students: int | None = Field(None, ge=1, le=50)

    @field_validator("shift_end")
    @classmethod
    def validate_shift_end(cls, v: dt.time, info) -> dt.time:
        shift_start = info.data.get("shift_start")
        if shift_start and v <= shift_start:
            raise ValueError("shift_end must be after shift_start")
        return v


class ScheduleUpdate(BaseModel):
    """Schema for editing a schedule."""

    date: dt.date | None = None
    shift_start: dt.time | None = None
    shift_end: dt.time | None = None
    location: str | None = Field(None, max_length=255)
    description: str | None = Field(None, max_length=2000)
    max_students: int | None = Field(None, ge=1, le=50)

    @field_validator("date", "shift_start", "shift_end", "max_students")
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class ScheduleResponse(BaseModel):
    """Schema for schedule response with its active bookings."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    date: dt.date
    shift_start: dt.time
    shift_end: dt.time
    location: str | None
    description: str | None

    # Capacity
    max_students: int
    booked_count: int
    available_slots: int
    is_full: bool

    # Status
    status: str
    approved_by: UUID | None
    approved_at: dt.datetime | None
    cancelled_at: dt.datetime | None
    created_by: UUID | None

    bookings: list[ScheduleBookingResponse] = Field(
        validation_alias=AliasChoices("active_duty_bookings", "bookings")
    )

    created_at: dt.datetime
    updated_at: dt.datetime


class ScheduleRejectResponse(BaseModel):
    """Result of rejecting a schedule."""

    schedule: ScheduleResponse
    cancelled_bookings: int
