"""Duty log Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class DutyLogResponse(BaseModel):
    """Schema for a duty log entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    action: str
    performed_by: UUID | None
    target_user_id: UUID | None
    schedule_id: UUID | None
    booking_id: UUID | None
    notes: str | None
    created_at: datetime
