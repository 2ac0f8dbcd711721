"""Profile Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ProfileResponse(BaseModel):
    """Schema for the current user's profile."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    full_name: str
    role: str
    student_number: str | None
    year_level: str | None
    child_student_number: str | None
    is_active: bool
    created_at: datetime
