"""Profile model mirroring identities issued by the external auth service."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, utcnow

if TYPE_CHECKING:
    from app.models.schedule import DutyBooking


class Profile(Base):
    """User profile; `id` is the auth service's subject."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default="student"
    )  # admin, student, parent

    # Student details
    student_number: Mapped[str | None] = mapped_column(String(50), unique=True, index=True)
    year_level: Mapped[str | None] = mapped_column(String(20))

    # Parent link: the student number of the parent's child
    child_student_number: Mapped[str | None] = mapped_column(String(50), index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    duty_bookings: Mapped[list["DutyBooking"]] = relationship(
        "DutyBooking", back_populates="student", foreign_keys="[DutyBooking.student_id]"
    )
