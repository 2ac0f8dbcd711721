"""Schedule and duty booking database models."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from app.database import Base, utcnow
from app.domain.booking_state import ACTIVE_BOOKING_STATUSES
from app.domain.duty_rules import can_cancel_duty

if TYPE_CHECKING:
    from app.models.user import Profile


class Schedule(Base):
    """A bookable duty slot: date, shift, location and capacity."""

    __tablename__ = "schedules"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    shift_start: Mapped[dt.time] = mapped_column(Time, nullable=False)
    shift_end: Mapped[dt.time] = mapped_column(Time, nullable=False)
    location: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text)

    # Capacity
    max_students: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    active_bookings: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )  # Claimed slots; kept in step with non-cancelled bookings

    # Status: pending → approved → cancelled
    status: Mapped[str] = mapped_column(String(20), default="pending", index=True)

    created_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id")
    )
    approved_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id")
    )
    approved_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))

    # Timestamps
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    bookings: Mapped[list["DutyBooking"]] = relationship(
        "DutyBooking", back_populates="schedule", order_by="DutyBooking.booked_at"
    )

    __table_args__ = (
        CheckConstraint("max_students > 0", name="check_schedule_max_students_positive"),
        CheckConstraint("active_bookings >= 0", name="check_schedule_active_bookings_positive"),
        CheckConstraint(
            "active_bookings <= max_students", name="check_schedule_active_bookings_lte_max"
        ),
        CheckConstraint("shift_end > shift_start", name="check_schedule_shift_order"),
    )

    @property
    def active_duty_bookings(self) -> list["DutyBooking"]:
        """Bookings that hold a slot (loaded collection only)."""
        return [b for b in self.bookings if b.status in ACTIVE_BOOKING_STATUSES]

    @property
    def booked_count(self) -> int:
        return len(self.active_duty_bookings)

    @property
    def available_slots(self) -> int:
        return max(0, self.max_students - self.booked_count)

    @property
    def is_full(self) -> bool:
        return self.booked_count >= self.max_students


class DutyBooking(Base):
    """One student's claim on a schedule."""

    __tablename__ = "schedule_students"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    schedule_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schedules.id"), nullable=False, index=True
    )
    student_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id"), nullable=False, index=True
    )

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending_approval", index=True
    )  # pending_approval, confirmed, cancelled, completed

    # Cancellation
    cancelled_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id")
    )
    cancellation_reason: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    booked_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    cancelled_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    schedule: Mapped["Schedule"] = relationship("Schedule", back_populates="bookings")
    student: Mapped["Profile"] = relationship(
        "Profile", back_populates="duty_bookings", foreign_keys=[student_id]
    )

    __table_args__ = (
        # Final backstop against concurrent double booking
        Index(
            "uq_schedule_students_active",
            "schedule_id",
            "student_id",
            unique=True,
            postgresql_where=text("status <> 'cancelled'"),
            sqlite_where=text("status <> 'cancelled'"),
        ),
        CheckConstraint(
            "status IN ('pending_approval', 'confirmed', 'cancelled', 'completed')",
            name="check_schedule_student_status",
        ),
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES

    @property
    def can_cancel(self) -> bool:
        """Whether the duty day rule allows cancelling today (schedule must be loaded)."""
        return self.status in ("pending_approval", "confirmed") and can_cancel_duty(
            self.schedule.date
        )


class RebookingBlock(Base):
    """Same-day rebooking restriction armed by a student's own cancellation."""

    __tablename__ = "rebooking_blocks"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    duty_date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    cancelled_on: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    booking_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("schedule_students.id")
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("user_id", "duty_date", "cancelled_on", name="unique_rebooking_block"),
    )
