"""Initial database schema.

Revision ID: 001_initial
Revises: None
Create Date: 2025-02-03

Creates all initial tables for the duty scheduler:
- Profiles
- Schedules and duty bookings
- Rebooking blocks
- Notifications
- Duty logs
"""

from typing import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create all database tables."""

    # ==================== PROFILES ====================
    op.create_table(
        "profiles",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), unique=True, nullable=False, index=True),
        sa.Column("full_name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="student"),
        sa.Column("student_number", sa.String(50), unique=True, index=True),
        sa.Column("year_level", sa.String(20)),
        sa.Column("child_student_number", sa.String(50), index=True),
        sa.Column("is_active", sa.Boolean, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("role IN ('admin', 'student', 'parent')", name="check_profile_role"),
    )

    # ==================== SCHEDULES ====================
    op.create_table(
        "schedules",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("date", sa.Date, nullable=False, index=True),
        sa.Column("shift_start", sa.Time, nullable=False),
        sa.Column("shift_end", sa.Time, nullable=False),
        sa.Column("location", sa.String(255)),
        sa.Column("description", sa.Text),
        sa.Column("max_students", sa.Integer, nullable=False, server_default="2"),
        sa.Column("active_bookings", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending", index=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id")),
        sa.Column("approved_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id")),
        sa.Column("approved_at", sa.DateTime(timezone=True)),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint("max_students > 0", name="check_schedule_max_students_positive"),
        sa.CheckConstraint("active_bookings >= 0", name="check_schedule_active_bookings_positive"),
        sa.CheckConstraint("active_bookings <= max_students", name="check_schedule_active_bookings_lte_max"),
        sa.CheckConstraint("shift_end > shift_start", name="check_schedule_shift_order"),
    )

    # ==================== DUTY BOOKINGS ====================
    op.create_table(
        "schedule_students",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("schedule_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("schedules.id"), nullable=False, index=True),
        sa.Column("student_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), nullable=False, index=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending_approval", index=True),
        sa.Column("cancelled_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id")),
        sa.Column("cancellation_reason", sa.Text),
        sa.Column("booked_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("cancelled_at", sa.DateTime(timezone=True)),
        sa.Column("completed_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.CheckConstraint(
            "status IN ('pending_approval', 'confirmed', 'cancelled', 'completed')",
            name="check_schedule_student_status",
        ),
    )
    # One active booking per (schedule, student); cancelled rows are history
    op.create_index(
        "uq_schedule_students_active",
        "schedule_students",
        ["schedule_id", "student_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )

    # ==================== REBOOKING BLOCKS ====================
    op.create_table(
        "rebooking_blocks",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False),
        sa.Column("duty_date", sa.Date, nullable=False),
        sa.Column("cancelled_on", sa.Date, nullable=False, index=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("schedule_students.id")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "duty_date", "cancelled_on", name="unique_rebooking_block"),
    )

    # ==================== NOTIFICATIONS ====================
    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="info"),
        sa.Column("schedule_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("schedules.id")),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("schedule_students.id")),
        sa.Column("read", sa.Boolean, server_default=sa.false()),
        sa.Column("read_at", sa.DateTime(timezone=True)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )

    # ==================== DUTY LOGS ====================
    op.create_table(
        "duty_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("action", sa.String(50), nullable=False, index=True),
        sa.Column("performed_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id"), index=True),
        sa.Column("target_user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("profiles.id")),
        sa.Column("schedule_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("schedules.id"), index=True),
        sa.Column("booking_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("schedule_students.id")),
        sa.Column("notes", sa.Text),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade() -> None:
    """Drop all database tables in reverse order."""
    op.drop_table("duty_logs")
    op.drop_table("notifications")
    op.drop_table("rebooking_blocks")
    op.drop_index("uq_schedule_students_active", table_name="schedule_students")
    op.drop_table("schedule_students")
    op.drop_table("schedules")
    op.drop_table("profiles")
