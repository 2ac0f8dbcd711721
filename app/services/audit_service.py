"""Duty audit trail service."""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin import DutyLog


class AuditService:
    """Service for append-only duty action logging."""

    async def log_action(
        self,
        db: AsyncSession,
        action: str,
        performed_by: UUID | None,
        schedule_id: UUID | None = None,
        booking_id: UUID | None = None,
        target_user_id: UUID | None = None,
        notes: str | None = None,
    ) -> DutyLog:
        """Append an entry to the duty log.

        The entry joins the caller's transaction, so it is only persisted if
        the action it describes is.

        Args:
            db: Database session
            action: Action name (e.g., "booked")
            performed_by: User performing the action
            schedule_id: Schedule the action applies to
            booking_id: Booking the action applies to
            target_user_id: User affected by the action
            notes: Free-text description

        Returns:
            Created duty log entry
        """
        entry = DutyLog(
            action=action,
            performed_by=performed_by,
            schedule_id=schedule_id,
            booking_id=booking_id,
            target_user_id=target_user_id,
            notes=notes,
        )
        db.add(entry)
        return entry


audit_service = AuditService()
