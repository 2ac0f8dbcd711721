"""Notification service for in-app duty alerts.

Notification writes never fail the action that triggered them: each record is
written inside its own SAVEPOINT and errors are logged and dropped.
"""

import logging
from datetime import UTC, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import NotFoundError
from app.models.notification import Notification

logger = logging.getLogger(__name__)


class NotificationService:
    """Service for writing user-facing notification records."""

    # Notification types
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"

    async def create_notification(
        self,
        db: AsyncSession,
        user_id: UUID,
        title: str,
        message: str,
        notification_type: str = INFO,
        schedule_id: UUID | None = None,
        booking_id: UUID | None = None,
    ) -> Notification | None:
        """Create an in-app notification.

        Args:
            db: Database session
            user_id: User to notify
            title: Notification title
            message: Notification body text
            notification_type: One of info, success, warning, error
            schedule_id: Related schedule ID
            booking_id: Related booking ID

        Returns:
            Notification, or None if the write failed
        """
        notification = Notification(
            user_id=user_id,
            title=title,
            message=message,
            type=notification_type,
            schedule_id=schedule_id,
            booking_id=booking_id,
        )
        try:
            async with db.begin_nested():
                db.add(notification)
                await db.flush()
        except SQLAlchemyError as e:
            logger.warning(f"Failed to write notification '{title}' for user {user_id}: {e}")
            return None
        return notification

    # ==================== DUTY NOTIFICATIONS ====================

    async def notify_duty_booked(
        self, db: AsyncSession, user_id: UUID, schedule_id: UUID, booking_id: UUID, duty_date: str, confirmed: bool
    ) -> Notification | None:
        if confirmed:
            message = f"Your duty for {duty_date} is booked and confirmed."
        else:
            message = f"Your duty for {duty_date} is booked. Waiting for admin approval."
        return await self.create_notification(
            db,
            user_id=user_id,
            title="Duty Booked",
            message=message,
            notification_type=self.SUCCESS,
            schedule_id=schedule_id,
            booking_id=booking_id,
        )

    async def notify_duty_cancelled(
        self, db: AsyncSession, user_id: UUID, schedule_id: UUID, booking_id: UUID, duty_date: str, reason: str | None
    ) -> Notification | None:
        message = f"Your duty for {duty_date} has been cancelled."
        if reason:
            message = f"{message} Reason: {reason}"
        return await self.create_notification(
            db,
            user_id=user_id,
            title="Duty Cancelled",
            message=message,
            notification_type=self.WARNING,
            schedule_id=schedule_id,
            booking_id=booking_id,
        )

    async def notify_duty_confirmed(
        self, db: AsyncSession, user_id: UUID, schedule_id: UUID, booking_id: UUID, duty_date: str
    ) -> Notification | None:
        return await self.create_notification(
            db,
            user_id=user_id,
            title="Duty Confirmed",
            message=f"Your duty for {duty_date} has been approved by the administrator.",
            notification_type=self.SUCCESS,
            schedule_id=schedule_id,
            booking_id=booking_id,
        )

    # ==================== INBOX ====================

    async def list_notifications(
        self,
        db: AsyncSession,
        user_id: UUID,
        unread_only: bool = False,
        schedule_id: UUID | None = None,
        booking_id: UUID | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[Notification], int, int]:
        """A user's notifications, newest first, optionally scoped to one duty.

        Returns:
            Tuple of (page of notifications, total matching, unread in scope)
        """
        scope = [Notification.user_id == user_id]
        if schedule_id:
            scope.append(Notification.schedule_id == schedule_id)
        if booking_id:
            scope.append(Notification.booking_id == booking_id)

        filters = list(scope)
        if unread_only:
            filters.append(Notification.read.is_(False))

        total = (
            await db.execute(select(func.count(Notification.id)).where(*filters))
        ).scalar() or 0
        unread = (
            await db.execute(
                select(func.count(Notification.id)).where(*scope, Notification.read.is_(False))
            )
        ).scalar() or 0

        result = await db.execute(
            select(Notification)
            .where(*filters)
            .order_by(Notification.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars().all()), total, unread

    async def mark_read(self, db: AsyncSession, user_id: UUID, notification_id: UUID) -> Notification:
        result = await db.execute(
            select(Notification).where(
                Notification.id == notification_id,
                Notification.user_id == user_id,
            )
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification", str(notification_id))

        if not notification.read:
            notification.read = True
            notification.read_at = datetime.now(UTC)
            await db.flush()
        return notification

    async def mark_all_read(
        self, db: AsyncSession, user_id: UUID, schedule_id: UUID | None = None
    ) -> int:
        """Mark unread notifications read, all of them or one schedule's; returns rows changed."""
        query = update(Notification).where(
            Notification.user_id == user_id,
            Notification.read.is_(False),
        )
        if schedule_id:
            query = query.where(Notification.schedule_id == schedule_id)

        result = await db.execute(
            query.values(read=True, read_at=datetime.now(UTC)).execution_options(
                synchronize_session=False
            )
        )
        return result.rowcount or 0


notification_service = NotificationService()
