"""Same-day rebooking restriction.

A student who cancels their own booking for duty date D on day T cannot book
any schedule dated D again until T+1.
"""

import logging
from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.domain.duty_rules import local_today
from app.models.schedule import RebookingBlock

logger = logging.getLogger(__name__)


class RebookingGuard:
    """Persisted per-user, per-duty-date rebooking blocks."""

    async def arm(
        self,
        db: AsyncSession,
        user_id: UUID,
        duty_date: date,
        booking_id: UUID | None = None,
        today: date | None = None,
    ) -> None:
        """Record that the user cancelled a duty for duty_date today.

        Concurrent cancellations for the same date meet on the unique key;
        the losing insert is rolled back to its SAVEPOINT and ignored.
        """
        cancelled_on = today or local_today()
        try:
            async with db.begin_nested():
                db.add(
                    RebookingBlock(
                        user_id=user_id,
                        duty_date=duty_date,
                        cancelled_on=cancelled_on,
                        booking_id=booking_id,
                    )
                )
                await db.flush()
        except IntegrityError:
            logger.info(
                f"Rebooking block for user {user_id} on {duty_date} already recorded "
                f"for {cancelled_on}"
            )

    async def is_blocked(
        self,
        db: AsyncSession,
        user_id: UUID,
        duty_date: date,
        today: date | None = None,
    ) -> bool:
        """True while a cancellation for duty_date was recorded today."""
        today = today or local_today()
        result = await db.execute(
            select(RebookingBlock.id)
            .where(
                RebookingBlock.user_id == user_id,
                RebookingBlock.duty_date == duty_date,
                RebookingBlock.cancelled_on == today,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def purge_expired(self, db: AsyncSession, today: date | None = None) -> int:
        """Delete blocks older than the retention window; returns rows removed."""
        today = today or local_today()
        cutoff = today - timedelta(days=settings.rebooking_block_retention_days)
        result = await db.execute(
            delete(RebookingBlock).where(RebookingBlock.cancelled_on <= cutoff)
        )
        removed = result.rowcount or 0
        if removed:
            logger.info(f"Purged {removed} expired rebooking blocks (on or before {cutoff})")
        return removed


rebooking_guard = RebookingGuard()
