"""Celery background tasks.

This module contains the periodic maintenance tasks:
- Rebooking block cleanup
- Schedule capacity reconciliation
"""

import asyncio
import logging

from celery import shared_task

from app.database import get_db_context
from app.services.booking_service import booking_service
from app.services.rebooking_guard import rebooking_guard

logger = logging.getLogger(__name__)


_loop: asyncio.AbstractEventLoop | None = None


def run_async(coro):
    """Run async function in sync context on a persistent worker loop."""
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop.run_until_complete(coro)


# ==================== MAINTENANCE TASKS ====================


@shared_task(bind=True, max_retries=3)
def purge_expired_rebooking_blocks(self):
    """Delete rebooking blocks recorded before today.

    Runs daily just after midnight in the program timezone.
    """
    try:
        removed = run_async(_purge_expired_rebooking_blocks())
        return {"status": "success", "removed": removed}
    except Exception as exc:
        logger.exception("Rebooking block purge failed")
        raise self.retry(exc=exc, countdown=300)


async def _purge_expired_rebooking_blocks() -> int:
    async with get_db_context() as db:
        return await rebooking_guard.purge_expired(db)


@shared_task(bind=True, max_retries=3)
def reconcile_schedule_capacity(self):
    """Recompute each open schedule's slot counter from its bookings.

    Runs hourly. Drift is logged and corrected.
    """
    try:
        corrected = run_async(_reconcile_schedule_capacity())
        return {"status": "success", "corrected": corrected}
    except Exception as exc:
        logger.exception("Capacity reconciliation failed")
        raise self.retry(exc=exc, countdown=300)


async def _reconcile_schedule_capacity() -> int:
    async with get_db_context() as db:
        return await booking_service.reconcile_capacity(db)
