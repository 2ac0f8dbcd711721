"""Rebooking guard storage and the periodic maintenance tasks."""

from contextlib import asynccontextmanager
from datetime import timedelta

import pytest
from sqlalchemy import select

from app import tasks
from app.domain.duty_rules import local_today
from app.models import RebookingBlock, Schedule
from app.services.booking_service import booking_service
from app.services.rebooking_guard import rebooking_guard
from app.worker import celery_app
from tests.conftest import TODAY, create_schedule


@pytest.fixture
def task_db(monkeypatch, session_factory):
    """Point the tasks' session context at the test database."""

    @asynccontextmanager
    async def test_db_context():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    monkeypatch.setattr(tasks, "get_db_context", test_db_context)


class TestRebookingGuard:
    async def test_arm_is_idempotent(self, db, student_a):
        duty_date = TODAY + timedelta(days=3)

        await rebooking_guard.arm(db, student_a.id, duty_date, today=TODAY)
        await rebooking_guard.arm(db, student_a.id, duty_date, today=TODAY)
        await db.commit()

        blocks = (await db.execute(select(RebookingBlock))).scalars().all()
        assert len(blocks) == 1
        assert await rebooking_guard.is_blocked(db, student_a.id, duty_date, today=TODAY)
        assert not await rebooking_guard.is_blocked(
            db, student_a.id, duty_date, today=TODAY + timedelta(days=1)
        )

    async def test_purge_keeps_todays_blocks(self, db, student_a):
        duty_date = TODAY + timedelta(days=3)
        await rebooking_guard.arm(db, student_a.id, duty_date, today=TODAY - timedelta(days=2))
        await rebooking_guard.arm(db, student_a.id, duty_date, today=TODAY - timedelta(days=1))
        await rebooking_guard.arm(db, student_a.id, duty_date, today=TODAY)
        await db.commit()

        removed = await rebooking_guard.purge_expired(db, today=TODAY)
        await db.commit()

        remaining = (await db.execute(select(RebookingBlock.cancelled_on))).scalars().all()
        assert removed == 2
        assert remaining == [TODAY]


class TestMaintenanceTasks:
    def test_beat_schedule_registers_both_jobs(self):
        schedule = celery_app.conf.beat_schedule

        assert schedule["purge-expired-rebooking-blocks"]["task"] == (
            "app.tasks.purge_expired_rebooking_blocks"
        )
        assert schedule["reconcile-schedule-capacity"]["task"] == (
            "app.tasks.reconcile_schedule_capacity"
        )

    async def test_purge_task_body(self, db, task_db, student_a):
        today = local_today()
        await rebooking_guard.arm(db, student_a.id, today, today=today - timedelta(days=3))
        await rebooking_guard.arm(db, student_a.id, today, today=today)
        await db.commit()

        removed = await tasks._purge_expired_rebooking_blocks()

        assert removed == 1

    async def test_reconcile_task_body(self, db, task_db, student_a):
        schedule = await create_schedule(db, TODAY + timedelta(days=2))
        await booking_service.book_duty(db, schedule.id, student_a, today=TODAY)
        await db.execute(
            Schedule.__table__.update().where(Schedule.id == schedule.id).values(active_bookings=0)
        )
        await db.commit()

        corrected = await tasks._reconcile_schedule_capacity()

        assert corrected == 1
        result = await db.execute(select(Schedule.active_bookings).where(Schedule.id == schedule.id))
        assert result.scalar_one() == 1
