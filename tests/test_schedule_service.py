"""Schedule service: creation, edits, approval and rejection cascades."""

from datetime import time, timedelta

import pytest
from sqlalchemy import select

from app.core.exceptions import ScheduleClosed, ValidationError
from app.models import DutyBooking, DutyLog, Notification, Schedule
from app.services.booking_service import booking_service
from app.services.schedule_service import schedule_service
from tests.conftest import TODAY, create_schedule


class TestCreateAndUpdate:
    async def test_create_defaults_to_pending_with_two_slots(self, db, admin):
        schedule = await schedule_service.create_schedule(
            db,
            created_by=admin,
            duty_date=TODAY + timedelta(days=5),
            shift_start=time(7, 0),
            shift_end=time(15, 0),
            location="Ward 2",
        )
        await db.commit()

        assert schedule.status == "pending"
        assert schedule.max_students == 2
        assert schedule.available_slots == 2
        assert schedule.bookings == []

        actions = (await db.execute(select(DutyLog.action))).scalars().all()
        assert actions == ["schedule_created"]

    async def test_create_rejects_inverted_shift(self, db, admin):
        with pytest.raises(ValidationError):
            await schedule_service.create_schedule(
                db,
                created_by=admin,
                duty_date=TODAY,
                shift_start=time(15, 0),
                shift_end=time(7, 0),
            )

    async def test_capacity_cannot_drop_below_active_bookings(
        self, db, admin, schedule, student_a, student_b
    ):
        await booking_service.book_duty(db, schedule.id, student_a, today=TODAY)
        await booking_service.book_duty(db, schedule.id, student_b, today=TODAY)
        await db.commit()

        with pytest.raises(ValidationError):
            await schedule_service.update_schedule(db, schedule.id, admin, {"max_students": 1})

        updated = await schedule_service.update_schedule(
            db, schedule.id, admin, {"max_students": 3, "location": "Labor Room"}
        )
        assert updated.max_students == 3
        assert updated.location == "Labor Room"
        assert updated.available_slots == 1

    async def test_cancelled_schedule_cannot_be_edited(self, db, admin):
        cancelled = await create_schedule(db, TODAY + timedelta(days=1), status="cancelled")

        with pytest.raises(ValidationError):
            await schedule_service.update_schedule(db, cancelled.id, admin, {"location": "ER"})

    async def test_list_filters_by_date_range_and_status(self, db, admin):
        first = await create_schedule(db, TODAY + timedelta(days=1))
        second = await create_schedule(db, TODAY + timedelta(days=2), status="approved")
        await create_schedule(db, TODAY + timedelta(days=10))

        in_range = await schedule_service.list_schedules(
            db, date_from=TODAY, date_to=TODAY + timedelta(days=3)
        )
        approved = await schedule_service.list_schedules(db, status="approved")

        assert [s.id for s in in_range] == [first.id, second.id]
        assert [s.id for s in approved] == [second.id]


class TestApproveSchedule:
    async def test_approval_confirms_pending_bookings(self, db, admin, schedule, student_a, student_b):
        await booking_service.book_duty(db, schedule.id, student_a, today=TODAY)
        await booking_service.book_duty(db, schedule.id, student_b, today=TODAY)
        await db.commit()

        approved = await schedule_service.approve_schedule(db, schedule.id, admin)
        await db.commit()

        assert approved.status == "approved"
        assert approved.approved_by == admin.id
        assert approved.approved_at is not None
        assert {b.status for b in approved.bookings} == {"confirmed"}

        confirmations = (
            await db.execute(select(Notification).where(Notification.title == "Duty Confirmed"))
        ).scalars().all()
        assert {n.user_id for n in confirmations} == {student_a.id, student_b.id}

    async def test_cancelled_bookings_stay_cancelled(self, db, admin, schedule, student_a):
        booking = await booking_service.book_duty(db, schedule.id, student_a, today=TODAY)
        await booking_service.cancel_booking(db, booking.id, student_a, today=TODAY)
        await db.commit()

        approved = await schedule_service.approve_schedule(db, schedule.id, admin)

        assert [b.status for b in approved.bookings] == ["cancelled"]

    async def test_approved_schedule_cannot_be_approved_again(self, db, admin):
        approved = await create_schedule(db, TODAY + timedelta(days=1), status="approved")

        with pytest.raises(ValidationError):
            await schedule_service.approve_schedule(db, approved.id, admin)


class TestRejectSchedule:
    async def test_rejection_cancels_every_live_booking(
        self, db, admin, student_a, student_b, student_c
    ):
        schedule = await create_schedule(db, TODAY + timedelta(days=6), max_students=3)
        await booking_service.book_duty(db, schedule.id, student_a, today=TODAY)
        await booking_service.book_duty(db, schedule.id, student_b, today=TODAY)
        await db.commit()

        rejected, cancelled = await schedule_service.reject_schedule(db, schedule.id, admin)
        await db.commit()

        assert cancelled == 2
        assert rejected.status == "cancelled"
        assert rejected.active_bookings == 0

        bookings = (
            await db.execute(select(DutyBooking).where(DutyBooking.schedule_id == schedule.id))
        ).scalars().all()
        assert {b.status for b in bookings} == {"cancelled"}
        assert {b.cancellation_reason for b in bookings} == {"Schedule rejected by admin"}
        assert {b.cancelled_by for b in bookings} == {admin.id}

    async def test_rejection_of_approved_schedule(self, db, admin, student_a):
        schedule = await create_schedule(db, TODAY + timedelta(days=6), status="approved")
        await booking_service.book_duty(db, schedule.id, student_a, today=TODAY)
        await db.commit()

        rejected, cancelled = await schedule_service.reject_schedule(db, schedule.id, admin)

        assert cancelled == 1
        assert rejected.status == "cancelled"

    async def test_completed_bookings_keep_their_status(self, db, admin, student_a, student_b):
        schedule = await create_schedule(db, TODAY + timedelta(days=6))
        done = await booking_service.book_duty(db, schedule.id, student_a, today=TODAY)
        await booking_service.book_duty(db, schedule.id, student_b, today=TODAY)
        await booking_service.complete_booking(db, done.id, student_a)
        await db.commit()

        rejected, cancelled = await schedule_service.reject_schedule(db, schedule.id, admin)
        await db.commit()

        assert cancelled == 1
        assert rejected.active_bookings == 1
        statuses = {b.student_id: b.status for b in rejected.bookings}
        assert statuses == {student_a.id: "completed", student_b.id: "cancelled"}

    async def test_rejection_is_all_or_nothing(self, db, admin, schedule, student_a, student_b, monkeypatch):
        await booking_service.book_duty(db, schedule.id, student_a, today=TODAY)
        await booking_service.book_duty(db, schedule.id, student_b, today=TODAY)
        await db.commit()

        real_cancel = schedule_service._cancel_for_rejection
        calls = []

        def fail_on_second(booking, actor_id, now):
            calls.append(booking.id)
            if len(calls) == 2:
                raise RuntimeError("connection lost mid-cascade")
            real_cancel(booking, actor_id, now)

        monkeypatch.setattr(schedule_service, "_cancel_for_rejection", fail_on_second)

        with pytest.raises(RuntimeError):
            await schedule_service.reject_schedule(db, schedule.id, admin)
        await db.commit()

        reloaded = await schedule_service.get_schedule(db, schedule.id)
        assert reloaded.status == "pending"
        assert reloaded.active_bookings == 2
        assert {b.status for b in reloaded.bookings} == {"pending_approval"}

    async def test_cancelled_schedule_cannot_be_rejected(self, db, admin):
        cancelled = await create_schedule(db, TODAY + timedelta(days=1), status="cancelled")

        with pytest.raises(ValidationError):
            await schedule_service.reject_schedule(db, cancelled.id, admin)

    async def test_rejected_schedule_is_not_bookable(self, db, admin, schedule, student_a):
        await schedule_service.reject_schedule(db, schedule.id, admin)
        await db.commit()

        with pytest.raises(ScheduleClosed):
            await booking_service.book_duty(db, schedule.id, student_a, today=TODAY)

        result = await db.execute(select(Schedule.status).where(Schedule.id == schedule.id))
        assert result.scalar_one() == "cancelled"
