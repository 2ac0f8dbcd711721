"""Schedule management service: creation, edits and the approval cascades."""

import logging
from datetime import UTC, date, datetime, time
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.core.exceptions import NotFoundError, ValidationError
from app.domain.booking_state import (
    CANCELLED,
    COMPLETED,
    CONFIRMED,
    LIVE_BOOKING_STATUSES,
    PENDING_APPROVAL,
    assert_booking_transition,
)
from app.domain.schedule_state import (
    REJECTION_REASON,
    SCHEDULE_APPROVED,
    SCHEDULE_CANCELLED,
    SCHEDULE_PENDING,
    assert_schedule_transition,
)
from app.models.schedule import DutyBooking, Schedule
from app.models.user import Profile
from app.services.audit_service import audit_service
from app.services.notification_service import notification_service

logger = logging.getLogger(__name__)


class ScheduleService:
    """Service for schedule lifecycle."""

    async def create_schedule(
        self,
        db: AsyncSession,
        created_by: Profile,
        duty_date: date,
        shift_start: time,
        shift_end: time,
        location: str | None = None,
        description: str | None = None,
        max_students: int | None = None,
    ) -> Schedule:
        """Create a pending schedule."""
        if shift_end <= shift_start:
            raise ValidationError("Shift end must be after shift start")

        max_students = max_students or settings.default_max_students
        if max_students < 1:
            raise ValidationError("max_students must be at least 1")

        schedule = Schedule(
            date=duty_date,
            shift_start=shift_start,
            shift_end=shift_end,
            location=location,
            description=description,
            max_students=max_students,
            active_bookings=0,
            status=SCHEDULE_PENDING,
            created_by=created_by.id,
        )
        db.add(schedule)
        await db.flush()

        await audit_service.log_action(
            db,
            action="schedule_created",
            performed_by=created_by.id,
            schedule_id=schedule.id,
            notes=f"Created schedule for {duty_date.isoformat()}",
        )
        await db.flush()

        logger.info(f"Schedule {schedule.id} created for {duty_date} by {created_by.id}")
        return await self.get_schedule(db, schedule.id)

    async def update_schedule(
        self,
        db: AsyncSession,
        schedule_id: UUID,
        actor: Profile,
        changes: dict,
    ) -> Schedule:
        """Edit schedule details or capacity.

        Capacity may not drop below the number of slots already claimed.
        """
        schedule = await self.get_schedule(db, schedule_id)
        if schedule.status == SCHEDULE_CANCELLED:
            raise ValidationError("Cancelled schedules cannot be edited")

        shift_start = changes.get("shift_start", schedule.shift_start)
        shift_end = changes.get("shift_end", schedule.shift_end)
        if shift_end <= shift_start:
            raise ValidationError("Shift end must be after shift start")

        max_students = changes.get("max_students")
        if max_students is not None and max_students < schedule.active_bookings:
            raise ValidationError(
                f"max_students cannot be lower than the {schedule.active_bookings} "
                "students already assigned"
            )

        for field, value in changes.items():
            setattr(schedule, field, value)

        await audit_service.log_action(
            db,
            action="schedule_updated",
            performed_by=actor.id,
            schedule_id=schedule.id,
            notes=", ".join(sorted(changes)) or None,
        )
        await db.flush()
        return await self.get_schedule(db, schedule.id)

    async def approve_schedule(
        self,
        db: AsyncSession,
        schedule_id: UUID,
        actor: Profile,
    ) -> Schedule:
        """Approve a schedule and confirm every booking waiting on it."""
        schedule = await self.get_schedule(db, schedule_id)
        assert_schedule_transition(schedule.status, SCHEDULE_APPROVED)

        schedule.status = SCHEDULE_APPROVED
        schedule.approved_by = actor.id
        schedule.approved_at = datetime.now(UTC)

        confirmed = []
        for booking in schedule.bookings:
            if booking.status != PENDING_APPROVAL:
                continue
            assert_booking_transition(booking.status, CONFIRMED)
            booking.status = CONFIRMED
            confirmed.append(booking)
        await db.flush()

        for booking in confirmed:
            await notification_service.notify_duty_confirmed(
                db,
                user_id=booking.student_id,
                schedule_id=schedule.id,
                booking_id=booking.id,
                duty_date=schedule.date.isoformat(),
            )

        await audit_service.log_action(
            db,
            action="schedule_approved",
            performed_by=actor.id,
            schedule_id=schedule.id,
            notes=f"Approved; {len(confirmed)} booking(s) confirmed",
        )
        await db.flush()

        logger.info(f"Schedule {schedule.id} approved by {actor.id}; {len(confirmed)} bookings confirmed")
        return schedule

    async def reject_schedule(
        self,
        db: AsyncSession,
        schedule_id: UUID,
        actor: Profile,
    ) -> tuple[Schedule, int]:
        """Reject a schedule, cancelling every live booking on it.

        The cascade runs in one SAVEPOINT: either all live bookings and the
        schedule are cancelled, or nothing changes. Completed bookings keep
        their status.

        Returns:
            Tuple of (schedule, number of bookings cancelled)
        """
        schedule = await self.get_schedule(db, schedule_id)
        assert_schedule_transition(schedule.status, SCHEDULE_CANCELLED)

        now = datetime.now(UTC)
        cancelled: list[DutyBooking] = []
        try:
            async with db.begin_nested():
                for booking in schedule.bookings:
                    if booking.status not in LIVE_BOOKING_STATUSES:
                        continue
                    self._cancel_for_rejection(booking, actor.id, now)
                    cancelled.append(booking)

                schedule.status = SCHEDULE_CANCELLED
                schedule.cancelled_at = now
                schedule.active_bookings = sum(
                    1 for b in schedule.bookings if b.status == COMPLETED
                )
                await db.flush()
        except Exception:
            logger.exception(f"Rejection of schedule {schedule_id} rolled back")
            raise

        for booking in cancelled:
            await notification_service.notify_duty_cancelled(
                db,
                user_id=booking.student_id,
                schedule_id=schedule.id,
                booking_id=booking.id,
                duty_date=schedule.date.isoformat(),
                reason=REJECTION_REASON,
            )

        await audit_service.log_action(
            db,
            action="schedule_rejected",
            performed_by=actor.id,
            schedule_id=schedule.id,
            notes=f"Rejected; {len(cancelled)} booking(s) cancelled",
        )
        await db.flush()

        logger.info(f"Schedule {schedule.id} rejected by {actor.id}; {len(cancelled)} bookings cancelled")
        return schedule, len(cancelled)

    def _cancel_for_rejection(self, booking: DutyBooking, actor_id: UUID, now: datetime) -> None:
        assert_booking_transition(booking.status, CANCELLED)
        booking.status = CANCELLED
        booking.cancelled_at = now
        booking.cancelled_by = actor_id
        booking.cancellation_reason = REJECTION_REASON

    async def get_schedule(self, db: AsyncSession, schedule_id: UUID) -> Schedule:
        """Get schedule with bookings and students, or raise NotFoundError."""
        result = await db.execute(
            select(Schedule)
            .where(Schedule.id == schedule_id)
            .options(selectinload(Schedule.bookings).selectinload(DutyBooking.student))
            .execution_options(populate_existing=True)
        )
        schedule = result.scalar_one_or_none()
        if not schedule:
            raise NotFoundError("Schedule", str(schedule_id))
        return schedule

    async def list_schedules(
        self,
        db: AsyncSession,
        date_from: date | None = None,
        date_to: date | None = None,
        status: str | None = None,
    ) -> list[Schedule]:
        """Schedules in a date range, ordered by date and shift."""
        query = select(Schedule).options(
            selectinload(Schedule.bookings).selectinload(DutyBooking.student)
        )
        if date_from:
            query = query.where(Schedule.date >= date_from)
        if date_to:
            query = query.where(Schedule.date <= date_to)
        if status:
            query = query.where(Schedule.status == status)

        result = await db.execute(query.order_by(Schedule.date, Schedule.shift_start))
        return list(result.scalars().all())


schedule_service = ScheduleService()
