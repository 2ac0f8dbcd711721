"""Duty booking service: capacity ledger, duplicate guard and cancellation."""

import logging
from datetime import UTC, date, datetime
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.core.exceptions import (
    AlreadyBooked,
    AuthorizationError,
    CancellationWindowClosed,
    CapacityExceeded,
    InvalidBookingStatus,
    NotFoundError,
    RebookingBlocked,
    ScheduleClosed,
)
from app.core.permissions import Permission, UserRole, has_permission
from app.domain.booking_state import (
    ACTIVE_BOOKING_STATUSES,
    CANCELLED,
    COMPLETED,
    LIVE_BOOKING_STATUSES,
    PENDING_APPROVAL,
    assert_booking_transition,
    status_for_schedule,
)
from app.domain.duty_rules import can_cancel_duty, is_past_duty, local_today
from app.domain.schedule_state import SCHEDULE_CANCELLED, SCHEDULE_PENDING
from app.models.schedule import DutyBooking, Schedule
from app.models.user import Profile
from app.services.audit_service import audit_service
from app.services.notification_service import notification_service
from app.services.rebooking_guard import rebooking_guard

logger = logging.getLogger(__name__)


class BookingService:
    """Service for the duty booking lifecycle."""

    # ==================== BOOKING ====================

    async def book_duty(
        self,
        db: AsyncSession,
        schedule_id: UUID,
        student: Profile,
        today: date | None = None,
    ) -> DutyBooking:
        """Claim one slot on a schedule for a student.

        Checks run in order: schedule exists and is open, capacity, duplicate
        booking (snapshot, then store), same-day rebooking guard. The slot
        itself is claimed with a conditional counter increment and the insert
        is guarded by the partial unique index on (schedule_id, student_id).

        Args:
            db: Database session
            schedule_id: Schedule to book
            student: Booking student's profile
            today: Calendar date override (defaults to the program's today)

        Returns:
            The created booking with its schedule loaded

        Raises:
            NotFoundError: Schedule does not exist
            ScheduleClosed: Schedule is cancelled or in the past
            CapacityExceeded: No free slot
            AlreadyBooked: Student already holds an active booking
            RebookingBlocked: Student cancelled a duty for this date today
        """
        if student.role != UserRole.STUDENT.value:
            raise AuthorizationError("Only students can book duties")

        today = today or local_today()
        schedule = await self._load_schedule(db, schedule_id)

        if schedule.status == SCHEDULE_CANCELLED or is_past_duty(schedule.date, today):
            logger.info(f"Booking rejected: schedule {schedule_id} is closed")
            raise ScheduleClosed()

        if schedule.is_full:
            logger.info(
                f"Booking rejected: schedule {schedule_id} full "
                f"({schedule.booked_count}/{schedule.max_students})"
            )
            raise CapacityExceeded(schedule.booked_count, schedule.max_students)

        if self._check_local(schedule, student.id):
            logger.info(f"Booking rejected: student {student.id} already on schedule {schedule_id}")
            raise AlreadyBooked()

        if await self._store_conflict(db, schedule.id, student.id):
            logger.info(
                f"Booking rejected: stored booking found for student {student.id} "
                f"on schedule {schedule_id}"
            )
            await self._resync(db, schedule)
            raise AlreadyBooked()

        if await rebooking_guard.is_blocked(db, student.id, schedule.date, today):
            logger.info(
                f"Booking rejected: student {student.id} cancelled a duty for "
                f"{schedule.date} today"
            )
            raise RebookingBlocked()

        booking = await self._claim_slot(db, schedule, student.id)

        await audit_service.log_action(
            db,
            action="booked",
            performed_by=student.id,
            schedule_id=schedule.id,
            booking_id=booking.id,
            target_user_id=student.id,
            notes=f"Booked duty for {schedule.date.isoformat()}",
        )
        await notification_service.notify_duty_booked(
            db,
            user_id=student.id,
            schedule_id=schedule.id,
            booking_id=booking.id,
            duty_date=schedule.date.isoformat(),
            confirmed=booking.status != PENDING_APPROVAL,
        )

        logger.info(
            f"Student {student.id} booked schedule {schedule.id} "
            f"({schedule.active_bookings}/{schedule.max_students}, status={booking.status})"
        )
        return booking

    async def _load_schedule(self, db: AsyncSession, schedule_id: UUID) -> Schedule:
        """Load a schedule with its bookings, overwriting any stale identity-map copy."""
        result = await db.execute(
            select(Schedule)
            .where(Schedule.id == schedule_id)
            .options(selectinload(Schedule.bookings))
            .execution_options(populate_existing=True)
        )
        schedule = result.scalar_one_or_none()
        if not schedule:
            raise NotFoundError("Schedule", str(schedule_id))
        return schedule

    def _check_local(self, schedule: Schedule, student_id: UUID) -> bool:
        """Active booking for the student in the loaded snapshot."""
        return any(b.student_id == student_id for b in schedule.active_duty_bookings)

    async def _store_conflict(self, db: AsyncSession, schedule_id: UUID, student_id: UUID) -> bool:
        """Active booking for the student in the database."""
        result = await db.execute(
            select(DutyBooking.id)
            .where(
                DutyBooking.schedule_id == schedule_id,
                DutyBooking.student_id == student_id,
                DutyBooking.status != CANCELLED,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def _claim_slot(self, db: AsyncSession, schedule: Schedule, student_id: UUID) -> DutyBooking:
        """Increment the slot counter and insert the booking in one SAVEPOINT.

        The counter only moves while the schedule row is open and has room, and
        the booking's status is taken from the row the increment touched.
        """
        try:
            async with db.begin_nested():
                result = await db.execute(
                    update(Schedule)
                    .where(
                        Schedule.id == schedule.id,
                        Schedule.status != SCHEDULE_CANCELLED,
                        Schedule.active_bookings < Schedule.max_students,
                    )
                    .values(active_bookings=Schedule.active_bookings + 1)
                    .execution_options(synchronize_session=False)
                )
                current = (
                    await db.execute(
                        select(Schedule.status, Schedule.active_bookings, Schedule.max_students)
                        .where(Schedule.id == schedule.id)
                    )
                ).one()
                if result.rowcount == 0:
                    if current.status == SCHEDULE_CANCELLED:
                        raise ScheduleClosed()
                    raise CapacityExceeded(current.active_bookings, current.max_students)

                booking = DutyBooking(
                    schedule_id=schedule.id,
                    student_id=student_id,
                    status=status_for_schedule(current.status),
                )
                db.add(booking)
                await db.flush()
        except IntegrityError:
            logger.warning(
                f"Concurrent booking detected for student {student_id} on schedule {schedule.id}"
            )
            await self._resync(db, schedule)
            raise AlreadyBooked(race_detected=True)
        except ScheduleClosed:
            logger.info(f"Booking rejected: schedule {schedule.id} was cancelled concurrently")
            await self._resync(db, schedule)
            raise
        except CapacityExceeded:
            logger.info(f"Booking rejected: last slot on schedule {schedule.id} was taken concurrently")
            await self._resync(db, schedule)
            raise

        await db.refresh(schedule, attribute_names=["status", "active_bookings", "bookings"])
        await db.refresh(booking, attribute_names=["schedule"])
        return booking

    async def _resync(self, db: AsyncSession, schedule: Schedule) -> None:
        """Reload the schedule snapshot from the database."""
        await db.refresh(schedule, attribute_names=["status", "active_bookings", "bookings"])

    # ==================== CANCEL / COMPLETE ====================

    async def cancel_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: Profile,
        reason: str | None = None,
        today: date | None = None,
    ) -> DutyBooking:
        """Cancel a live booking and free its slot.

        Owners and admins may cancel, but never on the day of the duty. A
        student's own cancellation arms the same-day rebooking guard.
        """
        today = today or local_today()
        booking = await self._load_booking(db, booking_id)

        is_owner = booking.student_id == actor.id
        permission = Permission.CANCEL_OWN_DUTY if is_owner else Permission.CANCEL_ANY_DUTY
        if not has_permission(actor.role, permission):
            raise AuthorizationError("You can only cancel your own duties")

        assert_booking_transition(booking.status, CANCELLED)

        schedule = booking.schedule
        if not can_cancel_duty(schedule.date, today):
            logger.info(f"Cancellation rejected: booking {booking.id} is on the duty day")
            raise CancellationWindowClosed()

        await self._transition_live(
            db,
            booking,
            CANCELLED,
            cancelled_at=datetime.now(UTC),
            cancelled_by=actor.id,
            cancellation_reason=reason,
        )

        await db.execute(
            update(Schedule)
            .where(Schedule.id == schedule.id, Schedule.active_bookings > 0)
            .values(active_bookings=Schedule.active_bookings - 1)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(schedule, attribute_names=["active_bookings"])

        if is_owner and actor.role == UserRole.STUDENT.value:
            await rebooking_guard.arm(db, actor.id, schedule.date, booking.id, today)

        await audit_service.log_action(
            db,
            action="cancelled",
            performed_by=actor.id,
            schedule_id=schedule.id,
            booking_id=booking.id,
            target_user_id=booking.student_id,
            notes=reason or f"Cancelled duty for {schedule.date.isoformat()}",
        )
        await notification_service.notify_duty_cancelled(
            db,
            user_id=booking.student_id,
            schedule_id=schedule.id,
            booking_id=booking.id,
            duty_date=schedule.date.isoformat(),
            reason=reason,
        )

        logger.info(f"Booking {booking.id} cancelled by {actor.id}")
        return booking

    async def complete_booking(
        self,
        db: AsyncSession,
        booking_id: UUID,
        actor: Profile,
    ) -> DutyBooking:
        """Mark the actor's own booking as completed."""
        booking = await self._load_booking(db, booking_id)
        if booking.student_id != actor.id or not has_permission(
            actor.role, Permission.COMPLETE_OWN_DUTY
        ):
            raise AuthorizationError("You can only complete your own duties")

        assert_booking_transition(booking.status, COMPLETED)
        await self._transition_live(db, booking, COMPLETED, completed_at=datetime.now(UTC))

        await audit_service.log_action(
            db,
            action="completed",
            performed_by=actor.id,
            schedule_id=booking.schedule_id,
            booking_id=booking.id,
            target_user_id=actor.id,
        )
        await db.flush()
        return booking

    async def _transition_live(
        self, db: AsyncSession, booking: DutyBooking, target: str, **values
    ) -> None:
        """Move a booking out of a live status, re-checked against the stored row.

        Raises:
            InvalidBookingStatus: The stored booking is no longer live
        """
        result = await db.execute(
            update(DutyBooking)
            .where(
                DutyBooking.id == booking.id,
                DutyBooking.status.in_(LIVE_BOOKING_STATUSES),
            )
            .values(status=target, **values)
            .execution_options(synchronize_session=False)
        )
        await db.refresh(booking, attribute_names=["status", *values])
        if result.rowcount == 0:
            logger.info(
                f"Transition of booking {booking.id} to {target} rejected: "
                f"stored status is {booking.status}"
            )
            raise InvalidBookingStatus(
                f"Invalid booking transition: {booking.status} → {target}"
            )

    # ==================== QUERIES ====================

    async def get_booking(self, db: AsyncSession, booking_id: UUID, viewer: Profile) -> DutyBooking:
        """Get a booking visible to the viewer (owner, admin, or owner's parent)."""
        booking = await self._load_booking(db, booking_id)

        if booking.student_id == viewer.id:
            return booking
        if has_permission(viewer.role, Permission.VIEW_ALL_DUTIES):
            return booking
        if (
            has_permission(viewer.role, Permission.VIEW_CHILD_DUTIES)
            and viewer.child_student_number
            and booking.student.student_number == viewer.child_student_number
        ):
            return booking

        raise AuthorizationError("You don't have access to this duty")

    async def list_student_bookings(
        self,
        db: AsyncSession,
        student_id: UUID,
        status: str | None = None,
    ) -> list[DutyBooking]:
        """A student's bookings, latest duty date first."""
        query = (
            select(DutyBooking)
            .join(Schedule, DutyBooking.schedule_id == Schedule.id)
            .where(DutyBooking.student_id == student_id)
            .options(selectinload(DutyBooking.schedule), selectinload(DutyBooking.student))
            .order_by(Schedule.date.desc(), Schedule.shift_start.desc())
        )
        if status:
            query = query.where(DutyBooking.status == status)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def list_child_bookings(
        self,
        db: AsyncSession,
        parent: Profile,
        status: str | None = None,
    ) -> list[DutyBooking]:
        """Bookings of the student linked to a parent by student number."""
        if not parent.child_student_number:
            raise NotFoundError("Linked student")

        result = await db.execute(
            select(Profile).where(Profile.student_number == parent.child_student_number)
        )
        child = result.scalar_one_or_none()
        if not child:
            raise NotFoundError("Linked student", parent.child_student_number)

        return await self.list_student_bookings(db, child.id, status)

    async def list_pending_approvals(self, db: AsyncSession) -> list[DutyBooking]:
        """Active bookings waiting on a schedule approval, soonest duty first."""
        result = await db.execute(
            select(DutyBooking)
            .join(Schedule, DutyBooking.schedule_id == Schedule.id)
            .where(
                DutyBooking.status == PENDING_APPROVAL,
                Schedule.status == SCHEDULE_PENDING,
            )
            .options(selectinload(DutyBooking.schedule), selectinload(DutyBooking.student))
            .order_by(Schedule.date, Schedule.shift_start, DutyBooking.booked_at)
        )
        return list(result.scalars().all())

    async def _load_booking(self, db: AsyncSession, booking_id: UUID) -> DutyBooking:
        """Get booking by ID with schedule and student, or raise NotFoundError."""
        result = await db.execute(
            select(DutyBooking)
            .where(DutyBooking.id == booking_id)
            .options(selectinload(DutyBooking.schedule), selectinload(DutyBooking.student))
            .execution_options(populate_existing=True)
        )
        booking = result.scalar_one_or_none()
        if not booking:
            raise NotFoundError("Booking", str(booking_id))
        return booking

    # ==================== MAINTENANCE ====================

    async def reconcile_capacity(self, db: AsyncSession) -> int:
        """Recompute open schedules' slot counters from their bookings.

        Returns:
            Number of schedules whose counter was corrected
        """
        active_counts = (
            select(
                DutyBooking.schedule_id.label("schedule_id"),
                func.count(DutyBooking.id).label("active"),
            )
            .where(DutyBooking.status.in_(ACTIVE_BOOKING_STATUSES))
            .group_by(DutyBooking.schedule_id)
            .subquery()
        )
        result = await db.execute(
            select(
                Schedule.id,
                Schedule.active_bookings,
                Schedule.max_students,
                func.coalesce(active_counts.c.active, 0),
            )
            .outerjoin(active_counts, active_counts.c.schedule_id == Schedule.id)
            .where(Schedule.status != SCHEDULE_CANCELLED)
        )

        corrected = 0
        for schedule_id, recorded, max_students, actual in result.all():
            if recorded == actual:
                continue
            if actual > max_students:
                logger.error(
                    f"Schedule {schedule_id} has {actual} active bookings "
                    f"for {max_students} slots; counter left at {recorded}"
                )
                continue

            logger.warning(
                f"Capacity drift on schedule {schedule_id}: counter={recorded}, "
                f"active bookings={actual}"
            )
            await db.execute(
                update(Schedule)
                .where(Schedule.id == schedule_id)
                .values(active_bookings=actual)
                .execution_options(synchronize_session=False)
            )
            corrected += 1

        return corrected


booking_service = BookingService()
