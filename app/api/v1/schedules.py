"""Schedule endpoints."""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.core.permissions import (
    require_duty_booker,
    require_schedule_approver,
    require_schedule_manager,
    require_schedule_viewer,
)
from app.models.user import Profile
from app.schemas.booking import BookingResponse
from app.schemas.schedule import (
    ScheduleCreate,
    ScheduleRejectResponse,
    ScheduleResponse,
    ScheduleUpdate,
)
from app.services.booking_service import booking_service
from app.services.change_events import change_events
from app.services.schedule_service import schedule_service

router = APIRouter()


@router.get("", response_model=list[ScheduleResponse])
async def list_schedules(
    current_user: Annotated[Profile, Depends(require_schedule_viewer)],
    db: Annotated[AsyncSession, Depends(get_db)],
    date_from: date | None = Query(default=None),
    date_to: date | None = Query(default=None),
    schedule_status: str | None = Query(
        default=None, alias="status", pattern="^(pending|approved|cancelled)$"
    ),
) -> list[ScheduleResponse]:
    """List schedules with their active bookings."""
    schedules = await schedule_service.list_schedules(db, date_from, date_to, schedule_status)
    return [ScheduleResponse.model_validate(s) for s in schedules]


@router.post("", response_model=ScheduleResponse, status_code=status.HTTP_201_CREATED)
async def create_schedule(
    schedule_data: ScheduleCreate,
    current_user: Annotated[Profile, Depends(require_schedule_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ScheduleResponse:
    """Create a new duty schedule (admin)."""
    schedule = await schedule_service.create_schedule(
        db,
        created_by=current_user,
        duty_date=schedule_data.date,
        shift_start=schedule_data.shift_start,
        shift_end=schedule_data.shift_end,
        location=schedule_data.location,
        description=schedule_data.description,
        max_students=schedule_data.max_students,
    )
    response = ScheduleResponse.model_validate(schedule)
    await db.commit()

    await change_events.publish(change_events.SCHEDULES, "INSERT", schedule.id)
    return response


@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(
    schedule_id: UUID,
    current_user: Annotated[Profile, Depends(require_schedule_viewer)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ScheduleResponse:
    """Get schedule details."""
    schedule = await schedule_service.get_schedule(db, schedule_id)
    return ScheduleResponse.model_validate(schedule)


@router.patch("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: UUID,
    updates: ScheduleUpdate,
    current_user: Annotated[Profile, Depends(require_schedule_manager)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ScheduleResponse:
    """Edit schedule details or capacity (admin)."""
    schedule = await schedule_service.update_schedule(
        db, schedule_id, current_user, updates.model_dump(exclude_unset=True)
    )
    response = ScheduleResponse.model_validate(schedule)
    await db.commit()

    await change_events.publish(change_events.SCHEDULES, "UPDATE", schedule.id)
    return response


@router.post("/{schedule_id}/approve", response_model=ScheduleResponse)
async def approve_schedule(
    schedule_id: UUID,
    current_user: Annotated[Profile, Depends(require_schedule_approver)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ScheduleResponse:
    """Approve a schedule and confirm its pending bookings (admin)."""
    schedule = await schedule_service.approve_schedule(db, schedule_id, current_user)
    response = ScheduleResponse.model_validate(schedule)
    await db.commit()

    await change_events.publish(change_events.SCHEDULES, "UPDATE", schedule.id)
    await change_events.publish(change_events.BOOKINGS, "UPDATE", schedule.id, schedule_id=schedule.id)
    return response


@router.post("/{schedule_id}/reject", response_model=ScheduleRejectResponse)
async def reject_schedule(
    schedule_id: UUID,
    current_user: Annotated[Profile, Depends(require_schedule_approver)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ScheduleRejectResponse:
    """Reject a schedule, cancelling all of its live bookings (admin)."""
    schedule, cancelled = await schedule_service.reject_schedule(db, schedule_id, current_user)
    response = ScheduleRejectResponse(
        schedule=ScheduleResponse.model_validate(schedule),
        cancelled_bookings=cancelled,
    )
    await db.commit()

    await change_events.publish(change_events.SCHEDULES, "UPDATE", schedule.id)
    if cancelled:
        await change_events.publish(
            change_events.BOOKINGS, "UPDATE", schedule.id, schedule_id=schedule.id
        )
    return response


@router.post("/{schedule_id}/book", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_duty(
    schedule_id: UUID,
    current_user: Annotated[Profile, Depends(require_duty_booker)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Book a duty slot on a schedule (student)."""
    booking = await booking_service.book_duty(db, schedule_id, current_user)
    response = BookingResponse.model_validate(booking)
    await db.commit()

    await change_events.publish(
        change_events.BOOKINGS, "INSERT", booking.id, schedule_id=booking.schedule_id
    )
    return response
