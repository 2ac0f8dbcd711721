"""Duty booking endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db
from app.core.permissions import require_all_duties, require_own_duties
from app.models.user import Profile
from app.schemas.booking import BookingCancelRequest, BookingListResponse, BookingResponse
from app.services.booking_service import booking_service
from app.services.change_events import change_events

router = APIRouter()

STATUS_PATTERN = "^(pending_approval|confirmed|cancelled|completed)$"


@router.get("", response_model=BookingListResponse)
async def list_my_bookings(
    current_user: Annotated[Profile, Depends(require_own_duties)],
    db: Annotated[AsyncSession, Depends(get_db)],
    booking_status: str | None = Query(default=None, alias="status", pattern=STATUS_PATTERN),
) -> BookingListResponse:
    """Get the current student's duties."""
    bookings = await booking_service.list_student_bookings(db, current_user.id, booking_status)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=len(bookings),
    )


@router.get("/pending-approvals", response_model=BookingListResponse)
async def list_pending_approvals(
    current_user: Annotated[Profile, Depends(require_all_duties)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingListResponse:
    """Get bookings waiting on schedule approval (admin)."""
    bookings = await booking_service.list_pending_approvals(db)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=len(bookings),
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    current_user: Annotated[Profile, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Get booking details."""
    booking = await booking_service.get_booking(db, booking_id, current_user)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    current_user: Annotated[Profile, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    cancel_data: BookingCancelRequest | None = None,
) -> BookingResponse:
    """Cancel a booking (owner or admin, never on the duty day)."""
    reason = cancel_data.reason if cancel_data else None
    booking = await booking_service.cancel_booking(db, booking_id, current_user, reason)
    response = BookingResponse.model_validate(booking)
    await db.commit()

    await change_events.publish(
        change_events.BOOKINGS, "UPDATE", booking.id, schedule_id=booking.schedule_id
    )
    return response


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    current_user: Annotated[Profile, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> BookingResponse:
    """Mark own duty as completed."""
    booking = await booking_service.complete_booking(db, booking_id, current_user)
    response = BookingResponse.model_validate(booking)
    await db.commit()

    await change_events.publish(
        change_events.BOOKINGS, "UPDATE", booking.id, schedule_id=booking.schedule_id
    )
    return response
