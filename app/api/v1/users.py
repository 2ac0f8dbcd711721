"""User endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db
from app.core.permissions import require_child_duties
from app.models.user import Profile
from app.schemas.booking import BookingListResponse, BookingResponse
from app.schemas.user import ProfileResponse
from app.services.booking_service import booking_service

router = APIRouter()


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    current_user: Annotated[Profile, Depends(get_current_user)],
) -> Profile:
    """Get current user's profile."""
    return current_user


@router.get("/me/child/duties", response_model=BookingListResponse)
async def get_child_duties(
    current_user: Annotated[Profile, Depends(require_child_duties)],
    db: Annotated[AsyncSession, Depends(get_db)],
    booking_status: str | None = Query(
        default=None,
        alias="status",
        pattern="^(pending_approval|confirmed|cancelled|completed)$",
    ),
) -> BookingListResponse:
    """Get the linked student's duties (parent)."""
    bookings = await booking_service.list_child_bookings(db, current_user, booking_status)
    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in bookings],
        total=len(bookings),
    )
