"""Duty notification endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db
from app.models.user import Profile
from app.schemas.notification import NotificationListResponse, NotificationResponse
from app.services.notification_service import notification_service

router = APIRouter()


@router.get("", response_model=NotificationListResponse)
async def get_notifications(
    current_user: Annotated[Profile, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    unread_only: bool = Query(default=False),
    schedule_id: UUID | None = Query(default=None),
    booking_id: UUID | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> NotificationListResponse:
    """Duty notifications for the current user, optionally for one schedule or booking."""
    notifications, total, unread_count = await notification_service.list_notifications(
        db,
        current_user.id,
        unread_only=unread_only,
        schedule_id=schedule_id,
        booking_id=booking_id,
        limit=page_size,
        offset=(page - 1) * page_size,
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in notifications],
        total=total,
        unread_count=unread_count,
        page=page,
        page_size=page_size,
    )


@router.patch("/{notification_id}/read", status_code=204)
async def mark_notification_read(
    notification_id: UUID,
    current_user: Annotated[Profile, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    await notification_service.mark_read(db, current_user.id, notification_id)
    await db.commit()


@router.post("/read-all", status_code=204)
async def mark_all_read(
    current_user: Annotated[Profile, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
    schedule_id: UUID | None = Query(default=None),
) -> None:
    """Mark all notifications read, or only those about one schedule."""
    await notification_service.mark_all_read(db, current_user.id, schedule_id)
    await db.commit()
