"""Admin panel endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db
from app.core.permissions import require_duty_log_access
from app.models.admin import DutyLog
from app.models.user import Profile
from app.schemas.audit import DutyLogResponse

router = APIRouter()


# ============ DUTY LOGS ============


@router.get("/duty-logs")
async def get_duty_logs(
    admin: Annotated[Profile, Depends(require_duty_log_access)],
    db: Annotated[AsyncSession, Depends(get_db)],
    schedule_id: UUID | None = Query(default=None),
    action: str | None = Query(default=None, max_length=50),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=100),
) -> dict:
    """Get the latest duty log entries."""
    query = select(DutyLog).order_by(DutyLog.created_at.desc())
    if schedule_id:
        query = query.where(DutyLog.schedule_id == schedule_id)
    if action:
        query = query.where(DutyLog.action == action)

    # Count
    count_result = await db.execute(select(func.count()).select_from(query.subquery()))
    total = count_result.scalar() or 0

    # Pagination
    offset = (page - 1) * page_size
    query = query.offset(offset).limit(page_size)

    result = await db.execute(query)
    logs = result.scalars().all()

    return {
        "logs": [DutyLogResponse.model_validate(log).model_dump(mode="json") for log in logs],
        "total": total,
        "page": page,
        "page_size": page_size,
    }
