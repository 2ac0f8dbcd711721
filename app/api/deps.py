"""API dependencies for authentication and common operations."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuthenticationError
from app.core.security import verify_token
from app.database import get_db
from app.models.user import Profile

# Security scheme
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> Profile:
    """Get the current user's profile from the auth service's JWT."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    payload = verify_token(credentials.credentials)
    try:
        user_id = UUID(payload["sub"])
    except ValueError:
        raise AuthenticationError("Invalid token subject")

    result = await db.execute(select(Profile).where(Profile.id == user_id))
    user = result.scalar_one_or_none()

    if not user:
        raise AuthenticationError("Profile not found")
    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user


__all__ = ["get_current_user", "get_db"]
