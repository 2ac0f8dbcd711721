"""Verification of access tokens issued by the external auth service."""

from typing import Any

from jose import JWTError, jwt

from app.config import settings
from app.core.exceptions import AuthenticationError


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT access token."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
        )
    except JWTError as e:
        raise AuthenticationError(f"Token validation failed: {str(e)}")

    if not payload.get("sub"):
        raise AuthenticationError("Invalid token payload")
    return payload
