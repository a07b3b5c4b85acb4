"""Authentication and authorization dependencies for FastAPI routes.

Bearer tokens are issued by the hosted auth provider; this service only
verifies them. The token subject is the user id. A matching ``users`` row is
created on the first authenticated request.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.config import settings
from beluva.database import get_db
from beluva.errors import AuthenticationError, PermissionDeniedError
from beluva.models.db import User

logger = structlog.get_logger()

security = HTTPBearer(auto_error=False)


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and verify an access token. Returns None when invalid or expired."""
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
        )
    except JWTError as e:
        logger.warning("jwt_decode_failed", error=str(e))
        return None


def _display_name(claims: dict[str, Any], email: str) -> str:
    metadata = claims.get("user_metadata") or {}
    name = metadata.get("name") if isinstance(metadata, dict) else None
    return name or email.split("@", 1)[0] or "User"


async def _ensure_user(db: AsyncSession, user_id: uuid.UUID, claims: dict[str, Any]) -> User:
    """Return the mirrored user row, creating it on first sign-in."""
    user = await db.get(User, user_id)
    if user is not None:
        return user

    email = claims.get("email")
    if not email:
        raise AuthenticationError("Token has no email claim")

    user = User(id=user_id, name=_display_name(claims, email), email=email, is_admin=False)
    try:
        async with db.begin_nested():
            db.add(user)
            await db.flush()
    except IntegrityError:
        # A concurrent first request inserted the row already
        existing = await db.get(User, user_id)
        if existing is None:
            raise
        logger.info("user_mirror_raced", user_id=str(user_id))
        return existing
    await db.refresh(user)
    logger.info("user_mirrored", user_id=str(user_id))
    return user


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Dependency returning the authenticated user. Raises 401 otherwise."""
    if not credentials:
        raise AuthenticationError("Unauthorized")

    claims = decode_token(credentials.credentials)
    if not claims:
        raise AuthenticationError("Invalid or expired token")

    try:
        user_id = uuid.UUID(str(claims.get("sub")))
    except ValueError as e:
        raise AuthenticationError("Invalid token payload") from e

    user = await _ensure_user(db, user_id, claims)
    structlog.contextvars.bind_contextvars(user_id=str(user.id))
    return user


async def require_admin(current_user: User = Depends(get_current_user)) -> User:
    """Dependency requiring the admin flag. Raises 403 otherwise."""
    if not current_user.is_admin:
        logger.warning("admin_required", user_id=str(current_user.id))
        raise PermissionDeniedError("Forbidden: Admin access required")
    return current_user
