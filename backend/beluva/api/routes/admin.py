"""Admin dashboard endpoints."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.auth import get_current_user, require_admin
from beluva.database import get_db
from beluva.models.contracts import (
    ActivityEntry,
    ActivityUser,
    AdminCheckResponse,
    AdminStats,
    SuccessResponse,
)
from beluva.models.db import FurnitureItem, RoomImage, User, UserSession

logger = structlog.get_logger()

router = APIRouter(prefix="/admin", tags=["admin"])

RECENT_PER_KIND = 5
RECENT_ACTIVITY_LIMIT = 10


async def _count(db: AsyncSession, stmt) -> int:
    return (await db.scalar(stmt)) or 0


async def recent_activity(db: AsyncSession) -> list[ActivityEntry]:
    """Latest signups, designs and uploads merged newest first."""
    signups = await db.execute(
        select(User.id, User.name, User.created_at)
        .order_by(User.created_at.desc())
        .limit(RECENT_PER_KIND)
    )
    designs = await db.execute(
        select(UserSession.id, UserSession.created_at, User.id, User.name)
        .join(User, UserSession.user_id == User.id)
        .where(UserSession.generated_image_url.is_not(None))
        .order_by(UserSession.created_at.desc())
        .limit(RECENT_PER_KIND)
    )
    uploads = await db.execute(
        select(RoomImage.id, RoomImage.uploaded_at, User.id, User.name)
        .join(User, RoomImage.user_id == User.id)
        .order_by(RoomImage.uploaded_at.desc())
        .limit(RECENT_PER_KIND)
    )

    entries = [
        ActivityEntry(
            id=f"signup-{user_id}",
            type="signup",
            user=ActivityUser(id=user_id, name=name),
            timestamp=created_at,
        )
        for user_id, name, created_at in signups
    ]
    entries += [
        ActivityEntry(
            id=f"design-{session_id}",
            type="design",
            user=ActivityUser(id=user_id, name=name),
            timestamp=created_at,
        )
        for session_id, created_at, user_id, name in designs
    ]
    entries += [
        ActivityEntry(
            id=f"upload-{image_id}",
            type="upload",
            user=ActivityUser(id=user_id, name=name),
            timestamp=uploaded_at,
        )
        for image_id, uploaded_at, user_id, name in uploads
    ]
    entries.sort(key=lambda entry: entry.timestamp, reverse=True)
    return entries[:RECENT_ACTIVITY_LIMIT]


@router.get("/stats", response_model=SuccessResponse[AdminStats])
async def admin_stats(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    stats = AdminStats(
        user_count=await _count(db, select(func.count()).select_from(User)),
        session_count=await _count(db, select(func.count()).select_from(UserSession)),
        furniture_count=await _count(db, select(func.count()).select_from(FurnitureItem)),
        design_count=await _count(
            db,
            select(func.count())
            .select_from(UserSession)
            .where(UserSession.generated_image_url.is_not(None)),
        ),
        recent_activity=await recent_activity(db),
    )
    logger.info("admin_stats_served", admin_id=str(admin.id))
    return SuccessResponse(data=stats)


@router.get("/check", response_model=SuccessResponse[AdminCheckResponse])
async def admin_check(current_user: User = Depends(get_current_user)):
    """Whether the caller is an admin. Any signed-in user may ask."""
    return SuccessResponse(data=AdminCheckResponse(is_admin=current_user.is_admin))
