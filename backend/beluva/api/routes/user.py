"""Per-user design history."""

from __future__ import annotations

import asyncio
import uuid

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from beluva.auth import get_current_user
from beluva.database import get_db
from beluva.models.contracts import (
    DesignSessionOut,
    FurnitureSummary,
    HistoryPage,
    Pagination,
    RoomImageOut,
    SuccessResponse,
)
from beluva.models.db import FurnitureItem, User, UserSession
from beluva.utils import storage

logger = structlog.get_logger()

router = APIRouter(prefix="/user", tags=["user"])


def _furniture_uuids(sessions: list[UserSession]) -> set[uuid.UUID]:
    ids: set[uuid.UUID] = set()
    for session in sessions:
        for raw in session.selected_furniture_ids or []:
            try:
                ids.add(uuid.UUID(str(raw)))
            except ValueError:
                continue
    return ids


async def _room_image_out(session: UserSession) -> RoomImageOut | None:
    if session.room_image is None:
        return None
    out = RoomImageOut.model_validate(session.room_image)
    out.url = await asyncio.to_thread(storage.public_url, session.room_image.file_path)
    return out


@router.get("/history", response_model=SuccessResponse[HistoryPage])
async def user_history(
    limit: int = Query(default=10, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's design sessions, newest first, with room image and furniture."""
    total = await db.scalar(
        select(func.count()).select_from(UserSession).where(UserSession.user_id == current_user.id)
    ) or 0
    result = await db.execute(
        select(UserSession)
        .where(UserSession.user_id == current_user.id)
        .options(selectinload(UserSession.room_image))
        .order_by(UserSession.created_at.desc(), UserSession.id)
        .offset(offset)
        .limit(limit)
    )
    sessions = list(result.scalars())

    furniture: dict[str, FurnitureSummary] = {}
    wanted = _furniture_uuids(sessions)
    if wanted:
        rows = await db.execute(select(FurnitureItem).where(FurnitureItem.id.in_(wanted)))
        furniture = {str(row.id): FurnitureSummary.model_validate(row) for row in rows.scalars()}

    page = []
    for session in sessions:
        out = DesignSessionOut.model_validate(session)
        out.room_image = await _room_image_out(session)
        if session.generated_image_url:
            out.generated_image_url = await asyncio.to_thread(
                storage.resolve_url, session.generated_image_url
            )
        out.furniture_items = [
            furniture[str(raw)]
            for raw in session.selected_furniture_ids or []
            if str(raw) in furniture
        ]
        page.append(out)

    logger.info("user_history_served", total=total, returned=len(page), offset=offset)
    return SuccessResponse(
        data=HistoryPage(
            sessions=page,
            pagination=Pagination(
                total=total,
                limit=limit,
                offset=offset,
                has_more=offset + limit < total,
            ),
        )
    )
