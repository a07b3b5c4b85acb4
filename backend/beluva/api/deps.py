"""Shared route dependencies and ownership checks."""

from __future__ import annotations

import uuid

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.errors import NotFoundError, PermissionDeniedError
from beluva.models.db import RoomImage, User, UserSession
from beluva.providers.service import LLMService


def get_llm_service(request: Request) -> LLMService:
    """The provider service built at startup."""
    return request.app.state.llm


async def get_owned_room_image(db: AsyncSession, user: User, room_image_id: uuid.UUID) -> RoomImage:
    room_image = await db.get(RoomImage, room_image_id)
    if room_image is None:
        raise NotFoundError("Room image not found")
    if room_image.user_id != user.id:
        raise PermissionDeniedError("Forbidden: You don't own this room image")
    return room_image


async def get_owned_session(db: AsyncSession, user: User, session_id: uuid.UUID) -> UserSession:
    session = await db.get(UserSession, session_id)
    if session is None:
        raise NotFoundError("Session not found")
    if session.user_id != user.id:
        raise PermissionDeniedError("Forbidden: You don't own this session")
    return session
