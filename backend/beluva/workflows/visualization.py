"""Room visualization workflow.

catalog items + room image -> composition prompt -> provider image
generation -> download -> JPEG -> object storage -> design session upsert.

The session write is best effort: a generated image is never discarded
because bookkeeping failed. The outcome carries both results separately.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass

import structlog
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ProviderError,
    VisualizationGenerationError,
)
from beluva.models.db import (
    FurnitureItem,
    FurniturePlacementMetadata,
    RoomImage,
    User,
    UserSession,
)
from beluva.providers.service import LLMService
from beluva.utils import storage
from beluva.utils.http import ImageDownloadError, download_image
from beluva.utils.image import to_jpeg

log = structlog.get_logger("beluva.visualization")

OUTPUT_WIDTH = 1024
OUTPUT_HEIGHT = 768


@dataclass(frozen=True)
class SessionWrite:
    session_id: uuid.UUID | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class VisualizationOutcome:
    url: str
    session_write: SessionWrite


def _unique(ids: list[uuid.UUID]) -> list[uuid.UUID]:
    return list(dict.fromkeys(ids))


async def load_catalog_items(db: AsyncSession, ids: list[uuid.UUID]) -> list[FurnitureItem]:
    """Fetch catalog rows in request order. Raises NotFoundError if any id is unknown."""
    wanted = _unique(ids)
    result = await db.execute(select(FurnitureItem).where(FurnitureItem.id.in_(wanted)))
    by_id = {item.id: item for item in result.scalars()}
    missing = [str(i) for i in wanted if i not in by_id]
    if missing:
        raise NotFoundError(f"Furniture items not found: {', '.join(missing)}")
    return [by_id[i] for i in wanted]


async def load_target_session(
    db: AsyncSession, user: User, room_image: RoomImage, session_id: uuid.UUID | None
) -> UserSession | None:
    """Resolve an explicitly named design session.

    The session must belong to the caller and either be about the same room
    image or not be tied to one yet.
    """
    if session_id is None:
        return None
    row = await db.get(UserSession, session_id)
    if row is None:
        raise NotFoundError("Session not found")
    if row.user_id != user.id:
        raise PermissionDeniedError("Forbidden: You don't own this session")
    if row.uploaded_image_id is not None and row.uploaded_image_id != room_image.id:
        raise ConflictError("Session belongs to a different room image")
    return row


def build_visualization_prompt(room_image_url: str, items: list[FurnitureItem]) -> str:
    lines = []
    for item in items:
        image_url = item.image_urls[0] if item.image_urls else "none"
        lines.append(
            f"- {item.name}: {item.description or 'no description'} "
            f"(price ${float(item.price):.2f}, material: {item.material or 'unspecified'}, "
            f"reference image: {image_url})"
        )
    furniture = "\n".join(lines)
    return (
        "Create a photorealistic interior design visualization of the room shown in this "
        f"image: {room_image_url}\n\n"
        "Place the following furniture items naturally in the room:\n"
        f"{furniture}\n\n"
        "Keep the room's existing architecture, lighting and overall style. Position "
        "each item at a realistic scale with correct perspective and shadows. Do not "
        "add furniture that is not listed."
    )


async def _find_reusable_session(
    db: AsyncSession, user: User, room_image: RoomImage
) -> UserSession | None:
    """Newest session for this room image that has no visualization yet."""
    result = await db.execute(
        select(UserSession)
        .where(
            UserSession.user_id == user.id,
            UserSession.uploaded_image_id == room_image.id,
            UserSession.generated_image_url.is_(None),
        )
        .order_by(UserSession.created_at.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _write_session(
    db: AsyncSession,
    user: User,
    room_image: RoomImage,
    furniture_ids: list[uuid.UUID],
    image_key: str,
    target: UserSession | None,
) -> SessionWrite:
    """Point a design session at the new image.

    The storage key is stored rather than a URL, since presigned URLs
    expire. Hotspots placed on a previous image of the session are removed.
    """
    try:
        async with db.begin_nested():
            row = target or await _find_reusable_session(db, user, room_image)
            if row is None:
                row = UserSession(
                    user_id=user.id,
                    uploaded_image_id=room_image.id,
                    preferences={},
                )
                db.add(row)
            elif row.generated_image_url is not None:
                await db.execute(
                    delete(FurniturePlacementMetadata).where(
                        FurniturePlacementMetadata.generated_image_id == row.id
                    )
                )
            row.uploaded_image_id = room_image.id
            row.selected_furniture_ids = [str(i) for i in furniture_ids]
            row.generated_image_url = image_key
            await db.flush()
            session_id = row.id
    except SQLAlchemyError as exc:
        log.error("visualization_session_write_failed", error=str(exc))
        return SessionWrite(session_id=None, error="Failed to save design session")
    return SessionWrite(session_id=session_id)


async def generate_visualization(
    db: AsyncSession,
    llm: LLMService,
    user: User,
    room_image: RoomImage,
    furniture_item_ids: list[uuid.UUID],
    session_id: uuid.UUID | None = None,
) -> VisualizationOutcome:
    """Render the selected catalog items into the user's room photo.

    Unknown furniture ids and foreign sessions are rejected before any
    provider call.
    """
    ids = _unique(furniture_item_ids)
    items = await load_catalog_items(db, ids)
    target = await load_target_session(db, user, room_image, session_id)

    room_url = await asyncio.to_thread(storage.public_url, room_image.file_path)
    prompt = build_visualization_prompt(room_url, items)
    log.info(
        "visualization_requested",
        room_image_id=str(room_image.id),
        furniture_count=len(items),
        provider=llm.provider_name,
    )

    try:
        generated = await llm.generate_image(prompt, width=OUTPUT_WIDTH, height=OUTPUT_HEIGHT)
        image = await download_image(generated.image_url)
        jpeg = await asyncio.to_thread(to_jpeg, image.data)
        key = storage.new_key(storage.GENERATED_ROOMS_PREFIX, user.id)
        await asyncio.to_thread(storage.upload_object, key, jpeg, "image/jpeg")
        url = await asyncio.to_thread(storage.public_url, key)
    except (
        ProviderError,
        ImageDownloadError,
        OSError,
        Image.DecompressionBombError,
        BotoCoreError,
        ClientError,
    ) as exc:
        log.error(
            "visualization_generation_failed",
            error=str(exc),
            error_type=type(exc).__name__,
        )
        raise VisualizationGenerationError("Failed to generate room visualization") from exc

    session_write = await _write_session(db, user, room_image, ids, key, target)
    log.info(
        "visualization_complete",
        room_image_id=str(room_image.id),
        provider=generated.provider,
        session_id=str(session_write.session_id) if session_write.session_id else None,
        session_ok=session_write.ok,
    )
    return VisualizationOutcome(url=url, session_write=session_write)
