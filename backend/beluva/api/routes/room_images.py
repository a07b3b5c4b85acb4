"""Room photo upload, lookup and deletion."""

from __future__ import annotations

import asyncio
import uuid

import structlog
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import APIRouter, Depends, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.api.deps import get_owned_room_image
from beluva.auth import get_current_user
from beluva.config import settings
from beluva.database import get_db
from beluva.errors import InvalidRequestError, PayloadTooLargeError, StorageError
from beluva.models.contracts import RoomImageOut, SuccessResponse, UploadRoomImageResponse
from beluva.models.db import RoomImage, User
from beluva.utils import storage
from beluva.utils.image import InvalidImageError, inspect_room_image

logger = structlog.get_logger()

router = APIRouter(tags=["room-images"])

_READ_CHUNK = 65_536


async def _read_limited(file: UploadFile, limit: int) -> bytes:
    """Read an upload, stopping as soon as it exceeds ``limit`` bytes."""
    chunks: list[bytes] = []
    total = 0
    while chunk := await file.read(_READ_CHUNK):
        total += len(chunk)
        if total > limit:
            mb = limit // (1024 * 1024)
            raise PayloadTooLargeError(f"File size exceeds {mb}MB limit.")
        chunks.append(chunk)
    return b"".join(chunks)


@router.post(
    "/upload-room-image",
    status_code=201,
    response_model=SuccessResponse[UploadRoomImageResponse],
)
async def upload_room_image(
    file: UploadFile,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Validate a room photo, store it and record a RoomImage row."""
    data = await _read_limited(file, settings.max_upload_bytes)
    if not data:
        raise InvalidRequestError("No file provided")

    try:
        info = await asyncio.to_thread(inspect_room_image, data, file.content_type)
    except InvalidImageError as exc:
        raise InvalidRequestError(str(exc)) from exc

    key = storage.new_key(storage.ROOM_UPLOADS_PREFIX, current_user.id, info.extension)
    try:
        await asyncio.to_thread(storage.upload_object, key, data, info.content_type)
    except (BotoCoreError, ClientError) as exc:
        logger.exception("room_image_upload_failed", key=key, size_bytes=len(data))
        raise StorageError("Failed to upload image") from exc

    room_image = RoomImage(user_id=current_user.id, file_path=key)
    try:
        db.add(room_image)
        await db.flush()
        await db.refresh(room_image)
        await db.commit()
    except SQLAlchemyError:
        logger.exception("room_image_insert_failed", key=key)
        # Remove the orphaned object
        try:
            await asyncio.to_thread(storage.delete_object, key)
        except (BotoCoreError, ClientError):
            logger.warning("room_image_orphan_cleanup_failed", key=key, exc_info=True)
        raise

    url = await asyncio.to_thread(storage.public_url, key)
    logger.info(
        "room_image_uploaded",
        room_image_id=str(room_image.id),
        content_type=info.content_type,
        width=info.width,
        height=info.height,
    )
    return SuccessResponse(data=UploadRoomImageResponse(id=room_image.id, path=key, url=url))


@router.get("/room-images/{room_image_id}", response_model=SuccessResponse[RoomImageOut])
async def get_room_image(
    room_image_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    room_image = await get_owned_room_image(db, current_user, room_image_id)
    out = RoomImageOut.model_validate(room_image)
    out.url = await asyncio.to_thread(storage.public_url, room_image.file_path)
    return SuccessResponse(data=out)


@router.delete("/room-images/{room_image_id}", response_model=SuccessResponse[dict])
async def delete_room_image(
    room_image_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Delete the row, then the stored object."""
    room_image = await get_owned_room_image(db, current_user, room_image_id)
    key = room_image.file_path
    await db.delete(room_image)
    await db.commit()

    try:
        await asyncio.to_thread(storage.delete_object, key)
    except (BotoCoreError, ClientError):
        logger.warning("room_image_object_delete_failed", key=key, exc_info=True)

    logger.info("room_image_deleted", room_image_id=str(room_image_id))
    return SuccessResponse(data={"id": str(room_image_id)})
