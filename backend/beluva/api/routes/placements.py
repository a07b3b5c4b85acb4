"""Furniture placement metadata: bounding boxes inside generated images.

``generated_image_id`` is the id of the design session that holds the
generated image. Every operation requires the caller to own that session.
"""

from __future__ import annotations

import uuid

import structlog
from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.api.deps import get_owned_session
from beluva.auth import get_current_user
from beluva.database import get_db
from beluva.errors import ConflictError, InvalidRequestError, NotFoundError
from beluva.models.contracts import (
    PlacementBatchCreate,
    PlacementBox,
    PlacementCreate,
    PlacementOut,
    PlacementUpdate,
    SuccessResponse,
)
from beluva.models.db import FurnitureItem, FurniturePlacementMetadata, User, UserSession

logger = structlog.get_logger()

router = APIRouter(tags=["placements"])

_PATH = "/furniture-placement-metadata"


async def _visualized_session(db: AsyncSession, user: User, session_id: uuid.UUID) -> UserSession:
    session = await get_owned_session(db, user, session_id)
    if session.generated_image_url is None:
        raise ConflictError("Session has no generated image")
    return session


async def _check_furniture_exists(db: AsyncSession, ids: set[uuid.UUID]) -> None:
    result = await db.execute(select(FurnitureItem.id).where(FurnitureItem.id.in_(ids)))
    missing = ids - set(result.scalars())
    if missing:
        raise NotFoundError(f"Furniture items not found: {', '.join(sorted(map(str, missing)))}")


def _row(session_id: uuid.UUID, box: PlacementBox) -> FurniturePlacementMetadata:
    return FurniturePlacementMetadata(
        generated_image_id=session_id,
        furniture_id=box.furniture_id,
        x=box.x,
        y=box.y,
        width=box.width,
        height=box.height,
    )


@router.get(_PATH, response_model=SuccessResponse[list[PlacementOut]])
async def list_placements(
    generated_image_id: uuid.UUID | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if generated_image_id is None:
        raise InvalidRequestError("Missing generated_image_id parameter")
    await get_owned_session(db, current_user, generated_image_id)

    result = await db.execute(
        select(FurniturePlacementMetadata)
        .where(FurniturePlacementMetadata.generated_image_id == generated_image_id)
        .order_by(FurniturePlacementMetadata.created_at)
    )
    placements = [PlacementOut.model_validate(row) for row in result.scalars()]
    logger.info(
        "placements_listed", generated_image_id=str(generated_image_id), count=len(placements)
    )
    return SuccessResponse(data=placements)


@router.post(
    _PATH,
    status_code=201,
    response_model=SuccessResponse[PlacementOut | list[PlacementOut]],
)
async def create_placements(
    body: PlacementBatchCreate | PlacementCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create one placement, or several for the same generated image."""
    boxes: list[PlacementBox] = (
        body.placements if isinstance(body, PlacementBatchCreate) else [body]
    )
    session = await _visualized_session(db, current_user, body.generated_image_id)
    await _check_furniture_exists(db, {box.furniture_id for box in boxes})

    rows = [_row(session.id, box) for box in boxes]
    db.add_all(rows)
    await db.flush()
    for row in rows:
        await db.refresh(row)
    await db.commit()

    logger.info("placements_created", generated_image_id=str(session.id), count=len(rows))
    created = [PlacementOut.model_validate(row) for row in rows]
    if isinstance(body, PlacementBatchCreate):
        return SuccessResponse(data=created)
    return SuccessResponse(data=created[0])


@router.put(_PATH, response_model=SuccessResponse[PlacementOut])
async def update_placement(
    body: PlacementUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Overwrite a placement. Sending the same body again is a no-op."""
    placement = await db.get(FurniturePlacementMetadata, body.id)
    if placement is None:
        raise NotFoundError("Placement not found")
    # The caller must own both the current and the target session
    await get_owned_session(db, current_user, placement.generated_image_id)
    session = await _visualized_session(db, current_user, body.generated_image_id)
    await _check_furniture_exists(db, {body.furniture_id})

    placement.generated_image_id = session.id
    placement.furniture_id = body.furniture_id
    placement.x = body.x
    placement.y = body.y
    placement.width = body.width
    placement.height = body.height
    await db.flush()
    await db.refresh(placement)
    await db.commit()

    logger.info("placement_updated", placement_id=str(placement.id))
    return SuccessResponse(data=PlacementOut.model_validate(placement))
