"""Furniture catalog: public reads, admin-only writes."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import String, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.auth import get_current_user, require_admin
from beluva.database import get_db
from beluva.errors import ConflictError, InvalidRequestError, NotFoundError
from beluva.models.contracts import (
    FurnitureCreate,
    FurnitureItemOut,
    FurnitureUpdate,
    SuccessResponse,
)
from beluva.models.db import FurnitureItem, User, UserSession

logger = structlog.get_logger()

router = APIRouter(prefix="/furniture", tags=["furniture"])


def parse_id_list(raw: str) -> list[uuid.UUID]:
    """Parse a comma-separated id list. Raises InvalidRequestError on a bad id."""
    ids = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(uuid.UUID(part))
        except ValueError as exc:
            raise InvalidRequestError(f"Invalid furniture id: {part}") from exc
    return ids


def _column_values(data: dict[str, Any]) -> dict[str, Any]:
    """Convert validated request fields to column values."""
    if "price" in data and data["price"] is not None:
        data["price"] = Decimal(str(data["price"]))
    if "purchase_link" in data and data["purchase_link"] is None:
        data["purchase_link"] = ""
    return data


async def _get_item(db: AsyncSession, item_id: uuid.UUID) -> FurnitureItem:
    item = await db.get(FurnitureItem, item_id)
    if item is None:
        raise NotFoundError("Furniture item not found")
    return item


@router.get("", response_model=SuccessResponse[list[FurnitureItemOut]])
async def list_furniture(
    ids: str | None = None,
    category: str | None = None,
    search: str | None = None,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List catalog items, optionally filtered by ids, category or search term.

    ``search`` matches name or description (case-insensitive substring) or an
    exact tag.
    """
    stmt = select(FurnitureItem)
    if ids:
        id_list = parse_id_list(ids)
        if not id_list:
            return SuccessResponse(data=[])
        stmt = stmt.where(FurnitureItem.id.in_(id_list))
    if category:
        stmt = stmt.where(FurnitureItem.category == category)
    if search:
        stmt = stmt.where(
            or_(
                FurnitureItem.name.icontains(search, autoescape=True),
                FurnitureItem.description.icontains(search, autoescape=True),
                cast(FurnitureItem.tags, String).icontains(f'"{search}"', autoescape=True),
            )
        )
    result = await db.execute(stmt.order_by(FurnitureItem.name))
    return SuccessResponse(data=[FurnitureItemOut.model_validate(row) for row in result.scalars()])


@router.get("/{item_id}", response_model=SuccessResponse[FurnitureItemOut])
async def get_furniture(
    item_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    item = await _get_item(db, item_id)
    return SuccessResponse(data=FurnitureItemOut.model_validate(item))


@router.post("", status_code=201, response_model=SuccessResponse[FurnitureItemOut])
async def create_furniture(
    body: FurnitureCreate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    item = FurnitureItem(**_column_values(body.model_dump(mode="json")))
    db.add(item)
    await db.flush()
    await db.refresh(item)
    await db.commit()
    logger.info("furniture_created", furniture_id=str(item.id), admin_id=str(admin.id))
    return SuccessResponse(data=FurnitureItemOut.model_validate(item))


@router.put("/{item_id}", response_model=SuccessResponse[FurnitureItemOut])
async def update_furniture(
    item_id: uuid.UUID,
    body: FurnitureUpdate,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Partial update: only fields present in the body are written."""
    item = await _get_item(db, item_id)
    # Explicit nulls clear purchase_link and are ignored for required columns
    changes = {
        field: value
        for field, value in body.model_dump(mode="json", exclude_unset=True).items()
        if value is not None or field == "purchase_link"
    }
    for field, value in _column_values(changes).items():
        setattr(item, field, value)
    await db.flush()
    await db.refresh(item)
    await db.commit()
    logger.info("furniture_updated", furniture_id=str(item.id), admin_id=str(admin.id))
    return SuccessResponse(data=FurnitureItemOut.model_validate(item))


@router.delete("/{item_id}", response_model=SuccessResponse[dict])
async def delete_furniture(
    item_id: uuid.UUID,
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a catalog item unless a design session still references it."""
    item = await _get_item(db, item_id)
    referenced = await db.scalar(
        select(UserSession.id)
        .where(cast(UserSession.selected_furniture_ids, String).contains(f'"{item_id}"'))
        .limit(1)
    )
    if referenced is not None:
        raise ConflictError("Furniture item is referenced by a design session")

    await db.delete(item)
    await db.commit()
    logger.info("furniture_deleted", furniture_id=str(item_id), admin_id=str(admin.id))
    return SuccessResponse(data={"id": str(item_id)})
