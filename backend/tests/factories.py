"""Row builders and sample payloads shared by the test modules."""

import base64
import io
import json
import uuid
from datetime import datetime, timedelta

from PIL import Image
from sqlalchemy.ext.asyncio import AsyncSession

from beluva.models.db import FurnitureItem, RoomImage, User, UserSession

# SQLite drops tzinfo, so timestamps set in tests are naive
T0 = datetime(2026, 1, 1)


def later(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def png_bytes(width: int = 64, height: int = 48, color: str = "white") -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def jpeg_bytes(width: int = 64, height: int = 48) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", (width, height), "gray").save(buf, format="JPEG")
    return buf.getvalue()


def png_data_url() -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes()).decode("ascii")


def recommendation_json(count: int = 2, **overrides) -> str:
    """A well-formed model response with ``count`` items."""
    items = []
    for i in range(count):
        item = {
            "id": f"rec-{i + 1}",
            "name": f"Item {i + 1}",
            "description": "A nice piece",
            "price": 100.0 + i,
            "image_url": "https://images.test/item.jpg",
            "purchase_link": "https://shop.test/item",
            "reason": "Fits the room",
            "score": 0.9,
        }
        item.update(overrides)
        items.append(item)
    return json.dumps({"recommendations": items})


async def make_user(db: AsyncSession, *, is_admin: bool = False, name: str = "Dana") -> User:
    user_id = uuid.uuid4()
    user = User(id=user_id, name=name, email=f"{user_id.hex[:8]}@example.com", is_admin=is_admin)
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


async def make_room_image(db: AsyncSession, user: User, **kwargs) -> RoomImage:
    image = RoomImage(
        user_id=user.id,
        file_path=f"room-uploads/{user.id}/{uuid.uuid4()}.jpg",
        **kwargs,
    )
    db.add(image)
    await db.flush()
    await db.refresh(image)
    return image


async def make_furniture(db: AsyncSession, name: str = "Oak Sideboard", **kwargs) -> FurnitureItem:
    fields = {
        "description": "Solid oak sideboard",
        "price": 450,
        "material": "oak",
        "tags": ["storage", "rustic"],
        "image_urls": ["https://images.test/sideboard.jpg"],
        "category": "storage",
        "purchase_link": "https://shop.test/sideboard",
    }
    fields.update(kwargs)
    item = FurnitureItem(name=name, **fields)
    db.add(item)
    await db.flush()
    await db.refresh(item)
    return item


async def make_session(
    db: AsyncSession,
    user: User,
    room_image: RoomImage | None = None,
    *,
    generated_image_url: str | None = None,
    selected_furniture_ids: list[str] | None = None,
    created_at: datetime | None = None,
) -> UserSession:
    session = UserSession(
        user_id=user.id,
        uploaded_image_id=room_image.id if room_image else None,
        generated_image_url=generated_image_url,
        selected_furniture_ids=selected_furniture_ids or [],
        preferences={"budget": 1000, "style": "modern", "furniture_types": ["sofa"]},
    )
    if created_at is not None:
        session.created_at = created_at
    db.add(session)
    await db.flush()
    await db.refresh(session)
    return session
