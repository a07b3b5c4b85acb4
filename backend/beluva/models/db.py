"""SQLAlchemy ORM models for Beluva.

List and JSON columns use JSON with a JSONB variant on PostgreSQL so the
same models also run against SQLite.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    room_images: Mapped[list["RoomImage"]] = relationship(
        back_populates="user", cascade="all, delete"
    )
    sessions: Mapped[list["UserSession"]] = relationship(
        back_populates="user", cascade="all, delete"
    )


class RoomImage(Base):
    __tablename__ = "room_images"
    __table_args__ = (Index("idx_room_images_user", "user_id", "uploaded_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped["User"] = relationship(back_populates="room_images")


class FurnitureItem(Base):
    __tablename__ = "furniture_items"
    __table_args__ = (
        Index("idx_furniture_items_category", "category"),
        CheckConstraint("price >= 0", name="ck_furniture_items_price_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, default="", nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    dimensions: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    material: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    tags: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    image_urls: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    stock_status: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    category: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    purchase_link: Mapped[str] = mapped_column(Text, default="", nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


class UserSession(Base):
    """A design session: room image + preferences + optional visualization."""

    __tablename__ = "user_sessions"
    __table_args__ = (Index("idx_user_sessions_user", "user_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    uploaded_image_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("room_images.id", ondelete="SET NULL"), nullable=True
    )
    selected_furniture_ids: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    # Storage key of the visualization, resolved to a URL when served
    generated_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    preferences: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    user: Mapped["User"] = relationship(back_populates="sessions")
    room_image: Mapped["RoomImage | None"] = relationship()
    placements: Mapped[list["FurniturePlacementMetadata"]] = relationship(
        back_populates="session", cascade="all, delete"
    )


class FurniturePlacementMetadata(Base):
    __tablename__ = "furniture_placement_metadata"
    __table_args__ = (
        Index("idx_placements_generated_image", "generated_image_id"),
        CheckConstraint("width > 0 AND height > 0", name="ck_placements_positive_size"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    generated_image_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("user_sessions.id", ondelete="CASCADE"), nullable=False
    )
    furniture_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("furniture_items.id", ondelete="CASCADE"), nullable=False
    )
    x: Mapped[float] = mapped_column(Float, nullable=False)
    y: Mapped[float] = mapped_column(Float, nullable=False)
    width: Mapped[float] = mapped_column(Float, nullable=False)
    height: Mapped[float] = mapped_column(Float, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    session: Mapped["UserSession"] = relationship(back_populates="placements")
