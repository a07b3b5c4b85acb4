"""Tests for SQLAlchemy ORM models.

Validates that:
- All models are registered with Base.metadata
- Foreign keys use the intended delete behavior
- Required indexes and check constraints exist
- Column defaults work against a real (SQLite) database
"""

import pytest
from factories import make_furniture, make_room_image, make_session, make_user
from sqlalchemy import CheckConstraint, select
from sqlalchemy.exc import IntegrityError

from beluva.models.db import (
    Base,
    FurnitureItem,
    FurniturePlacementMetadata,
    RoomImage,
    User,
    UserSession,
)


def _fk(column):
    (fk,) = column.foreign_keys
    return fk


class TestAllTablesRegistered:
    def test_table_names(self):
        """All 5 tables are registered."""
        assert set(Base.metadata.tables) == {
            "users",
            "room_images",
            "furniture_items",
            "user_sessions",
            "furniture_placement_metadata",
        }


class TestForeignKeys:
    def test_room_images_cascade_from_users(self):
        fk = _fk(RoomImage.__table__.c.user_id)
        assert fk.column.table.name == "users"
        assert fk.ondelete == "CASCADE"

    def test_sessions_cascade_from_users(self):
        assert _fk(UserSession.__table__.c.user_id).ondelete == "CASCADE"

    def test_session_room_image_is_set_null(self):
        col = UserSession.__table__.c.uploaded_image_id
        assert col.nullable
        assert _fk(col).ondelete == "SET NULL"

    def test_placements_cascade_from_sessions_and_furniture(self):
        table = FurniturePlacementMetadata.__table__
        assert _fk(table.c.generated_image_id).column.table.name == "user_sessions"
        assert _fk(table.c.generated_image_id).ondelete == "CASCADE"
        assert _fk(table.c.furniture_id).ondelete == "CASCADE"


class TestIndexesAndConstraints:
    @pytest.mark.parametrize(
        ("model", "index"),
        [
            (RoomImage, "idx_room_images_user"),
            (FurnitureItem, "idx_furniture_items_category"),
            (UserSession, "idx_user_sessions_user"),
            (FurniturePlacementMetadata, "idx_placements_generated_image"),
        ],
    )
    def test_index_exists(self, model, index):
        assert index in {i.name for i in model.__table__.indexes}

    @pytest.mark.parametrize(
        ("model", "constraint"),
        [
            (FurnitureItem, "ck_furniture_items_price_non_negative"),
            (FurniturePlacementMetadata, "ck_placements_positive_size"),
        ],
    )
    def test_check_constraint_exists(self, model, constraint):
        names = {c.name for c in model.__table__.constraints if isinstance(c, CheckConstraint)}
        assert constraint in names

    def test_email_is_unique(self):
        assert User.__table__.c.email.unique


class TestColumnDefaults:
    @pytest.mark.asyncio
    async def test_furniture_defaults(self, db_session):
        item = FurnitureItem(name="Bench", price=80)
        db_session.add(item)
        await db_session.flush()
        await db_session.refresh(item)

        assert item.id is not None
        assert item.tags == []
        assert item.image_urls == []
        assert item.stock_status is True
        assert item.purchase_link == ""
        assert item.created_at is not None

    @pytest.mark.asyncio
    async def test_session_defaults(self, db_session):
        user = await make_user(db_session)
        session = UserSession(user_id=user.id)
        db_session.add(session)
        await db_session.flush()
        await db_session.refresh(session)

        assert session.selected_furniture_ids == []
        assert session.preferences == {}
        assert session.generated_image_url is None

    @pytest.mark.asyncio
    async def test_room_image_relationship(self, db_session):
        user = await make_user(db_session)
        room = await make_room_image(db_session, user)
        session = await make_session(db_session, user, room)

        loaded = await db_session.scalar(select(UserSession).where(UserSession.id == session.id))
        assert loaded.uploaded_image_id == room.id

    @pytest.mark.asyncio
    async def test_negative_price_rejected_by_database(self, db_session):
        with pytest.raises(IntegrityError):
            await make_furniture(db_session, price=-1)
