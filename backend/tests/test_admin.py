"""Tests for the admin dashboard endpoints and activity feed."""

from collections import Counter

import pytest
from factories import later, make_furniture, make_room_image, make_session, make_user

from beluva.api.routes.admin import recent_activity


async def _user_at(db_session, minutes: int, name: str = "Dana"):
    user = await make_user(db_session, name=name)
    user.created_at = later(minutes)
    await db_session.flush()
    return user


class TestRecentActivity:
    """Merged signup/design/upload feed."""

    @pytest.mark.asyncio
    async def test_newest_first_across_kinds(self, db_session):
        u = await _user_at(db_session, 1, name="Sam")
        room = await make_room_image(db_session, u, uploaded_at=later(2))
        design = await make_session(
            db_session, u, room, generated_image_url="https://cdn.test/g.jpg", created_at=later(3)
        )
        await make_session(db_session, u, room, created_at=later(4))

        entries = await recent_activity(db_session)

        assert [e.id for e in entries] == [
            f"design-{design.id}",
            f"upload-{room.id}",
            f"signup-{u.id}",
        ]
        assert all(e.user.name == "Sam" for e in entries)

    @pytest.mark.asyncio
    async def test_capped_at_five_per_kind_and_ten_total(self, db_session):
        for i in range(6):
            u = await _user_at(db_session, i)
            await make_room_image(db_session, u, uploaded_at=later(10 + i))
            await make_session(
                db_session,
                u,
                generated_image_url="https://cdn.test/g.jpg",
                created_at=later(20 + i),
            )

        entries = await recent_activity(db_session)

        assert len(entries) == 10
        assert Counter(e.type for e in entries) == {"design": 5, "upload": 5}
        timestamps = [e.timestamp for e in entries]
        assert timestamps == sorted(timestamps, reverse=True)

    @pytest.mark.asyncio
    async def test_empty_database(self, db_session):
        assert await recent_activity(db_session) == []


class TestAdminStats:
    """GET /api/admin/stats"""

    @pytest.mark.asyncio
    async def test_counts(self, admin_client, db_session, admin, user):
        await make_furniture(db_session)
        await make_session(db_session, user)
        await make_session(db_session, user, generated_image_url="https://cdn.test/g.jpg")
        await db_session.commit()

        resp = await admin_client.get("/api/admin/stats")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["user_count"] == 2
        assert data["session_count"] == 2
        assert data["furniture_count"] == 1
        assert data["design_count"] == 1
        assert len(data["recent_activity"]) == 3

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, client):
        resp = await client.get("/api/admin/stats")
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"


class TestAdminCheck:
    """GET /api/admin/check"""

    @pytest.mark.asyncio
    async def test_regular_user(self, client):
        resp = await client.get("/api/admin/check")
        assert resp.status_code == 200
        assert resp.json() == {"success": True, "data": {"is_admin": False}}

    @pytest.mark.asyncio
    async def test_admin(self, admin_client):
        resp = await admin_client.get("/api/admin/check")
        assert resp.json()["data"]["is_admin"] is True

    @pytest.mark.asyncio
    async def test_anonymous_is_401(self, anon_client):
        resp = await anon_client.get("/api/admin/check")
        assert resp.status_code == 401
