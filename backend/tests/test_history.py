"""Tests for GET /api/user/history."""

import pytest
from factories import later, make_furniture, make_room_image, make_session

from beluva.config import settings

HISTORY = "/api/user/history"


class TestUserHistory:
    """Pagination, ordering, ownership and embedded details."""

    @pytest.mark.asyncio
    async def test_newest_first_with_pagination(self, client, db_session, user):
        first = await make_session(db_session, user, created_at=later(1))
        second = await make_session(db_session, user, created_at=later(2))
        third = await make_session(db_session, user, created_at=later(3))
        await db_session.commit()

        page1 = (await client.get(HISTORY, params={"limit": 2})).json()["data"]
        page2 = (await client.get(HISTORY, params={"limit": 2, "offset": 2})).json()["data"]

        assert [s["id"] for s in page1["sessions"]] == [str(third.id), str(second.id)]
        assert page1["pagination"] == {"total": 3, "limit": 2, "offset": 0, "has_more": True}
        assert [s["id"] for s in page2["sessions"]] == [str(first.id)]
        assert page2["pagination"]["has_more"] is False

    @pytest.mark.asyncio
    async def test_default_limit_is_ten(self, client):
        resp = await client.get(HISTORY)
        assert resp.status_code == 200
        assert resp.json()["data"]["pagination"] == {
            "total": 0,
            "limit": 10,
            "offset": 0,
            "has_more": False,
        }

    @pytest.mark.asyncio
    async def test_only_own_sessions(self, client, db_session, user, other_user):
        mine = await make_session(db_session, user)
        await make_session(db_session, other_user)
        await db_session.commit()

        data = (await client.get(HISTORY)).json()["data"]

        assert [s["id"] for s in data["sessions"]] == [str(mine.id)]
        assert data["pagination"]["total"] == 1

    @pytest.mark.asyncio
    async def test_embeds_room_image_and_furniture(self, client, db_session, user):
        room = await make_room_image(db_session, user)
        sofa = await make_furniture(db_session, "Linen Sofa", price=900)
        await make_session(
            db_session,
            user,
            room,
            generated_image_url="https://cdn.test/generated.jpg",
            selected_furniture_ids=[str(sofa.id), "no-longer-a-uuid"],
        )
        await db_session.commit()

        session = (await client.get(HISTORY)).json()["data"]["sessions"][0]

        assert session["room_image"]["id"] == str(room.id)
        assert session["room_image"]["url"] == f"https://cdn.test/{room.file_path}"
        assert session["generated_image_url"] == "https://cdn.test/generated.jpg"
        assert session["furniture_items"] == [
            {
                "id": str(sofa.id),
                "name": "Linen Sofa",
                "price": 900.0,
                "image_urls": ["https://images.test/sideboard.jpg"],
            }
        ]

    @pytest.mark.asyncio
    async def test_session_without_room_image(self, client, db_session, user):
        await make_session(db_session, user)
        await db_session.commit()

        session = (await client.get(HISTORY)).json()["data"]["sessions"][0]

        assert session["room_image"] is None
        assert session["furniture_items"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"offset": -1}])
    async def test_out_of_range_params_are_400(self, client, params):
        resp = await client.get(HISTORY, params=params)
        assert resp.status_code == 400


class TestGeneratedImageUrls:
    """Stored storage keys are turned into URLs when the history is served."""

    @pytest.mark.asyncio
    async def test_key_resolved_with_public_base(self, client, db_session, user):
        await make_session(db_session, user, generated_image_url="generated-rooms/u/a.jpg")
        await db_session.commit()

        session = (await client.get(HISTORY)).json()["data"]["sessions"][0]

        assert session["generated_image_url"] == "https://cdn.test/generated-rooms/u/a.jpg"

    @pytest.mark.asyncio
    async def test_key_presigned_on_each_read(
        self, client, db_session, user, mock_s3, monkeypatch
    ):
        monkeypatch.setattr(settings, "storage_public_base_url", "")
        mock_s3.generate_presigned_url.return_value = "https://s3.test/fresh-signature"
        await make_session(db_session, user, generated_image_url="generated-rooms/u/a.jpg")
        await db_session.commit()

        session = (await client.get(HISTORY)).json()["data"]["sessions"][0]

        assert session["generated_image_url"] == "https://s3.test/fresh-signature"
        params = mock_s3.generate_presigned_url.call_args.kwargs["Params"]
        assert params["Key"] == "generated-rooms/u/a.jpg"
