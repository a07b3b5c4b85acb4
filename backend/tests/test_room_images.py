"""Tests for room photo upload, lookup and deletion."""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from botocore.exceptions import ClientError
from factories import jpeg_bytes, make_room_image, png_bytes
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from beluva.config import settings
from beluva.models.db import RoomImage

UPLOAD = "/api/upload-room-image"


def _file(data: bytes, name: str = "room.png", content_type: str = "image/png") -> dict:
    return {"file": (name, data, content_type)}


class TestUploadRoomImage:
    """POST /api/upload-room-image"""

    @pytest.mark.asyncio
    async def test_png_upload(self, client, db_session, user, mock_s3):
        resp = await client.post(UPLOAD, files=_file(png_bytes()))

        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["path"].startswith(f"room-uploads/{user.id}/")
        assert data["path"].endswith(".png")
        assert data["url"] == f"https://cdn.test/{data['path']}"

        put = mock_s3.put_object.call_args.kwargs
        assert put["Key"] == data["path"]
        assert put["ContentType"] == "image/png"

        row = await db_session.get(RoomImage, uuid.UUID(data["id"]))
        assert row.user_id == user.id
        assert row.file_path == data["path"]

    @pytest.mark.asyncio
    async def test_jpeg_upload_uses_jpg_extension(self, client):
        resp = await client.post(UPLOAD, files=_file(jpeg_bytes(), "room.jpeg", "image/jpeg"))
        assert resp.status_code == 201
        assert resp.json()["data"]["path"].endswith(".jpg")

    @pytest.mark.asyncio
    async def test_disallowed_type_is_400(self, client, mock_s3):
        resp = await client.post(UPLOAD, files=_file(b"GIF89a....", "anim.gif", "image/gif"))

        assert resp.status_code == 400
        assert "Only JPG, PNG, and WEBP" in resp.json()["error"]["message"]
        mock_s3.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_undecodable_image_is_400(self, client):
        resp = await client.post(UPLOAD, files=_file(b"definitely not a png"))
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_file_is_400(self, client):
        resp = await client.post(UPLOAD, data={"other": "x"})
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_oversize_is_413(self, client, monkeypatch, mock_s3):
        monkeypatch.setattr(settings, "max_upload_bytes", 100)

        resp = await client.post(UPLOAD, files=_file(b"x" * 500))

        assert resp.status_code == 413
        assert resp.json()["error"]["code"] == "file_too_large"
        mock_s3.put_object.assert_not_called()

    @pytest.mark.asyncio
    async def test_storage_failure_is_500(self, client, db_session, mock_s3):
        mock_s3.put_object.side_effect = ClientError(
            {"Error": {"Code": "500", "Message": "boom"}}, "PutObject"
        )

        resp = await client.post(UPLOAD, files=_file(png_bytes()))

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "storage_error"
        assert (await db_session.execute(select(RoomImage))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_db_failure_deletes_uploaded_object(self, client, db_session, mock_s3):
        failing_flush = AsyncMock(side_effect=OperationalError("INSERT", {}, Exception("down")))
        with patch.object(db_session, "flush", failing_flush):
            resp = await client.post(UPLOAD, files=_file(png_bytes()))

        assert resp.status_code == 500
        assert resp.json()["error"]["code"] == "internal_error"
        uploaded_key = mock_s3.put_object.call_args.kwargs["Key"]
        mock_s3.delete_object.assert_called_once_with(
            Bucket=settings.storage_bucket_name, Key=uploaded_key
        )

    @pytest.mark.asyncio
    async def test_requires_session(self, anon_client):
        resp = await anon_client.post(UPLOAD, files=_file(png_bytes()))
        assert resp.status_code == 401


class TestRoomImageById:
    """GET and DELETE /api/room-images/{id}"""

    @pytest.mark.asyncio
    async def test_get_own_image(self, client, db_session, user):
        image = await make_room_image(db_session, user)
        await db_session.commit()

        resp = await client.get(f"/api/room-images/{image.id}")

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["id"] == str(image.id)
        assert data["url"] == f"https://cdn.test/{image.file_path}"

    @pytest.mark.asyncio
    async def test_get_foreign_image_is_403(self, client, db_session, other_user):
        image = await make_room_image(db_session, other_user)
        await db_session.commit()

        resp = await client.get(f"/api/room-images/{image.id}")

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_get_missing_is_404(self, client):
        resp = await client.get(f"/api/room-images/{uuid.uuid4()}")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, client):
        resp = await client.get("/api/room-images/not-a-uuid")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_removes_row_and_object(self, client, db_session, user, mock_s3):
        image = await make_room_image(db_session, user)
        await db_session.commit()
        key = image.file_path

        resp = await client.delete(f"/api/room-images/{image.id}")

        assert resp.status_code == 200
        assert (await db_session.execute(select(RoomImage))).scalars().all() == []
        mock_s3.delete_object.assert_called_once_with(
            Bucket=settings.storage_bucket_name, Key=key
        )

    @pytest.mark.asyncio
    async def test_delete_foreign_image_is_403(self, client, db_session, other_user, mock_s3):
        image = await make_room_image(db_session, other_user)
        await db_session.commit()

        resp = await client.delete(f"/api/room-images/{image.id}")

        assert resp.status_code == 403
        mock_s3.delete_object.assert_not_called()
