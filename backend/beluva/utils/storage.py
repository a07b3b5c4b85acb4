"""Object storage client wrapper (S3-compatible API).

Provides upload, URL resolution and deletion for room photos and generated
visualizations. Storage key convention:
    room-uploads/{user_id}/{uuid}.jpg
    generated-rooms/{user_id}/{uuid}.jpg
"""

from __future__ import annotations

import uuid
from typing import Any

import boto3
import structlog
from botocore.config import Config
from botocore.exceptions import ClientError

from beluva.config import settings

logger = structlog.get_logger()

ROOM_UPLOADS_PREFIX = "room-uploads"
GENERATED_ROOMS_PREFIX = "generated-rooms"


def _build_client() -> Any:
    """Create an S3 client pointed at the configured endpoint."""
    return boto3.client(
        "s3",
        endpoint_url=settings.storage_endpoint_url or None,
        aws_access_key_id=settings.storage_access_key_id,
        aws_secret_access_key=settings.storage_secret_access_key,
        config=Config(signature_version="s3v4"),
        region_name="auto",
    )


_client: Any = None


def _get_client() -> Any:
    """Lazy-init singleton client."""
    global _client  # noqa: PLW0603
    if _client is None:
        _client = _build_client()
    return _client


def reset_client() -> None:
    """Reset the singleton client (for testing)."""
    global _client  # noqa: PLW0603
    _client = None


def new_key(prefix: str, user_id: uuid.UUID | str, extension: str = "jpg") -> str:
    """Fresh unique key scoped to a user."""
    return f"{prefix}/{user_id}/{uuid.uuid4()}.{extension.lstrip('.').lower()}"


def upload_object(key: str, data: bytes, content_type: str = "image/jpeg") -> str:
    """Upload bytes. Returns the storage key."""
    client = _get_client()
    client.put_object(
        Bucket=settings.storage_bucket_name,
        Key=key,
        Body=data,
        ContentType=content_type,
    )
    logger.info("storage_upload", key=key, size=len(data), content_type=content_type)
    return key


def generate_presigned_url(key: str) -> str:
    """Generate a pre-signed GET URL, valid for ``presigned_url_expiry_seconds``."""
    client = _get_client()
    try:
        url: str = client.generate_presigned_url(
            "get_object",
            Params={"Bucket": settings.storage_bucket_name, "Key": key},
            ExpiresIn=settings.presigned_url_expiry_seconds,
        )
    except ClientError as e:
        logger.error("storage_presign_failed", key=key, error=str(e))
        raise
    return url


def public_url(key: str) -> str:
    """Publicly addressable URL for a key.

    Uses the public base URL when the bucket is served publicly, otherwise a
    pre-signed URL.
    """
    if settings.storage_public_base_url:
        return f"{settings.storage_public_base_url.rstrip('/')}/{key}"
    return generate_presigned_url(key)


def resolve_url(key_or_url: str) -> str:
    """Convert a storage key to a URL; pass through existing URLs."""
    if key_or_url.startswith(("http://", "https://")):
        return key_or_url
    return public_url(key_or_url)


def delete_object(key: str) -> None:
    """Delete a single object."""
    client = _get_client()
    client.delete_object(Bucket=settings.storage_bucket_name, Key=key)
    logger.info("storage_delete", key=key)


def head_bucket() -> None:
    """Raise if the configured bucket is not reachable."""
    _get_client().head_bucket(Bucket=settings.storage_bucket_name)
