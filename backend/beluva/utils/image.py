"""Room photo validation and JPEG normalization (Pillow)."""

from __future__ import annotations

import io
from dataclasses import dataclass

import structlog
from PIL import Image

logger = structlog.get_logger()

# Pillow format name -> (extension, content type)
ALLOWED_FORMATS: dict[str, tuple[str, str]] = {
    "JPEG": ("jpg", "image/jpeg"),
    "PNG": ("png", "image/png"),
    "WEBP": ("webp", "image/webp"),
}
ALLOWED_CONTENT_TYPES = {content_type for _, content_type in ALLOWED_FORMATS.values()}


class InvalidImageError(ValueError):
    pass


@dataclass(frozen=True)
class ImageInfo:
    extension: str
    content_type: str
    width: int
    height: int


def inspect_room_image(data: bytes, declared_content_type: str | None) -> ImageInfo:
    """Check that an upload is a decodable JPG, PNG or WEBP image."""
    if declared_content_type and declared_content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidImageError("Invalid file type. Only JPG, PNG, and WEBP are allowed.")

    try:
        img = Image.open(io.BytesIO(data))
        img.load()  # Force full decode to catch truncated files
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as exc:
        logger.warning("room_image_open_failed", error=str(exc))
        raise InvalidImageError("Could not open image. Please upload a valid image file.") from exc

    fmt = (img.format or "").upper()
    if fmt not in ALLOWED_FORMATS:
        raise InvalidImageError("Invalid file type. Only JPG, PNG, and WEBP are allowed.")
    extension, content_type = ALLOWED_FORMATS[fmt]
    return ImageInfo(
        extension=extension, content_type=content_type, width=img.width, height=img.height
    )


def to_jpeg(data: bytes, quality: int = 90) -> bytes:
    """Re-encode image bytes as JPEG. JPEG input is returned unchanged."""
    img = Image.open(io.BytesIO(data))
    if img.format == "JPEG":
        return data
    buf = io.BytesIO()
    img.convert("RGB").save(buf, format="JPEG", quality=quality)
    return buf.getvalue()
