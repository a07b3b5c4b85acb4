"""Image download helpers.

Used by the Gemini provider (inline image input) and the visualization
workflow (re-uploading generated images). Accepts http(s) and base64
``data:`` URLs.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass

import httpx

DOWNLOAD_TIMEOUT = 30.0


class ImageDownloadError(Exception):
    """An image could not be downloaded or decoded."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class DownloadedImage:
    data: bytes
    content_type: str


def decode_data_url(url: str) -> DownloadedImage:
    """Decode a ``data:<mime>;base64,<payload>`` URL."""
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ImageDownloadError("Malformed data URL")
    content_type = header[len("data:") :].split(";", 1)[0] or "application/octet-stream"
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ImageDownloadError("Data URL payload is not valid base64") from exc
    return DownloadedImage(data=data, content_type=content_type)


async def fetch_image(client: httpx.AsyncClient, url: str) -> DownloadedImage:
    """Fetch a single image using the given HTTP client."""
    if url.startswith("data:"):
        return decode_data_url(url)

    try:
        response = await client.get(url, timeout=DOWNLOAD_TIMEOUT, follow_redirects=True)
    except httpx.TimeoutException as exc:
        raise ImageDownloadError(f"Timeout downloading image: {url[:100]}") from exc
    except httpx.RequestError as exc:
        raise ImageDownloadError(
            f"Network error downloading image: {url[:100]}: {type(exc).__name__}"
        ) from exc

    if response.status_code >= 400:
        raise ImageDownloadError(
            f"HTTP {response.status_code} downloading image: {url[:100]}",
            status=response.status_code,
        )

    content_type = response.headers.get("content-type", "").split(";", 1)[0].strip()
    if content_type and not content_type.startswith("image/"):
        raise ImageDownloadError(f"Expected image content-type, got: {content_type}")
    if not response.content:
        raise ImageDownloadError(f"Empty image body: {url[:100]}")

    return DownloadedImage(data=response.content, content_type=content_type or "image/jpeg")


async def download_image(url: str) -> DownloadedImage:
    """Download an image from a URL."""
    async with httpx.AsyncClient() as client:
        return await fetch_image(client, url)
