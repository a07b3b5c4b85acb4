"""Gemini provider: text completion, image analysis and image generation.

Image analysis downloads the image and sends it inline. Generated images come
back as inline bytes and are normalized to a base64 ``data:`` URL.
"""

from __future__ import annotations

import base64
from typing import Any

import httpx
import structlog
from google import genai
from google.genai import errors, types

from beluva.errors import ProviderError
from beluva.providers.base import ImageResult, ProviderName, TextResult, preview
from beluva.utils.http import ImageDownloadError, download_image

log = structlog.get_logger("beluva.providers.gemini")

# Gemini-supported aspect ratios and their numeric values (width/height)
_SUPPORTED_RATIOS: list[tuple[str, float]] = [
    ("1:1", 1.0),
    ("3:4", 3 / 4),
    ("4:3", 4 / 3),
    ("9:16", 9 / 16),
    ("16:9", 16 / 9),
]


def aspect_ratio_for(width: int, height: int) -> str:
    """Snap a requested size to the nearest Gemini-supported aspect ratio."""
    if width <= 0 or height <= 0:
        log.warning("aspect_ratio_degenerate_size", width=width, height=height)
        return "1:1"
    ratio = width / height
    return min(_SUPPORTED_RATIOS, key=lambda item: abs(ratio - item[1]))[0]


def _response_parts(response: types.GenerateContentResponse) -> list[types.Part]:
    if not response.candidates:
        return []
    content = response.candidates[0].content
    if content is None or content.parts is None:
        return []
    return list(content.parts)


def extract_text(response: types.GenerateContentResponse) -> str:
    """Join all text parts from a Gemini response."""
    texts = [part.text for part in _response_parts(response) if part.text is not None]
    return "\n".join(texts).strip()


def extract_image_data_url(response: types.GenerateContentResponse) -> str | None:
    """First inline image in a Gemini response as a data URL, or None."""
    for part in _response_parts(response):
        inline = part.inline_data
        if inline is not None and inline.data:
            mime_type = inline.mime_type or "image/png"
            encoded = base64.b64encode(inline.data).decode("ascii")
            return f"data:{mime_type};base64,{encoded}"
    return None


class GeminiProvider:
    name: ProviderName = "gemini"
    supports_image_generation = True

    def __init__(
        self,
        api_key: str,
        text_model: str,
        image_model: str,
        timeout: float,
        client: genai.Client | None = None,
    ) -> None:
        self._api_key = api_key
        self._text_model = text_model
        self._image_model = image_model
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            if not self._api_key:
                raise ProviderError(self.name, "upstream", "GOOGLE_AI_API_KEY not set")
            self._client = genai.Client(
                api_key=self._api_key,
                http_options=types.HttpOptions(timeout=int(self._timeout * 1000)),
            )
        return self._client

    async def _generate(
        self, model: str, contents: Any, config: types.GenerateContentConfig
    ) -> types.GenerateContentResponse:
        client = self._get_client()
        try:
            return await client.aio.models.generate_content(
                model=model, contents=contents, config=config
            )
        except errors.APIError as e:
            log.error("gemini_api_error", status=e.code, error=e.message)
            raise ProviderError(self.name, "upstream", str(e.message or e), status=e.code) from e
        except httpx.HTTPError as e:
            log.error("gemini_connection_error", error_type=type(e).__name__)
            raise ProviderError(self.name, "upstream", str(e) or type(e).__name__) from e

    async def complete_text(self, prompt: str, max_tokens: int, temperature: float) -> TextResult:
        log.info("gemini_text_completion", prompt=preview(prompt))
        response = await self._generate(
            self._text_model,
            prompt,
            types.GenerateContentConfig(max_output_tokens=max_tokens, temperature=temperature),
        )
        text = extract_text(response)
        if not text:
            raise ProviderError(self.name, "parse", "Response contained no text content")
        return TextResult(text=text, provider=self.name)

    async def analyze_image(self, image_url: str, prompt: str, max_tokens: int) -> TextResult:
        log.info("gemini_image_analysis", image_url=image_url[:200], prompt=preview(prompt))
        try:
            image = await download_image(image_url)
        except ImageDownloadError as e:
            log.error("gemini_image_download_failed", error=str(e))
            raise ProviderError(self.name, "upstream", str(e), status=e.status) from e

        response = await self._generate(
            self._text_model,
            [prompt, types.Part.from_bytes(data=image.data, mime_type=image.content_type)],
            types.GenerateContentConfig(max_output_tokens=max_tokens),
        )
        text = extract_text(response)
        if not text:
            raise ProviderError(self.name, "parse", "Response contained no text content")
        return TextResult(text=text, provider=self.name)

    async def generate_image(self, prompt: str, width: int, height: int) -> ImageResult:
        aspect_ratio = aspect_ratio_for(width, height)
        log.info("gemini_image_generation", prompt=preview(prompt), aspect_ratio=aspect_ratio)
        response = await self._generate(
            self._image_model,
            prompt,
            types.GenerateContentConfig(
                response_modalities=["TEXT", "IMAGE"],
                image_config=types.ImageConfig(aspect_ratio=aspect_ratio),
            ),
        )
        image_url = extract_image_data_url(response)
        if image_url is None:
            log.warning("gemini_no_image_in_response", text=extract_text(response)[:200])
            raise ProviderError(self.name, "parse", "Response contained no image")
        return ImageResult(image_url=image_url, provider=self.name)
