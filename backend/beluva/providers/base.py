from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Protocol

ProviderName = Literal["anthropic", "gemini"]
PROVIDER_NAMES: tuple[ProviderName, ...] = ("anthropic", "gemini")

DEFAULT_MAX_TOKENS = 1024
DEFAULT_TEMPERATURE = 0.7
DEFAULT_IMAGE_SIZE = 1024


@dataclass(frozen=True)
class TextResult:
    text: str
    provider: ProviderName


@dataclass(frozen=True)
class ImageResult:
    # http(s) URL, or a base64 data: URL when the provider returns inline bytes
    image_url: str
    provider: ProviderName


class LLMProvider(Protocol):
    name: ProviderName
    supports_image_generation: bool

    async def complete_text(
        self, prompt: str, max_tokens: int, temperature: float
    ) -> TextResult: ...

    async def analyze_image(self, image_url: str, prompt: str, max_tokens: int) -> TextResult: ...

    async def generate_image(self, prompt: str, width: int, height: int) -> ImageResult: ...


def preview(prompt: str, limit: int = 100) -> str:
    """Truncated prompt for log lines."""
    return prompt if len(prompt) <= limit else prompt[:limit] + "..."
