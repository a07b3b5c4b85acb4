"""LLMService: one interface over the configured generative-AI provider.

The active provider is chosen once, when the service is built at startup.
Operations the active provider cannot perform are delegated to the other
provider (currently only image generation, which Claude lacks).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import cast

import structlog

from beluva.config import Settings
from beluva.providers.anthropic_provider import AnthropicProvider
from beluva.providers.base import (
    DEFAULT_IMAGE_SIZE,
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    PROVIDER_NAMES,
    ImageResult,
    LLMProvider,
    ProviderName,
    TextResult,
)
from beluva.providers.gemini import GeminiProvider

logger = structlog.get_logger()

DEFAULT_PROVIDER: ProviderName = "anthropic"


class LLMService:
    def __init__(
        self, provider: ProviderName, providers: Mapping[ProviderName, LLMProvider]
    ) -> None:
        if provider not in providers:
            raise ValueError(f"Provider {provider!r} is not registered")
        self.provider_name = provider
        self._providers = dict(providers)

    @property
    def active(self) -> LLMProvider:
        return self._providers[self.provider_name]

    def _image_generator(self) -> LLMProvider:
        if self.active.supports_image_generation:
            return self.active
        for name, candidate in self._providers.items():
            if name != self.provider_name and candidate.supports_image_generation:
                logger.warning(
                    "image_generation_fallback",
                    active_provider=self.provider_name,
                    fallback_provider=name,
                )
                return candidate
        # No capable provider registered; let the active one report the failure
        return self.active

    async def complete_text(
        self,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> TextResult:
        return await self.active.complete_text(prompt, max_tokens, temperature)

    async def analyze_image(
        self, image_url: str, prompt: str, max_tokens: int = DEFAULT_MAX_TOKENS
    ) -> TextResult:
        return await self.active.analyze_image(image_url, prompt, max_tokens)

    async def generate_image(
        self,
        prompt: str,
        width: int = DEFAULT_IMAGE_SIZE,
        height: int = DEFAULT_IMAGE_SIZE,
    ) -> ImageResult:
        return await self._image_generator().generate_image(prompt, width, height)


def parse_provider_name(value: str) -> ProviderName:
    """Validate a configured provider name, defaulting to anthropic when invalid."""
    name = value.strip().lower()
    if name not in PROVIDER_NAMES:
        logger.error("invalid_llm_provider", provider=value, default=DEFAULT_PROVIDER)
        return DEFAULT_PROVIDER
    return cast("ProviderName", name)


def build_llm_service(provider: str, config: Settings) -> LLMService:
    """Build the service for an explicitly chosen provider."""
    name = parse_provider_name(provider)
    providers: dict[ProviderName, LLMProvider] = {
        "anthropic": AnthropicProvider(
            api_key=config.anthropic_api_key,
            model=config.anthropic_model,
            timeout=config.llm_timeout_seconds,
        ),
        "gemini": GeminiProvider(
            api_key=config.google_ai_api_key,
            text_model=config.gemini_text_model,
            image_model=config.gemini_image_model,
            timeout=config.llm_timeout_seconds,
        ),
    }
    logger.info("llm_provider_selected", provider=name)
    return LLMService(name, providers)
