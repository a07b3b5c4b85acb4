"""Claude provider: text completion and image analysis.

Claude has no image-generation endpoint; LLMService routes generate_image to
the other provider.
"""

from __future__ import annotations

from typing import Any

import anthropic
import structlog

from beluva.errors import ProviderError
from beluva.providers.base import ImageResult, ProviderName, TextResult, preview

log = structlog.get_logger("beluva.providers.anthropic")


class AnthropicProvider:
    name: ProviderName = "anthropic"
    supports_image_generation = False

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float,
        client: anthropic.AsyncAnthropic | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            if not self._api_key:
                raise ProviderError(self.name, "upstream", "ANTHROPIC_API_KEY not set")
            # Retries are disabled: a failed call surfaces immediately
            self._client = anthropic.AsyncAnthropic(
                api_key=self._api_key, max_retries=0, timeout=self._timeout
            )
        return self._client

    async def _create(self, messages: list[dict[str, Any]], **kwargs: Any) -> str:
        client = self._get_client()
        try:
            response = await client.messages.create(
                model=self._model,
                messages=messages,  # type: ignore[arg-type]
                **kwargs,
            )
        except anthropic.APIStatusError as e:
            log.error("anthropic_api_error", status=e.status_code, error=str(e))
            raise ProviderError(self.name, "upstream", str(e), status=e.status_code) from e
        except anthropic.APIConnectionError as e:
            log.error("anthropic_connection_error", error_type=type(e).__name__)
            raise ProviderError(self.name, "upstream", str(e)) from e
        except anthropic.APIResponseValidationError as e:
            log.error("anthropic_response_invalid", error=str(e))
            raise ProviderError(self.name, "parse", str(e)) from e

        log.info(
            "anthropic_tokens",
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=self._model,
        )

        text = ""
        for block in response.content:
            if hasattr(block, "text"):
                text += block.text
        if not text.strip():
            raise ProviderError(self.name, "parse", "Response contained no text content")
        return text.strip()

    async def complete_text(self, prompt: str, max_tokens: int, temperature: float) -> TextResult:
        log.info("anthropic_text_completion", prompt=preview(prompt))
        text = await self._create(
            [{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        return TextResult(text=text, provider=self.name)

    async def analyze_image(self, image_url: str, prompt: str, max_tokens: int) -> TextResult:
        log.info("anthropic_image_analysis", image_url=image_url[:200], prompt=preview(prompt))
        content = [
            {"type": "image", "source": {"type": "url", "url": image_url}},
            {"type": "text", "text": prompt},
        ]
        text = await self._create([{"role": "user", "content": content}], max_tokens=max_tokens)
        return TextResult(text=text, provider=self.name)

    async def generate_image(self, prompt: str, width: int, height: int) -> ImageResult:
        raise ProviderError(self.name, "upstream", "Image generation is not supported")
