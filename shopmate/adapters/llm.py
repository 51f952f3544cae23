"""
Network-backed LLM adapters.

Provides recommendation adapters for hosted LLM providers:
- OpenAI (chat completions, JSON mode)
- Grok / xAI (OpenAI-compatible API at api.x.ai)
- Anthropic Claude (messages API)
- Google Gemini (google-genai SDK)

All clients are the SDKs' async variants so provider calls suspend the
event loop instead of blocking it. SDK-level retries are disabled; retry
and fallback policy belongs to the adapter manager.

Each adapter returns the SDK response dumped to plain dicts; the shared
validator knows how to find the recommendation JSON in each shape.
"""

from __future__ import annotations

from typing import Any

from shopmate.adapters.base import BaseAIAdapter, to_payload
from shopmate.config import get_logger
from shopmate.core import (
    RECOMMENDATION_SYSTEM_PROMPT,
    AIProviderConfig,
    Product,
    Provider,
)
from shopmate.utils import require_import

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


class OpenAIAdapter(BaseAIAdapter):
    """
    OpenAI chat-completions adapter.

    Uses ``response_format={"type": "json_object"}`` so the model is held to
    the JSON contract of the prompt.
    """

    provider = Provider.OPENAI
    supports_json_mode = True
    supports_streaming = True

    def _client_kwargs(self, config: AIProviderConfig) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "api_key": config.api_key,
            "timeout": config.timeout,
            "max_retries": 0,
        }
        if config.base_url:
            kwargs["base_url"] = config.base_url
        organization = config.options.get("organization")
        if organization:
            kwargs["organization"] = organization
        return kwargs

    async def setup_client(self, config: AIProviderConfig) -> None:
        if self.client is not None:
            return
        openai = require_import("openai")
        self.client = openai.AsyncOpenAI(**self._client_kwargs(config))

    async def test_connection(self) -> None:
        await self.client.models.list()

    def _completion_kwargs(self, prompt: str) -> dict[str, Any]:
        return {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [
                {"role": "system", "content": RECOMMENDATION_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }

    async def call_provider(self, product: Product, prompt: str) -> Any:
        kwargs = self._completion_kwargs(prompt)
        if self.supports_json_mode:
            kwargs["response_format"] = {"type": "json_object"}
        completion = await self.client.chat.completions.create(**kwargs)
        return to_payload(completion)

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        if self.config is not None:
            info["organization"] = self.config.options.get("organization")
            info["base_url"] = self.config.base_url
        return info


# ---------------------------------------------------------------------------
# Grok (xAI)
# ---------------------------------------------------------------------------


class GrokAdapter(OpenAIAdapter):
    """
    xAI Grok adapter.

    The xAI API is OpenAI-compatible, so this reuses the OpenAI SDK pointed
    at ``config.base_url`` (https://api.x.ai/v1 by default). Grok does not
    reliably support JSON mode, so the validator's fence/brace recovery
    does the work instead.
    """

    provider = Provider.GROK
    supports_json_mode = False
    supports_streaming = True

    def _client_kwargs(self, config: AIProviderConfig) -> dict[str, Any]:
        kwargs = super()._client_kwargs(config)
        kwargs.pop("organization", None)
        return kwargs


# ---------------------------------------------------------------------------
# Anthropic Claude
# ---------------------------------------------------------------------------


class ClaudeAdapter(BaseAIAdapter):
    """
    Anthropic Claude adapter using the messages API.

    Claude has no JSON mode; responses are text blocks that may wrap the
    JSON in markdown fences.
    """

    provider = Provider.CLAUDE
    supports_json_mode = False
    supports_streaming = True

    async def setup_client(self, config: AIProviderConfig) -> None:
        if self.client is not None:
            return
        anthropic = require_import("anthropic")
        kwargs: dict[str, Any] = {
            "api_key": config.api_key,
            "timeout": config.timeout,
            "max_retries": 0,
        }
        if config.base_url:
            kwargs["base_url"] = config.base_url
        self.client = anthropic.AsyncAnthropic(**kwargs)

    async def test_connection(self) -> None:
        await self.client.models.list(limit=1)

    async def call_provider(self, product: Product, prompt: str) -> Any:
        message = await self.client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            system=RECOMMENDATION_SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        return to_payload(message)

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        if self.config is not None:
            info["base_url"] = self.config.base_url
        return info


# ---------------------------------------------------------------------------
# Google Gemini
# ---------------------------------------------------------------------------


class GeminiAdapter(BaseAIAdapter):
    """
    Google Gemini adapter using the google-genai SDK's async surface.

    Requests ``application/json`` output; answers arrive as
    ``candidates[0].content.parts[0].text``.
    """

    provider = Provider.GEMINI
    supports_json_mode = True
    supports_streaming = True

    async def setup_client(self, config: AIProviderConfig) -> None:
        if self.client is not None:
            return
        genai = require_import("google.genai", pip_name="google-genai")
        self.client = genai.Client(api_key=config.api_key)

    async def test_connection(self) -> None:
        await self.client.aio.models.get(model=self.config.model)

    async def call_provider(self, product: Product, prompt: str) -> Any:
        types = require_import("google.genai.types", pip_name="google-genai")
        response = await self.client.aio.models.generate_content(
            model=self.config.model,
            contents=prompt,
            config=types.GenerateContentConfig(
                system_instruction=RECOMMENDATION_SYSTEM_PROMPT,
                temperature=self.config.temperature,
                max_output_tokens=self.config.max_tokens,
                response_mime_type="application/json",
            ),
        )
        return to_payload(response)


__all__ = [
    "OpenAIAdapter",
    "GrokAdapter",
    "ClaudeAdapter",
    "GeminiAdapter",
]
