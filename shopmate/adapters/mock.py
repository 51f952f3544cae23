"""
Deterministic mock adapter.

Network-free last resort for the fallback cascade and the provider used in
local development when no API keys are configured. Always initializes,
is always available, and answers every valid product:

- a curated list for a few well-known demo products (exact name match)
- a generic accessory list for anything else
"""

from __future__ import annotations

import asyncio
from typing import Any

from shopmate.adapters.base import BaseAIAdapter
from shopmate.config import MOCK_MAX_RESPONSE_DELAY, get_logger
from shopmate.core import AIProviderConfig, Product, Provider

logger = get_logger(__name__)


CURATED_RECOMMENDATIONS: dict[str, list[dict[str, str]]] = {
    "MacBook Air": [
        {
            "name": "MacBook Pro",
            "reason": "More powerful processor and better graphics for demanding tasks",
        },
        {
            "name": "iPad Pro",
            "reason": "Portable alternative with touch interface and Apple Pencil support",
        },
        {
            "name": "Magic Mouse",
            "reason": "Perfect wireless mouse companion for your MacBook setup",
        },
        {
            "name": "USB-C Hub",
            "reason": "Expand connectivity with multiple ports for peripherals",
        },
    ],
    "Dell XPS 13": [
        {
            "name": "Dell XPS 15",
            "reason": "Larger screen and more powerful specs for enhanced productivity",
        },
        {
            "name": "Dell Wireless Mouse",
            "reason": "Ergonomic wireless mouse designed for Dell laptops",
        },
        {
            "name": "Dell Monitor",
            "reason": "External monitor to create a dual-screen workspace",
        },
        {
            "name": "Laptop Stand",
            "reason": "Improve ergonomics and cooling with an adjustable stand",
        },
    ],
    "ThinkPad X1 Carbon": [
        {
            "name": "ThinkPad Docking Station",
            "reason": "One-cable solution for connecting multiple peripherals",
        },
        {
            "name": "Lenovo Wireless Keyboard",
            "reason": "Full-size keyboard for comfortable extended typing",
        },
        {
            "name": "ThinkPad Travel Mouse",
            "reason": "Compact mouse designed for business professionals",
        },
        {
            "name": "Laptop Bag",
            "reason": "Professional carrying case designed for ThinkPad laptops",
        },
    ],
}

GENERIC_RECOMMENDATIONS: list[dict[str, str]] = [
    {"name": "Laptop Stand", "reason": "Improve ergonomics and airflow for any laptop"},
    {"name": "Wireless Mouse", "reason": "Enhanced productivity with precise cursor control"},
    {"name": "External Monitor", "reason": "Expand your workspace with a larger display"},
    {"name": "USB-C Charger", "reason": "Backup power solution for mobile productivity"},
]


def mock_recommend(product_name: str | None) -> list[dict[str, str]]:
    """Canned recommendations for a product name.

    Used by the mock adapter and by the HTTP layer when it degrades
    instead of returning an error. Unknown or missing names get the generic
    list.
    """
    if isinstance(product_name, str):
        curated = CURATED_RECOMMENDATIONS.get(product_name.strip())
        if curated:
            return [dict(rec) for rec in curated]
    return [dict(rec) for rec in GENERIC_RECOMMENDATIONS]


class MockAdapter(BaseAIAdapter):
    """Always-available adapter backed by the canned tables above."""

    provider = Provider.MOCK
    requires_api_key = False
    supports_json_mode = True
    supports_streaming = False

    def __init__(self, response_delay: float = 0.0):
        super().__init__(client=None)
        self.response_delay = response_delay

    def validate_config(self, config: AIProviderConfig) -> None:
        super().validate_config(config)
        delay = config.options.get("response_delay")
        if delay is None:
            return
        if (
            isinstance(delay, bool)
            or not isinstance(delay, (int, float))
            or not 0 <= delay <= MOCK_MAX_RESPONSE_DELAY
        ):
            logger.warning(
                "Ignoring mock response_delay %r (must be 0-%.0fs)",
                delay,
                MOCK_MAX_RESPONSE_DELAY,
            )
            return
        self.response_delay = float(delay)

    def request_timeout(self) -> float | None:
        timeout = super().request_timeout()
        if timeout is not None and self.response_delay >= timeout:
            # A configured delay must never turn the mock into a timeout.
            return self.response_delay + timeout
        return timeout

    def health_check_timeout(self) -> float:
        return super().health_check_timeout() + self.response_delay

    async def setup_client(self, config: AIProviderConfig) -> None:
        return None

    async def test_connection(self) -> None:
        return None

    async def call_provider(self, product: Product, prompt: str) -> Any:
        if self.response_delay:
            await asyncio.sleep(self.response_delay)
        return {"recommendations": mock_recommend(product.name)}

    def get_info(self) -> dict[str, Any]:
        info = super().get_info()
        info["model"] = "mock"
        info["response_delay"] = self.response_delay
        return info
