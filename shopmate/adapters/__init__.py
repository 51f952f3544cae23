"""
Shopmate adapters layer.

Provider adapters that implement the recommendation contract expected by
the service layer: hosted LLMs (OpenAI, Grok, Claude, Gemini) and the
deterministic mock.
"""

from typing import Callable

from shopmate.core import Provider

# Base contract
from shopmate.adapters.base import BaseAIAdapter, to_payload

# LLM providers
from shopmate.adapters.llm import (
    ClaudeAdapter,
    GeminiAdapter,
    GrokAdapter,
    OpenAIAdapter,
)

# Mock
from shopmate.adapters.mock import (
    CURATED_RECOMMENDATIONS,
    GENERIC_RECOMMENDATIONS,
    MockAdapter,
    mock_recommend,
)

AdapterFactory = Callable[[], BaseAIAdapter]

# Default construction for each provider; the manager accepts overrides.
DEFAULT_ADAPTER_FACTORIES: dict[Provider, AdapterFactory] = {
    Provider.OPENAI: OpenAIAdapter,
    Provider.GROK: GrokAdapter,
    Provider.CLAUDE: ClaudeAdapter,
    Provider.GEMINI: GeminiAdapter,
    Provider.MOCK: MockAdapter,
}

__all__ = [
    # Base
    "BaseAIAdapter",
    "to_payload",
    "AdapterFactory",
    "DEFAULT_ADAPTER_FACTORIES",
    # LLM
    "OpenAIAdapter",
    "GrokAdapter",
    "ClaudeAdapter",
    "GeminiAdapter",
    # Mock
    "MockAdapter",
    "mock_recommend",
    "CURATED_RECOMMENDATIONS",
    "GENERIC_RECOMMENDATIONS",
]
