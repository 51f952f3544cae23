"""
Recommendation service: the entry point used by the HTTP layer and scripts.

Builds the adapter manager configuration from the environment and
initializes the manager on first use.
"""

from __future__ import annotations

import asyncio
import os
from typing import Any, Mapping

from shopmate.config import (
    DEFAULT_FALLBACK_PROVIDERS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_PRIMARY_PROVIDER,
    DEFAULT_RETRY_DELAY,
    HEALTH_CHECK_INTERVAL,
    get_logger,
)
from shopmate.core import (
    AIAdapterManagerConfig,
    AIProviderConfig,
    Product,
    Provider,
    RecommendationResult,
)
from shopmate.services.manager import AIAdapterManager, EventListener
from shopmate.utils import env_flag, split_csv

logger = get_logger(__name__)

# Environment variables holding each provider's key, in lookup order
API_KEY_ENV_VARS: dict[Provider, tuple[str, ...]] = {
    Provider.OPENAI: ("OPENAI_API_KEY",),
    Provider.GROK: ("GROK_API_KEY", "XAI_API_KEY"),
    Provider.CLAUDE: ("CLAUDE_API_KEY", "ANTHROPIC_API_KEY"),
    Provider.GEMINI: ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
}


# ---------------------------------------------------------------------------
# Environment configuration
# ---------------------------------------------------------------------------


def _first_set(environ: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


def _env_number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring negative %s=%r, using %s", name, raw, default)
        return default
    return value


def _parse_providers(names: list[str], setting: str) -> list[Provider]:
    providers = []
    for name in names:
        try:
            providers.append(Provider.parse(name))
        except ValueError:
            logger.warning("Ignoring unknown provider %r in %s", name, setting)
    return providers


def load_manager_config(environ: Mapping[str, str] | None = None) -> AIAdapterManagerConfig:
    """Build the adapter manager configuration from environment variables.

    Args:
        environ: Mapping to read instead of ``os.environ``.

    Providers without an API key are configured disabled. The mock is
    always enabled.
    """
    env = os.environ if environ is None else environ

    providers: dict[Provider, AIProviderConfig] = {}
    for provider, key_vars in API_KEY_ENV_VARS.items():
        api_key = _first_set(env, key_vars)
        prefix = provider.value.upper()
        options: dict[str, Any] = {}
        base_url = env.get(f"{prefix}_BASE_URL") or None

        if provider is Provider.OPENAI and env.get("OPENAI_ORGANIZATION"):
            options["organization"] = env["OPENAI_ORGANIZATION"]

        providers[provider] = AIProviderConfig(
            provider=provider,
            api_key=api_key,
            model=env.get(f"{prefix}_MODEL") or None,
            base_url=base_url,
            enabled=api_key is not None,
            options=options,
        )
    providers[Provider.MOCK] = AIProviderConfig(provider=Provider.MOCK, enabled=True)

    primary_name = env.get("AI_PRIMARY_PROVIDER") or DEFAULT_PRIMARY_PROVIDER
    primary = _parse_providers([primary_name], "AI_PRIMARY_PROVIDER")
    fallbacks = _parse_providers(
        split_csv(env.get("AI_FALLBACK_PROVIDERS", DEFAULT_FALLBACK_PROVIDERS)),
        "AI_FALLBACK_PROVIDERS",
    )

    return AIAdapterManagerConfig(
        primary_provider=primary[0] if primary else Provider(DEFAULT_PRIMARY_PROVIDER),
        fallback_providers=tuple(fallbacks),
        providers=providers,
        enable_fallback=env_flag(env.get("AI_ENABLE_FALLBACK"), default=True),
        max_retries=_env_number(env, "AI_MAX_RETRIES", DEFAULT_MAX_RETRIES, int),
        retry_delay=_env_number(env, "AI_RETRY_DELAY", DEFAULT_RETRY_DELAY, float),
        mock_last_resort=env_flag(env.get("AI_MOCK_LAST_RESORT"), default=True),
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AIService:
    """
    Facade over AIAdapterManager.

    ``generate_recommendations`` initializes from the environment on first
    use, so callers that never call ``initialize`` still get a working
    service (the mock at minimum).
    """

    def __init__(
        self,
        manager: AIAdapterManager | None = None,
        config: AIAdapterManagerConfig | None = None,
    ):
        self.manager = manager or AIAdapterManager()
        self._config = config
        self._init_lock = asyncio.Lock()

    @property
    def is_initialized(self) -> bool:
        return self.manager.is_initialized

    async def initialize(self, config: AIAdapterManagerConfig | None = None) -> None:
        """Initialize the manager with ``config`` (default: from the environment)."""
        config = config or self._config or load_manager_config()
        self._config = config
        logger.info(
            "Initializing AI service: primary=%s fallbacks=%s",
            config.primary_provider.value,
            [p.value for p in config.fallback_providers],
        )
        await self.manager.initialize(config)

    async def _ensure_initialized(self) -> None:
        if self.is_initialized:
            return
        async with self._init_lock:
            if not self.is_initialized:
                await self.initialize()

    async def generate_recommendations(
        self, product: Product | Mapping[str, Any]
    ) -> RecommendationResult:
        await self._ensure_initialized()
        return await self.manager.generate_recommendations(product)

    async def switch_provider(self, provider: Provider | str) -> bool:
        await self._ensure_initialized()
        return await self.manager.switch_provider(provider)

    async def get_health_status(self) -> dict[Provider, bool]:
        await self._ensure_initialized()
        return await self.manager.get_health_status()

    def get_active_provider(self) -> Provider | None:
        return self.manager.get_active_provider()

    def get_available_providers(self) -> list[Provider]:
        return self.manager.get_available_providers()

    def get_adapter_info(self) -> dict[str, dict[str, Any]]:
        return self.manager.get_adapter_info()

    def add_event_listener(self, listener: EventListener) -> None:
        self.manager.add_event_listener(listener)

    def remove_event_listener(self, listener: EventListener) -> None:
        self.manager.remove_event_listener(listener)

    def start_health_monitoring(self, interval: float = HEALTH_CHECK_INTERVAL) -> None:
        self.manager.start_health_monitoring(interval)

    async def stop_health_monitoring(self) -> None:
        await self.manager.stop_health_monitoring()
