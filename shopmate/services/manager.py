"""
Adapter manager: provider selection, retry and fallback.

Owns one adapter per configured provider and routes every recommendation
request through an ordered chain:

    active provider -> primary -> fallbacks (config order) -> mock

Each provider gets ``max_retries`` extra attempts for retryable failures,
spaced by a constant ``retry_delay``. Non-retryable failures move on to the
next provider immediately. Callers only ever see a RecommendationResponse,
an ``invalid_input`` error or an ``all_providers_exhausted`` error.

State changes are reported to listeners as AdapterEvents and counted in
Prometheus.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import Any, Callable, Mapping

from shopmate.adapters import DEFAULT_ADAPTER_FACTORIES, AdapterFactory, BaseAIAdapter
from shopmate.api.metrics import (
    provider_latency_observer,
    record_adapter_event,
    record_provider_attempt,
)
from shopmate.config import HEALTH_CHECK_INTERVAL, get_logger
from shopmate.core import (
    AdapterEvent,
    AdapterInitializationError,
    AIAdapterError,
    AIAdapterManagerConfig,
    AIProviderConfig,
    ErrorKind,
    Product,
    Provider,
    RecommendationResponse,
    RecommendationResult,
    validate_product,
)
from shopmate.utils import timed_operation

logger = get_logger(__name__)

EventListener = Callable[[AdapterEvent, dict[str, Any]], None]


def manager_error(message: str, kind: ErrorKind, error: str = "AI Adapter Error") -> AIAdapterError:
    """Build a non-retryable error attributed to the manager, not a provider."""
    return AIAdapterError(error=error, message=message, retryable=False, code=kind)


class AIAdapterManager:
    """
    Routes recommendation requests across provider adapters.

    Usage:
        manager = AIAdapterManager()
        await manager.initialize(config)
        result = await manager.generate_recommendations(product)

    Args:
        adapter_factories: Per-provider overrides for adapter construction.
            Providers not listed use DEFAULT_ADAPTER_FACTORIES.
    """

    def __init__(self, adapter_factories: Mapping[Provider, AdapterFactory] | None = None):
        self._factories: dict[Provider, AdapterFactory] = {
            **DEFAULT_ADAPTER_FACTORIES,
            **(adapter_factories or {}),
        }
        self.adapters: dict[Provider, BaseAIAdapter] = {}
        self.config: AIAdapterManagerConfig | None = None
        self.active_provider: Provider | None = None
        self.health: dict[Provider, bool] = {}
        self._failed: set[Provider] = set()
        self._last_successful: Provider | None = None
        self._listeners: list[EventListener] = []
        self._monitor_task: asyncio.Task | None = None

    @property
    def is_initialized(self) -> bool:
        return self.config is not None

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    async def initialize(self, config: AIAdapterManagerConfig) -> None:
        """Create and initialize an adapter for every configured provider.

        Enabled adapters initialize concurrently. A provider that fails to
        initialize is logged and left unavailable; it never aborts startup.
        The mock adapter is always created so it can serve as last resort.
        """
        await self.stop_health_monitoring()

        self.config = None
        self.adapters = {}
        self.health = {}
        self._failed = set()
        self._last_successful = None
        self.active_provider = None

        provider_configs = dict(config.providers)
        provider_configs.setdefault(Provider.MOCK, AIProviderConfig(provider=Provider.MOCK))

        for provider in config.provider_order:
            if provider not in provider_configs:
                logger.warning("%s is in the provider chain but has no configuration", provider.value)

        pending = []
        for provider, provider_config in provider_configs.items():
            factory = self._factories.get(provider)
            if factory is None:
                logger.warning("No adapter available for provider %s", provider.value)
                continue
            adapter = factory()
            self.adapters[provider] = adapter

            if provider_config.enabled or provider is Provider.MOCK:
                pending.append(self._initialize_adapter(adapter, provider_config))
            else:
                adapter.mark_unavailable("Provider disabled (no API key configured)")
                logger.info("%s adapter disabled (no API key)", provider.value)

        await asyncio.gather(*pending)
        self.config = config

        for provider, adapter in self.adapters.items():
            self.health[provider] = adapter.is_available

        self.active_provider = self._select_active_provider()
        logger.info(
            "Adapter manager ready: active=%s available=%s",
            self.active_provider.value if self.active_provider else None,
            [p.value for p in self.get_available_providers()],
        )

    async def _initialize_adapter(
        self, adapter: BaseAIAdapter, provider_config: AIProviderConfig
    ) -> None:
        try:
            await adapter.initialize(provider_config)
        except AdapterInitializationError as e:
            logger.warning("Failed to initialize %s adapter: %s", e.provider, e.reason)

    def _select_active_provider(self) -> Provider | None:
        primary = self.config.primary_provider
        if self._is_usable(primary):
            return primary

        for provider in self.config.fallback_providers:
            if self._is_usable(provider):
                logger.warning(
                    "Primary provider %s unavailable, using %s", primary.value, provider.value
                )
                self._emit(
                    AdapterEvent.FALLBACK_ACTIVATED,
                    {"from": primary.value, "to": provider.value, "reason": "initialization"},
                )
                return provider

        logger.error("No configured AI provider is available")
        return None

    def _is_usable(self, provider: Provider | None) -> bool:
        adapter = self.adapters.get(provider) if provider is not None else None
        return adapter is not None and adapter.is_available

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def _build_chain(self) -> list[Provider]:
        if self.config.enable_fallback:
            candidates = [self.active_provider, *self.config.provider_order]
        else:
            candidates = [self.active_provider]

        chain: list[Provider] = []
        for provider in candidates:
            if provider is None or provider in chain:
                continue
            if self._is_usable(provider):
                chain.append(provider)
        return chain

    async def generate_recommendations(
        self, product: Product | Mapping[str, Any]
    ) -> RecommendationResult:
        """Generate recommendations, falling back across providers.

        Never raises. Invalid input is rejected before any provider call.
        """
        if not self.is_initialized:
            return manager_error("Adapter manager not initialized", ErrorKind.UNAVAILABLE)

        problem = validate_product(product)
        if problem:
            return manager_error(problem, ErrorKind.INVALID_INPUT, error="Invalid input")
        if isinstance(product, Mapping):
            product = Product.from_dict(product)

        chain = self._build_chain()
        tried: list[Provider] = []
        last_error: AIAdapterError | None = None

        for provider in chain:
            tried.append(provider)
            result = await self._try_provider(provider, product)
            if isinstance(result, RecommendationResponse):
                self._record_success(provider)
                return result
            last_error = result

        if (
            self.config.enable_fallback
            and self.config.mock_last_resort
            and Provider.MOCK not in chain
            and self._is_usable(Provider.MOCK)
        ):
            logger.warning(
                "All providers failed (%s), serving mock recommendations",
                ", ".join(p.value for p in tried) or "none available",
            )
            result = await self._try_provider(Provider.MOCK, product)
            if isinstance(result, RecommendationResponse):
                self._record_success(Provider.MOCK)
                return result
            tried.append(Provider.MOCK)
            last_error = result

        self._emit(
            AdapterEvent.ALL_PROVIDERS_FAILED,
            {
                "tried": [p.value for p in tried],
                "error": last_error.message if last_error else None,
            },
        )

        if not self.config.enable_fallback:
            if last_error is not None:
                return last_error
            return manager_error("No AI provider available", ErrorKind.UNAVAILABLE)

        detail = f" Last error: {last_error.message}" if last_error else ""
        return manager_error(
            f"All AI providers failed (tried: {', '.join(p.value for p in tried) or 'none'}).{detail}",
            ErrorKind.ALL_PROVIDERS_EXHAUSTED,
            error="All AI providers failed",
        )

    async def _try_provider(self, provider: Provider, product: Product) -> RecommendationResult:
        """Call one provider with linear retry on retryable errors."""
        adapter = self.adapters[provider]
        attempts = self.config.max_retries + 1
        observer = provider_latency_observer(provider.value)

        for attempt in range(1, attempts + 1):
            with timed_operation(f"{provider.value} attempt {attempt}", logger, observer):
                result = await adapter.generate_recommendations(product)

            if isinstance(result, RecommendationResponse):
                record_provider_attempt(provider.value, "success")
                return result

            kind = result.code or ErrorKind.UNKNOWN
            record_provider_attempt(provider.value, kind.value)

            if kind is ErrorKind.AUTH:
                adapter.mark_unavailable(result.message or "Authentication failed")
            if not result.retryable or attempt == attempts:
                break

            logger.info(
                "%s attempt %d/%d failed (%s), retrying in %.1fs",
                provider.value,
                attempt,
                attempts,
                kind.value,
                self.config.retry_delay,
            )
            await asyncio.sleep(self.config.retry_delay)

        self._record_failure(provider, result, attempt)
        return result

    def _record_failure(self, provider: Provider, error: AIAdapterError, attempts: int) -> None:
        self.health[provider] = False
        self._failed.add(provider)
        self._emit(
            AdapterEvent.PROVIDER_FAILED,
            {
                "provider": provider.value,
                "error": error.message,
                "code": error.code.value if error.code else None,
                "attempts": attempts,
            },
        )

    def _record_success(self, provider: Provider) -> None:
        self.health[provider] = True

        if provider in self._failed:
            self._failed.discard(provider)
            self._emit(AdapterEvent.PROVIDER_RECOVERED, {"provider": provider.value})

        previous = self._last_successful
        if previous is not None and previous is not provider:
            self._emit(
                AdapterEvent.PROVIDER_SWITCHED,
                {"from": previous.value, "to": provider.value, "reason": "fallback"},
            )
        self._last_successful = provider

        if provider is not self.active_provider:
            self._emit(
                AdapterEvent.FALLBACK_ACTIVATED,
                {
                    "from": self.active_provider.value if self.active_provider else None,
                    "to": provider.value,
                    "reason": "request",
                },
            )

    # ------------------------------------------------------------------
    # Provider control
    # ------------------------------------------------------------------

    async def switch_provider(self, provider: Provider | str) -> bool:
        """Make ``provider`` the active provider.

        Returns:
            False if the provider is unknown or its adapter is unavailable.
        """
        try:
            target = Provider.parse(provider)
        except ValueError:
            logger.warning("Cannot switch to unknown provider %r", provider)
            return False

        if not self._is_usable(target):
            logger.warning("Cannot switch to %s: adapter unavailable", target.value)
            return False

        previous = self.active_provider
        self.active_provider = target
        logger.info(
            "Switched active provider %s -> %s",
            previous.value if previous else None,
            target.value,
        )
        self._emit(
            AdapterEvent.PROVIDER_SWITCHED,
            {"from": previous.value if previous else None, "to": target.value, "reason": "manual"},
        )
        return True

    def get_active_provider(self) -> Provider | None:
        return self.active_provider

    def get_available_providers(self) -> list[Provider]:
        return [p for p, adapter in self.adapters.items() if adapter.is_available]

    def get_adapter_info(self) -> dict[str, dict[str, Any]]:
        """Adapter diagnostics keyed by provider name, with last known health."""
        return {
            provider.value: {**adapter.get_info(), "healthy": self.health.get(provider)}
            for provider, adapter in self.adapters.items()
        }

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def get_health_status(self) -> dict[Provider, bool]:
        """Probe every adapter concurrently.

        Does not change adapter availability or the active provider.
        """
        providers = list(self.adapters)
        results = await asyncio.gather(
            *(self.adapters[p].health_check() for p in providers)
        )
        status = dict(zip(providers, results))
        self.health.update(status)
        return status

    async def run_health_checks(self) -> dict[Provider, bool]:
        """Probe all adapters and emit events for health transitions."""
        previous = dict(self.health)
        status = await self.get_health_status()

        for provider, healthy in status.items():
            was_healthy = previous.get(provider)
            if healthy and was_healthy is False:
                self._failed.discard(provider)
                self._emit(AdapterEvent.PROVIDER_RECOVERED, {"provider": provider.value})
            elif not healthy and was_healthy:
                self._failed.add(provider)
                self._emit(
                    AdapterEvent.PROVIDER_FAILED,
                    {"provider": provider.value, "error": "Health check failed"},
                )
        return status

    def start_health_monitoring(self, interval: float = HEALTH_CHECK_INTERVAL) -> None:
        """Run ``run_health_checks`` every ``interval`` seconds in the background.

        Must be called from a running event loop. A non-positive interval
        disables monitoring.
        """
        if interval <= 0:
            logger.info("Health monitoring disabled")
            return
        if self._monitor_task is not None and not self._monitor_task.done():
            return
        self._monitor_task = asyncio.get_running_loop().create_task(
            self._monitor(interval)
        )
        logger.info("Health monitoring started (every %.0fs)", interval)

    async def stop_health_monitoring(self) -> None:
        task, self._monitor_task = self._monitor_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
        logger.info("Health monitoring stopped")

    async def _monitor(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.run_health_checks()
            except Exception:
                logger.exception("Health monitoring pass failed")

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def add_event_listener(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def remove_event_listener(self, listener: EventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: AdapterEvent, data: dict[str, Any]) -> None:
        record_adapter_event(event.value)
        logger.debug("Adapter event %s: %s", event.value, data)

        payload = {"timestamp": time.time(), **data}
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception:
                logger.exception("Event listener failed for %s", event.value)
