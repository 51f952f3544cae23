"""Tests for shopmate.services.manager - retry, fallback, health and events.

Uses scripted in-memory adapters so every provider outcome is controlled
by the test; the mock adapter is the real one unless a test replaces it.
"""

import asyncio
import json

from shopmate.adapters import BaseAIAdapter
from shopmate.core import (
    AdapterEvent,
    AIAdapterError,
    AIAdapterManagerConfig,
    AIProviderConfig,
    ErrorKind,
    Product,
    Provider,
    RecommendationResponse,
)
from shopmate.services import AIAdapterManager, AIService, load_manager_config

RECS = {"recommendations": [{"name": "Scripted Pick", "reason": "Because the test said so"}]}

PRODUCT = Product(id="1", name="MacBook Air")


class _StatusError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


SERVER_ERROR = _StatusError("Service unavailable", 503)
AUTH_ERROR = _StatusError("Incorrect API key provided", 401)


class ScriptedAdapter(BaseAIAdapter):
    """Adapter whose provider calls return (or raise) scripted outcomes in order."""

    requires_api_key = False

    def __init__(self, provider, *outcomes, default=RECS, fail_init=False, log=None):
        super().__init__()
        self.provider = provider
        self.outcomes = list(outcomes)
        self.default = default
        self.fail_init = fail_init
        self.calls = 0
        self.log = log if log is not None else []

    async def setup_client(self, config):
        return None

    async def test_connection(self):
        if self.fail_init:
            raise ConnectionError("unreachable")

    async def call_provider(self, product, prompt):
        self.calls += 1
        self.log.append(self.provider.value)
        outcome = self.outcomes.pop(0) if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def _manager(adapters, primary, fallbacks=(), **options):
    """Initialize a manager over ``adapters`` and return (manager, events)."""
    options.setdefault("retry_delay", 0)
    factories = {a.provider: (lambda a=a: a) for a in adapters}
    manager = AIAdapterManager(adapter_factories=factories)
    events = []
    manager.add_event_listener(lambda event, data: events.append((event, data)))
    config = AIAdapterManagerConfig(
        primary_provider=primary,
        fallback_providers=tuple(fallbacks),
        providers={a.provider: AIProviderConfig(provider=a.provider) for a in adapters},
        **options,
    )
    asyncio.run(manager.initialize(config))
    return manager, events


def _event_names(events):
    return [event for event, _ in events]


class TestInitialize:
    def test_primary_becomes_active(self):
        manager, events = _manager([ScriptedAdapter(Provider.OPENAI)], Provider.OPENAI)
        assert manager.get_active_provider() is Provider.OPENAI
        assert Provider.MOCK in manager.get_available_providers()
        assert events == []

    def test_failed_primary_activates_first_available_fallback(self):
        adapters = [
            ScriptedAdapter(Provider.OPENAI, fail_init=True),
            ScriptedAdapter(Provider.CLAUDE, fail_init=True),
            ScriptedAdapter(Provider.GROK),
        ]
        manager, events = _manager(
            adapters, Provider.OPENAI, [Provider.CLAUDE, Provider.GROK, Provider.MOCK]
        )
        assert manager.get_active_provider() is Provider.GROK
        assert _event_names(events) == [AdapterEvent.FALLBACK_ACTIVATED]
        assert events[0][1]["to"] == "grok"
        assert manager.adapters[Provider.OPENAI].last_error == "unreachable"

    def test_no_available_provider(self):
        manager, _ = _manager(
            [ScriptedAdapter(Provider.OPENAI, fail_init=True)], Provider.OPENAI
        )
        assert manager.get_active_provider() is None

    def test_disabled_provider_is_not_initialized(self):
        adapter = ScriptedAdapter(Provider.OPENAI)
        manager = AIAdapterManager(adapter_factories={Provider.OPENAI: lambda: adapter})
        config = AIAdapterManagerConfig(
            primary_provider=Provider.OPENAI,
            fallback_providers=(Provider.MOCK,),
            providers={Provider.OPENAI: AIProviderConfig(provider=Provider.OPENAI, enabled=False)},
        )
        asyncio.run(manager.initialize(config))
        assert not adapter.is_available
        assert manager.get_active_provider() is Provider.MOCK

    def test_not_initialized_returns_error(self):
        result = asyncio.run(AIAdapterManager().generate_recommendations(PRODUCT))
        assert isinstance(result, AIAdapterError)
        assert result.retryable is False


class TestFallbackCascade:
    def test_retryable_failures_cascade_in_order_then_mock(self):
        log = []
        adapters = [
            ScriptedAdapter(Provider.OPENAI, default=SERVER_ERROR, log=log),
            ScriptedAdapter(Provider.CLAUDE, default=SERVER_ERROR, log=log),
            ScriptedAdapter(Provider.GROK, default=SERVER_ERROR, log=log),
        ]
        manager, events = _manager(
            adapters,
            Provider.OPENAI,
            [Provider.CLAUDE, Provider.GROK, Provider.MOCK],
            max_retries=2,
        )

        result = asyncio.run(manager.generate_recommendations(PRODUCT))

        assert isinstance(result, RecommendationResponse)
        assert result.provider is Provider.MOCK
        assert result.recommendations[0].name == "MacBook Pro"
        assert log == ["openai"] * 3 + ["claude"] * 3 + ["grok"] * 3
        failed = [d["provider"] for e, d in events if e is AdapterEvent.PROVIDER_FAILED]
        assert failed == ["openai", "claude", "grok"]

    def test_non_retryable_failure_is_not_retried(self):
        openai = ScriptedAdapter(Provider.OPENAI, default=AUTH_ERROR)
        claude = ScriptedAdapter(Provider.CLAUDE)
        manager, _ = _manager([openai, claude], Provider.OPENAI, [Provider.CLAUDE], max_retries=2)

        result = asyncio.run(manager.generate_recommendations(PRODUCT))

        assert isinstance(result, RecommendationResponse)
        assert result.provider is Provider.CLAUDE
        assert openai.calls == 1
        # Auth failures take the adapter out of rotation
        assert not openai.is_available
        assert Provider.OPENAI not in manager.get_available_providers()

    def test_retries_until_success(self):
        openai = ScriptedAdapter(Provider.OPENAI, SERVER_ERROR, SERVER_ERROR)
        manager, events = _manager([openai], Provider.OPENAI, [Provider.MOCK], max_retries=2)

        result = asyncio.run(manager.generate_recommendations(PRODUCT))

        assert isinstance(result, RecommendationResponse)
        assert result.provider is Provider.OPENAI
        assert openai.calls == 3
        assert AdapterEvent.PROVIDER_FAILED not in _event_names(events)

    def test_zero_retries(self):
        openai = ScriptedAdapter(Provider.OPENAI, default=SERVER_ERROR)
        manager, _ = _manager([openai], Provider.OPENAI, [Provider.MOCK], max_retries=0)

        asyncio.run(manager.generate_recommendations(PRODUCT))

        assert openai.calls == 1

    def test_malformed_output_falls_back(self):
        openai = ScriptedAdapter(Provider.OPENAI, default="not json")
        claude = ScriptedAdapter(Provider.CLAUDE)
        manager, _ = _manager([openai, claude], Provider.OPENAI, [Provider.CLAUDE], max_retries=1)

        result = asyncio.run(manager.generate_recommendations(PRODUCT))

        assert isinstance(result, RecommendationResponse)
        assert result.provider is Provider.CLAUDE
        assert openai.calls == 2

    def test_mock_is_last_resort_even_when_not_listed(self):
        openai = ScriptedAdapter(Provider.OPENAI, default=SERVER_ERROR)
        claude = ScriptedAdapter(Provider.CLAUDE, default=SERVER_ERROR)
        manager, events = _manager([openai, claude], Provider.OPENAI, [Provider.CLAUDE], max_retries=0)

        result = asyncio.run(manager.generate_recommendations(Product(id="2", name="Unknown Gadget 9000")))

        assert isinstance(result, RecommendationResponse)
        assert result.provider is Provider.MOCK
        assert result.recommendations[0].name == "Laptop Stand"
        activated = [d for e, d in events if e is AdapterEvent.FALLBACK_ACTIVATED]
        assert activated[-1]["to"] == "mock"

    def test_all_providers_exhausted_without_mock(self):
        openai = ScriptedAdapter(Provider.OPENAI, default=SERVER_ERROR)
        manager, events = _manager(
            [openai], Provider.OPENAI, max_retries=0, mock_last_resort=False
        )

        result = asyncio.run(manager.generate_recommendations(PRODUCT))

        assert isinstance(result, AIAdapterError)
        assert result.code is ErrorKind.ALL_PROVIDERS_EXHAUSTED
        assert result.retryable is False
        assert "openai" in result.message
        assert _event_names(events)[-1] is AdapterEvent.ALL_PROVIDERS_FAILED

    def test_fallback_disabled_returns_provider_error(self):
        openai = ScriptedAdapter(Provider.OPENAI, default=SERVER_ERROR)
        claude = ScriptedAdapter(Provider.CLAUDE)
        manager, _ = _manager(
            [openai, claude],
            Provider.OPENAI,
            [Provider.CLAUDE, Provider.MOCK],
            enable_fallback=False,
            max_retries=1,
        )

        result = asyncio.run(manager.generate_recommendations(PRODUCT))

        assert isinstance(result, AIAdapterError)
        assert result.code is ErrorKind.SERVER
        assert openai.calls == 2
        assert claude.calls == 0

    def test_blank_name_rejected_without_provider_calls(self):
        openai = ScriptedAdapter(Provider.OPENAI)
        claude = ScriptedAdapter(Provider.CLAUDE)
        manager, _ = _manager([openai, claude], Provider.OPENAI, [Provider.CLAUDE, Provider.MOCK])

        result = asyncio.run(manager.generate_recommendations(Product(id="1", name="  ")))

        assert isinstance(result, AIAdapterError)
        assert result.code is ErrorKind.INVALID_INPUT
        assert result.retryable is False
        assert openai.calls == 0
        assert claude.calls == 0

    def test_accepts_product_mapping(self):
        manager, _ = _manager([ScriptedAdapter(Provider.OPENAI)], Provider.OPENAI)
        result = asyncio.run(manager.generate_recommendations({"id": 1, "name": "Dell XPS 13"}))
        assert isinstance(result, RecommendationResponse)

    def test_deeply_nested_output_falls_back(self):
        nested = {"choices": [{"message": {"content": "[" * 200000 + "]" * 200000}}]}
        openai = ScriptedAdapter(Provider.OPENAI, default=nested)
        claude = ScriptedAdapter(Provider.CLAUDE)
        manager, _ = _manager([openai, claude], Provider.OPENAI, [Provider.CLAUDE], max_retries=0)

        result = asyncio.run(manager.generate_recommendations({"name": "Laptop"}))

        assert isinstance(result, RecommendationResponse)
        assert result.provider is Provider.CLAUDE
        assert openai.calls == 1

    def test_mapping_with_unusable_features_is_accepted(self):
        manager, _ = _manager([ScriptedAdapter(Provider.OPENAI)], Provider.OPENAI)
        for features in (5, "thin", {"a": 1}, None):
            result = asyncio.run(
                manager.generate_recommendations({"name": "Laptop", "features": features})
            )
            assert isinstance(result, RecommendationResponse)

    def test_output_is_trimmed_and_non_empty(self):
        raw = json.dumps({"recommendations": [{"name": "  A ", "reason": " ok "}, {"name": ""}]})
        manager, _ = _manager(
            [ScriptedAdapter(Provider.OPENAI, default=raw)], Provider.OPENAI
        )
        result = asyncio.run(manager.generate_recommendations(PRODUCT))
        assert result.to_dict() == {"recommendations": [{"name": "A", "reason": "ok"}]}


class TestEvents:
    def test_recovery_and_switch_events(self):
        openai = ScriptedAdapter(Provider.OPENAI, SERVER_ERROR)
        claude = ScriptedAdapter(Provider.CLAUDE)
        manager, events = _manager([openai, claude], Provider.OPENAI, [Provider.CLAUDE], max_retries=0)

        asyncio.run(manager.generate_recommendations(PRODUCT))
        assert _event_names(events) == [
            AdapterEvent.PROVIDER_FAILED,
            AdapterEvent.FALLBACK_ACTIVATED,
        ]

        events.clear()
        result = asyncio.run(manager.generate_recommendations(PRODUCT))
        assert result.provider is Provider.OPENAI
        assert _event_names(events) == [
            AdapterEvent.PROVIDER_RECOVERED,
            AdapterEvent.PROVIDER_SWITCHED,
        ]
        assert events[1][1]["from"] == "claude"
        assert events[1][1]["to"] == "openai"

    def test_listener_errors_do_not_propagate(self):
        openai = ScriptedAdapter(Provider.OPENAI, SERVER_ERROR)
        manager, _ = _manager([openai], Provider.OPENAI, [Provider.MOCK], max_retries=0)

        def broken(event, data):
            raise RuntimeError("listener bug")

        manager.add_event_listener(broken)
        result = asyncio.run(manager.generate_recommendations(PRODUCT))

        assert isinstance(result, RecommendationResponse)

    def test_removed_listener_is_not_called(self):
        manager, events = _manager([ScriptedAdapter(Provider.OPENAI)], Provider.OPENAI)
        seen = []
        listener = lambda event, data: seen.append(event)  # noqa: E731
        manager.add_event_listener(listener)
        manager.remove_event_listener(listener)

        asyncio.run(manager.switch_provider(Provider.MOCK))

        assert seen == []
        assert _event_names(events) == [AdapterEvent.PROVIDER_SWITCHED]


class TestSwitchProvider:
    def test_switch_to_available_provider(self):
        manager, events = _manager(
            [ScriptedAdapter(Provider.OPENAI), ScriptedAdapter(Provider.CLAUDE)],
            Provider.OPENAI,
            [Provider.CLAUDE],
        )
        assert asyncio.run(manager.switch_provider("claude")) is True
        assert manager.get_active_provider() is Provider.CLAUDE
        event, data = events[-1]
        assert event is AdapterEvent.PROVIDER_SWITCHED
        assert (data["from"], data["to"], data["reason"]) == ("openai", "claude", "manual")

    def test_switched_provider_is_tried_first(self):
        openai = ScriptedAdapter(Provider.OPENAI)
        claude = ScriptedAdapter(Provider.CLAUDE)
        manager, _ = _manager([openai, claude], Provider.OPENAI, [Provider.CLAUDE])
        asyncio.run(manager.switch_provider(Provider.CLAUDE))

        result = asyncio.run(manager.generate_recommendations(PRODUCT))

        assert result.provider is Provider.CLAUDE
        assert openai.calls == 0

    def test_unknown_provider(self):
        manager, _ = _manager([ScriptedAdapter(Provider.OPENAI)], Provider.OPENAI)
        assert asyncio.run(manager.switch_provider("cohere")) is False
        assert manager.get_active_provider() is Provider.OPENAI

    def test_unavailable_provider(self):
        manager, _ = _manager(
            [ScriptedAdapter(Provider.OPENAI), ScriptedAdapter(Provider.CLAUDE, fail_init=True)],
            Provider.OPENAI,
        )
        assert asyncio.run(manager.switch_provider(Provider.CLAUDE)) is False
        assert manager.get_active_provider() is Provider.OPENAI


class TestHealth:
    def test_health_status_is_read_only(self):
        openai = ScriptedAdapter(Provider.OPENAI, default=SERVER_ERROR)
        manager, _ = _manager([openai], Provider.OPENAI, [Provider.MOCK])

        status = asyncio.run(manager.get_health_status())

        assert status == {Provider.OPENAI: False, Provider.MOCK: True}
        assert openai.is_available
        assert manager.get_active_provider() is Provider.OPENAI

    def test_health_transitions_emit_events(self):
        openai = ScriptedAdapter(Provider.OPENAI, SERVER_ERROR)
        manager, events = _manager([openai], Provider.OPENAI)

        asyncio.run(manager.run_health_checks())
        assert _event_names(events) == [AdapterEvent.PROVIDER_FAILED]

        asyncio.run(manager.run_health_checks())
        assert _event_names(events) == [
            AdapterEvent.PROVIDER_FAILED,
            AdapterEvent.PROVIDER_RECOVERED,
        ]

    def test_adapter_info_includes_health(self):
        manager, _ = _manager([ScriptedAdapter(Provider.OPENAI)], Provider.OPENAI)
        info = manager.get_adapter_info()
        assert info["openai"]["is_available"] is True
        assert info["openai"]["healthy"] is True
        assert info["mock"]["model"] == "mock"

    def test_background_monitoring_runs_and_stops(self):
        openai = ScriptedAdapter(Provider.OPENAI)
        manager, _ = _manager([openai], Provider.OPENAI)

        async def run():
            manager.start_health_monitoring(interval=0.01)
            await asyncio.sleep(0.05)
            await manager.stop_health_monitoring()

        asyncio.run(run())

        assert openai.calls >= 1
        assert manager._monitor_task is None

    def test_non_positive_interval_disables_monitoring(self):
        manager, _ = _manager([ScriptedAdapter(Provider.OPENAI)], Provider.OPENAI)

        async def run():
            manager.start_health_monitoring(interval=0)
            return manager._monitor_task

        assert asyncio.run(run()) is None


class TestAIService:
    def test_no_keys_serves_curated_mock(self):
        service = AIService(config=load_manager_config({}))

        result = asyncio.run(service.generate_recommendations(PRODUCT))

        assert isinstance(result, RecommendationResponse)
        assert result.recommendations[0].name == "MacBook Pro"
        assert service.get_active_provider() is Provider.MOCK

    def test_no_keys_unknown_product_gets_generic_list(self):
        service = AIService(config=load_manager_config({}))

        result = asyncio.run(
            service.generate_recommendations(Product(id="2", name="Unknown Gadget 9000"))
        )

        assert result.recommendations[0].name == "Laptop Stand"

    def test_lazy_initialization(self):
        service = AIService(config=load_manager_config({}))
        assert not service.is_initialized
        asyncio.run(service.generate_recommendations(PRODUCT))
        assert service.is_initialized
        assert service.get_available_providers() == [Provider.MOCK]
