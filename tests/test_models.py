"""Tests for shopmate.core.models - dataclass construction and methods."""

import pytest

from shopmate.core.errors import ErrorKind
from shopmate.core.models import (
    AIAdapterError,
    AIAdapterManagerConfig,
    AIProviderConfig,
    APIError,
    Product,
    Provider,
    Recommendation,
    RecommendationResponse,
)


class TestProvider:
    def test_parse_tolerates_case_and_whitespace(self):
        assert Provider.parse("  Claude ") is Provider.CLAUDE

    def test_parse_passes_through_enum(self):
        assert Provider.parse(Provider.GROK) is Provider.GROK

    def test_parse_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown AI provider"):
            Provider.parse("cohere")


class TestProduct:
    def test_minimal_construction(self):
        product = Product(id="1", name="MacBook Air")
        assert product.description is None
        assert product.features == ()

    def test_from_dict_accepts_image_url_and_ignores_unknown_keys(self):
        product = Product.from_dict(
            {
                "id": 7,
                "name": "Dell XPS 13",
                "price": 999,
                "imageUrl": "https://example.com/xps.png",
                "features": ["13-inch"],
                "inStock": True,
            }
        )
        assert product.id == "7"
        assert product.image == "https://example.com/xps.png"
        assert product.features == ("13-inch",)

    @pytest.mark.parametrize(
        "features,expected",
        [
            (5, ()),
            ("thin and light", ()),
            ({"ram": "16GB"}, ()),
            (("M2", 3, "Retina"), ("M2", "Retina")),
        ],
    )
    def test_from_dict_keeps_only_string_feature_lists(self, features, expected):
        product = Product.from_dict({"name": "Laptop", "features": features})
        assert product.features == expected


class TestRecommendation:
    def test_to_dict_omits_unset_optionals(self):
        assert Recommendation(name="A", reason="ok").to_dict() == {"name": "A", "reason": "ok"}

    def test_to_dict_keeps_price_and_image(self):
        rec = Recommendation(name="A", reason="ok", price=10.0, image="a.png")
        assert rec.to_dict() == {"name": "A", "reason": "ok", "price": 10.0, "image": "a.png"}

    def test_response_to_dict_hides_provider(self):
        response = RecommendationResponse(
            recommendations=[Recommendation(name="A", reason="ok")],
            provider=Provider.OPENAI,
        )
        assert response.to_dict() == {"recommendations": [{"name": "A", "reason": "ok"}]}


class TestErrors:
    def test_api_error_without_message(self):
        assert APIError(error="Bad request").to_dict() == {"error": "Bad request"}

    def test_adapter_error_to_dict(self):
        error = AIAdapterError(
            error="AI Adapter Error",
            message="boom",
            provider=Provider.CLAUDE,
            retryable=True,
            code=ErrorKind.SERVER,
        )
        assert error.to_dict() == {
            "error": "AI Adapter Error",
            "message": "boom",
            "provider": "claude",
            "retryable": True,
            "code": "server",
        }


class TestAIProviderConfig:
    def test_merged_with_defaults_fills_unset_fields(self):
        config = AIProviderConfig(provider=Provider.GROK, api_key="k").merged_with_defaults()
        assert config.model == "grok-beta"
        assert config.timeout == 15.0
        assert config.base_url == "https://api.x.ai/v1"
        assert config.max_tokens == 500

    def test_merged_with_defaults_keeps_explicit_values(self):
        config = AIProviderConfig(
            provider=Provider.OPENAI, model="gpt-4o", timeout=3.0
        ).merged_with_defaults()
        assert config.model == "gpt-4o"
        assert config.timeout == 3.0

    def test_repr_hides_api_key(self):
        config = AIProviderConfig(provider=Provider.OPENAI, api_key="sk-secret")
        assert "sk-secret" not in repr(config)

    def test_is_frozen(self):
        config = AIProviderConfig(provider=Provider.MOCK)
        with pytest.raises(AttributeError):
            config.model = "other"


class TestManagerConfig:
    def test_provider_order_dedupes(self):
        config = AIAdapterManagerConfig(
            primary_provider=Provider.OPENAI,
            fallback_providers=(Provider.CLAUDE, Provider.OPENAI, Provider.MOCK),
        )
        assert config.provider_order == [Provider.OPENAI, Provider.CLAUDE, Provider.MOCK]

    def test_defaults(self):
        config = AIAdapterManagerConfig(primary_provider=Provider.MOCK)
        assert config.enable_fallback is True
        assert config.max_retries == 2
        assert config.retry_delay == 1.0
        assert config.mock_last_resort is True

    @pytest.mark.parametrize(
        "options,match",
        [
            ({"max_retries": -1}, "max_retries"),
            ({"retry_delay": -0.5}, "retry_delay"),
        ],
    )
    def test_negative_retry_settings_rejected(self, options, match):
        with pytest.raises(ValueError, match=match):
            AIAdapterManagerConfig(primary_provider=Provider.OPENAI, **options)

    def test_zero_retry_settings_allowed(self):
        config = AIAdapterManagerConfig(
            primary_provider=Provider.OPENAI, max_retries=0, retry_delay=0
        )
        assert config.max_retries == 0
