"""
Core domain models for the Shopmate recommendation adapter layer.

All dataclasses are consolidated here for:
- Single source of truth for type definitions
- Easy imports across adapters, services and the API
- Clear documentation of the request/response contract

Models are organized by domain area.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Union

from shopmate.config import (
    CLAUDE_DEFAULT_MODEL,
    CLAUDE_TIMEOUT,
    GEMINI_DEFAULT_MODEL,
    GEMINI_TIMEOUT,
    GROK_BASE_URL,
    GROK_DEFAULT_MODEL,
    GROK_TIMEOUT,
    LLM_MAX_TOKENS,
    LLM_TEMPERATURE,
    MOCK_TIMEOUT,
    OPENAI_DEFAULT_MODEL,
    OPENAI_TIMEOUT,
)
from shopmate.core.errors import ErrorKind


# ============================================================================
# PROVIDERS & EVENTS
# ============================================================================


class Provider(str, Enum):
    """LLM backends the adapter layer knows how to talk to."""

    OPENAI = "openai"
    GROK = "grok"
    CLAUDE = "claude"
    GEMINI = "gemini"
    MOCK = "mock"

    @classmethod
    def parse(cls, value: str | Provider) -> Provider:
        """Parse a provider name, tolerating case and surrounding whitespace.

        Raises:
            ValueError: If the name is not a known provider.
        """
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            known = ", ".join(p.value for p in cls)
            raise ValueError(
                f"Unknown AI provider: {value!r}. Use one of: {known}."
            ) from None


class AdapterEvent(str, Enum):
    """Events emitted by the adapter manager for external monitoring."""

    PROVIDER_SWITCHED = "provider-switched"
    PROVIDER_FAILED = "provider-failed"
    PROVIDER_RECOVERED = "provider-recovered"
    FALLBACK_ACTIVATED = "fallback-activated"
    ALL_PROVIDERS_FAILED = "all-providers-failed"


# ============================================================================
# PRODUCT & RECOMMENDATION MODELS
# ============================================================================


@dataclass(frozen=True)
class Product:
    """
    A catalog product that recommendations are generated for.

    Owned by the caller and never mutated; only ``name`` is required to be
    meaningful, the other fields enrich the prompt.
    """

    id: str
    name: str
    description: str | None = None
    price: float | None = None
    category: str | None = None
    image: str | None = None
    features: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Product:
        """Build a Product from a JSON-like mapping, ignoring unknown keys.

        ``features`` is kept only as a list or tuple; non-string entries
        are dropped.
        """
        features = data.get("features")
        if isinstance(features, (list, tuple)):
            features = [f for f in features if isinstance(f, str)]
        else:
            features = ()
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name"),
            description=data.get("description"),
            price=data.get("price"),
            category=data.get("category"),
            image=data.get("image") or data.get("imageUrl"),
            features=tuple(features),
        )


@dataclass(frozen=True)
class Recommendation:
    """A single recommended product with the reason it was suggested."""

    name: str
    reason: str
    price: float | None = None
    image: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"name": self.name, "reason": self.reason}
        if self.price is not None:
            data["price"] = self.price
        if self.image is not None:
            data["image"] = self.image
        return data


@dataclass
class RecommendationResponse:
    """
    Canonical success shape returned to callers.

    ``recommendations`` is never empty: a provider answer with no valid
    entries is reported as an error instead. ``provider`` records which
    backend produced the answer and is not part of the public payload.
    """

    recommendations: list[Recommendation]
    provider: Provider | None = None

    def to_dict(self) -> dict:
        return {"recommendations": [r.to_dict() for r in self.recommendations]}


# ============================================================================
# ERROR MODELS
# ============================================================================


@dataclass
class APIError:
    """Canonical failure shape for callers of the recommendation contract."""

    error: str
    message: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"error": self.error}
        if self.message is not None:
            data["message"] = self.message
        return data


@dataclass
class AIAdapterError(APIError):
    """
    Failure produced on the adapter path.

    ``retryable`` tells the manager whether another attempt (same provider
    or next in the chain) may succeed; ``code`` carries the ErrorKind.
    """

    provider: Provider | None = None
    retryable: bool = False
    code: ErrorKind | None = None

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["provider"] = self.provider.value if self.provider else None
        data["retryable"] = self.retryable
        if self.code is not None:
            data["code"] = self.code.value
        return data


RecommendationResult = Union[RecommendationResponse, AIAdapterError]


# ============================================================================
# CONFIGURATION MODELS
# ============================================================================


@dataclass(frozen=True)
class AIProviderConfig:
    """
    Settings for one provider.

    Created once when the service initializes; a different configuration
    requires re-initializing the manager. ``timeout`` is in seconds.
    ``options`` holds provider extras (``organization`` for OpenAI,
    ``response_delay`` for the mock).
    """

    provider: Provider
    api_key: str | None = None
    model: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    timeout: float | None = None
    base_url: str | None = None
    enabled: bool = True
    options: dict[str, Any] = field(default_factory=dict)

    def merged_with_defaults(self) -> AIProviderConfig:
        """Return a copy with unset fields filled from DEFAULT_PROVIDER_CONFIGS."""
        defaults = DEFAULT_PROVIDER_CONFIGS.get(self.provider, {})
        updates = {
            key: value
            for key, value in defaults.items()
            if getattr(self, key) is None
        }
        return replace(self, **updates) if updates else self

    def __repr__(self) -> str:
        # Keep API keys out of logs
        key = "set" if self.api_key else None
        return (
            f"AIProviderConfig(provider={self.provider.value!r}, api_key={key!r}, "
            f"model={self.model!r}, timeout={self.timeout!r}, enabled={self.enabled!r})"
        )


@dataclass(frozen=True)
class AIAdapterManagerConfig:
    """
    Routing policy for the adapter manager.

    ``fallback_providers`` is tried in exactly the given order.
    ``retry_delay`` is a constant wait in seconds between attempts on the
    same provider. With ``mock_last_resort`` the mock adapter answers when
    every configured provider failed, even if it is not listed.
    """

    primary_provider: Provider
    fallback_providers: tuple[Provider, ...] = ()
    providers: dict[Provider, AIProviderConfig] = field(default_factory=dict)
    enable_fallback: bool = True
    max_retries: int = 2
    retry_delay: float = 1.0
    mock_last_resort: bool = True

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.retry_delay < 0:
            raise ValueError(f"retry_delay must be >= 0, got {self.retry_delay}")

    @property
    def provider_order(self) -> list[Provider]:
        """Primary followed by fallbacks, without duplicates."""
        ordered: list[Provider] = []
        for provider in (self.primary_provider, *self.fallback_providers):
            if provider not in ordered:
                ordered.append(provider)
        return ordered


DEFAULT_PROVIDER_CONFIGS: dict[Provider, dict[str, Any]] = {
    Provider.OPENAI: {
        "model": OPENAI_DEFAULT_MODEL,
        "max_tokens": LLM_MAX_TOKENS,
        "temperature": LLM_TEMPERATURE,
        "timeout": OPENAI_TIMEOUT,
    },
    Provider.GROK: {
        "model": GROK_DEFAULT_MODEL,
        "max_tokens": LLM_MAX_TOKENS,
        "temperature": LLM_TEMPERATURE,
        "timeout": GROK_TIMEOUT,
        "base_url": GROK_BASE_URL,
    },
    Provider.CLAUDE: {
        "model": CLAUDE_DEFAULT_MODEL,
        "max_tokens": LLM_MAX_TOKENS,
        "temperature": LLM_TEMPERATURE,
        "timeout": CLAUDE_TIMEOUT,
    },
    Provider.GEMINI: {
        "model": GEMINI_DEFAULT_MODEL,
        "max_tokens": LLM_MAX_TOKENS,
        "temperature": LLM_TEMPERATURE,
        "timeout": GEMINI_TIMEOUT,
    },
    Provider.MOCK: {
        "max_tokens": LLM_MAX_TOKENS,
        "temperature": LLM_TEMPERATURE,
        "timeout": MOCK_TIMEOUT,
    },
}
