"""
Base class for recommendation provider adapters.

Each adapter wraps one LLM backend behind the same async interface:

    initialize(config)             validate config, build client, probe connectivity
    generate_recommendations(p)    RecommendationResponse | AIAdapterError, never raises
    health_check()                 synthetic request, True/False, never raises
    get_info()                     provider, model, availability, last error + extras

Subclasses implement three hooks: ``setup_client``, ``test_connection`` and
``call_provider``. Everything else (input validation, timeouts, error
classification, response validation) lives here so all providers behave
the same.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from shopmate.config import (
    CONNECTION_TEST_TIMEOUT,
    HEALTH_CHECK_TIMEOUT,
    KNOWN_MODELS,
    get_logger,
)
from shopmate.core import (
    HEALTH_CHECK_PRODUCT,
    AdapterInitializationError,
    AIAdapterError,
    AIProviderConfig,
    ErrorKind,
    Product,
    Provider,
    RecommendationResponse,
    RecommendationResult,
    build_recommendation_prompt,
    classify_error,
    validate_product,
    validate_response,
)
from shopmate.utils import call_with_timeout

logger = get_logger(__name__)


def to_payload(response: Any) -> Any:
    """Convert an SDK response object into plain dicts for the validator."""
    if hasattr(response, "model_dump"):
        return response.model_dump()
    return response


class BaseAIAdapter(ABC):
    """Shared lifecycle, validation and error handling for all adapters."""

    provider: Provider
    requires_api_key: bool = True
    supports_json_mode: bool = False
    supports_streaming: bool = False

    def __init__(self, client: Any | None = None):
        """
        Args:
            client: Pre-built provider client. When given, ``setup_client``
                keeps it instead of constructing one from the config.
        """
        self.client = client
        self.config: AIProviderConfig | None = None
        self.last_error: str | None = None
        self._is_available = False

    @property
    def is_available(self) -> bool:
        return self._is_available

    @property
    def model(self) -> str | None:
        return self.config.model if self.config else None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, config: AIProviderConfig) -> None:
        """Validate config, build the client and probe the provider.

        Raises:
            AdapterInitializationError: If the provider cannot be used. The
                adapter is left unavailable with ``last_error`` set.
        """
        config = config.merged_with_defaults()
        self.config = config
        self.last_error = None
        self._is_available = False

        try:
            self.validate_config(config)
            await self.setup_client(config)
            await call_with_timeout(
                self.test_connection(),
                CONNECTION_TEST_TIMEOUT,
                f"{self.provider.value} connection test",
            )
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            raise AdapterInitializationError(self.provider.value, self.last_error) from e

        self._is_available = True
        logger.info("%s adapter ready (model=%s)", self.provider.value, self.model)

    def validate_config(self, config: AIProviderConfig) -> None:
        """Check provider-specific settings.

        Raises:
            ValueError: On a config that can never work.
        """
        if config.provider is not self.provider:
            raise ValueError(f"Invalid provider for {self.provider.value} adapter")
        if self.requires_api_key and not config.api_key:
            raise ValueError(f"{self.provider.value} API key is required")

        known = KNOWN_MODELS.get(self.provider.value)
        if known and config.model and config.model not in known:
            logger.warning(
                "Unknown %s model: %s (continuing anyway)",
                self.provider.value,
                config.model,
            )

    def request_timeout(self) -> float | None:
        """Deadline in seconds for one provider call."""
        return self.config.timeout if self.config else None

    def health_check_timeout(self) -> float:
        """Deadline in seconds for one synthetic health request."""
        return HEALTH_CHECK_TIMEOUT

    def mark_unavailable(self, reason: str) -> None:
        """Take the adapter out of rotation after an unrecoverable failure."""
        self._is_available = False
        self.last_error = reason

    # ------------------------------------------------------------------
    # Provider hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def setup_client(self, config: AIProviderConfig) -> None:
        """Construct the provider client (unless one was injected)."""
        ...

    @abstractmethod
    async def test_connection(self) -> None:
        """Lightweight call proving credentials and connectivity."""
        ...

    @abstractmethod
    async def call_provider(self, product: Product, prompt: str) -> Any:
        """Send the prompt and return the provider's raw payload."""
        ...

    # ------------------------------------------------------------------
    # Recommendations
    # ------------------------------------------------------------------

    def create_error(
        self, message: str, kind: ErrorKind, retryable: bool | None = None
    ) -> AIAdapterError:
        return AIAdapterError(
            error="AI Adapter Error",
            message=message,
            provider=self.provider,
            retryable=kind.retryable if retryable is None else retryable,
            code=kind,
        )

    async def generate_recommendations(self, product: Product) -> RecommendationResult:
        """Generate recommendations for ``product``.

        Never raises: every failure is returned as an AIAdapterError whose
        ``retryable`` flag reflects the error classification.
        """
        if not self.is_available or self.config is None:
            return self.create_error(
                "Adapter not initialized or unavailable", ErrorKind.UNAVAILABLE
            )

        problem = validate_product(product)
        if problem:
            return self.create_error(problem, ErrorKind.INVALID_INPUT)
        if isinstance(product, Mapping):
            product = Product.from_dict(product)

        prompt = build_recommendation_prompt(product)
        try:
            raw = await call_with_timeout(
                self.call_provider(product, prompt),
                self.request_timeout(),
                self.provider.value,
            )
        except Exception as e:
            kind = classify_error(e)
            self.last_error = str(e) or type(e).__name__
            logger.warning(
                "%s call failed (%s): %s", self.provider.value, kind.value, self.last_error
            )
            return self.create_error(
                f"Failed to generate recommendations: {self.last_error}", kind
            )

        try:
            result = validate_response(raw, self.provider)
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            logger.warning(
                "%s returned an unusable payload: %s", self.provider.value, self.last_error
            )
            return self.create_error(
                f"Invalid response from AI provider: {self.last_error}",
                ErrorKind.RESPONSE_FORMAT,
            )
        if isinstance(result, AIAdapterError):
            self.last_error = result.message
        return result

    async def health_check(self) -> bool:
        """Run a synthetic recommendation request; True only on success."""
        if not self.is_available or self.config is None:
            return False
        try:
            result = await call_with_timeout(
                self.generate_recommendations(HEALTH_CHECK_PRODUCT),
                self.health_check_timeout(),
                f"{self.provider.value} health check",
            )
        except Exception as e:
            self.last_error = str(e) or "Health check failed"
            return False
        return isinstance(result, RecommendationResponse) and bool(result.recommendations)

    def get_info(self) -> dict[str, Any]:
        """Describe the adapter for diagnostics endpoints."""
        return {
            "provider": self.provider.value,
            "model": self.model,
            "is_available": self.is_available,
            "last_error": self.last_error,
            "supports_json_mode": self.supports_json_mode,
            "supports_streaming": self.supports_streaming,
        }
