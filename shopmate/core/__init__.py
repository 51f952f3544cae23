"""
Shopmate core domain layer.

Pure domain logic with no provider SDK dependencies.
Contains models, error classification, prompts, and response validation.
"""

# Models (all dataclasses)
from shopmate.core.models import (
    # Providers & events
    AdapterEvent,
    Provider,
    # Products & recommendations
    Product,
    Recommendation,
    RecommendationResponse,
    RecommendationResult,
    # Errors
    AIAdapterError,
    APIError,
    # Configuration
    AIAdapterManagerConfig,
    AIProviderConfig,
    DEFAULT_PROVIDER_CONFIGS,
)

# Error classification
from shopmate.core.errors import (
    AdapterInitializationError,
    ErrorKind,
    classify_error,
    classify_status,
)

# Prompts
from shopmate.core.prompts import (
    HEALTH_CHECK_PRODUCT,
    RECOMMENDATION_SYSTEM_PROMPT,
    build_recommendation_prompt,
)

# Validation
from shopmate.core.validation import (
    extract_recommendations,
    filter_recommendations,
    parse_json_content,
    validate_product,
    validate_response,
)

__all__ = [
    # Models
    "AdapterEvent",
    "Provider",
    "Product",
    "Recommendation",
    "RecommendationResponse",
    "RecommendationResult",
    "AIAdapterError",
    "APIError",
    "AIAdapterManagerConfig",
    "AIProviderConfig",
    "DEFAULT_PROVIDER_CONFIGS",
    # Errors
    "AdapterInitializationError",
    "ErrorKind",
    "classify_error",
    "classify_status",
    # Prompts
    "HEALTH_CHECK_PRODUCT",
    "RECOMMENDATION_SYSTEM_PROMPT",
    "build_recommendation_prompt",
    # Validation
    "extract_recommendations",
    "filter_recommendations",
    "parse_json_content",
    "validate_product",
    "validate_response",
]
