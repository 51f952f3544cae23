"""
Shopmate: AI provider adapter layer for product recommendations.

One contract ("given a product, return {name, reason} recommendations or a
structured error") over several LLM backends, with configuration-driven
primary/fallback selection, linear retry, response validation and health
monitoring.

Architecture:
    shopmate.core       - Pure domain logic (models, errors, prompts, validation)
    shopmate.adapters   - Provider adapters (OpenAI, Grok, Claude, Gemini, mock)
    shopmate.services   - Orchestration (adapter manager, AI service)
    shopmate.api        - FastAPI endpoint with mock degradation
    shopmate.config     - Configuration settings and logging
"""

__version__ = "0.1.0"

# Expose key public API for convenience imports
from shopmate.core import (
    # Models
    AIAdapterError,
    AIAdapterManagerConfig,
    AIProviderConfig,
    Product,
    Provider,
    Recommendation,
    RecommendationResponse,
    # Functions
    validate_response,
)

from shopmate.services import (
    AIAdapterManager,
    AIService,
    load_manager_config,
)

__all__ = [
    # Version
    "__version__",
    # Models
    "AIAdapterError",
    "AIAdapterManagerConfig",
    "AIProviderConfig",
    "Product",
    "Provider",
    "Recommendation",
    "RecommendationResponse",
    # Core functions
    "validate_response",
    # Services
    "AIAdapterManager",
    "AIService",
    "load_manager_config",
]
