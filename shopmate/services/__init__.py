"""
Shopmate services layer.

Orchestration over the provider adapters: the adapter manager (retry,
fallback, health, events) and the AI service facade used by the API.
"""

# Adapter manager
from shopmate.services.manager import (
    AIAdapterManager,
    EventListener,
)

# Recommendation service
from shopmate.services.recommendation import (
    AIService,
    load_manager_config,
)

__all__ = [
    # Manager
    "AIAdapterManager",
    "EventListener",
    # Service
    "AIService",
    "load_manager_config",
]
