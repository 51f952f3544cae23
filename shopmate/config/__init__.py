"""
Shopmate configuration module.

Central configuration for the recommendation adapter layer.
Loads settings from environment variables (and a local .env file) with
sensible defaults. Provider credentials are read per-initialization by
``shopmate.services.recommendation.load_manager_config`` rather than being
frozen here, so tests and multiple service instances can use their own.
"""

import os

from dotenv import load_dotenv

from shopmate.utils import env_flag

load_dotenv()


# ---------------------------------------------------------------------------
# Provider Names
# ---------------------------------------------------------------------------

PROVIDER_OPENAI = "openai"
PROVIDER_GROK = "grok"
PROVIDER_CLAUDE = "claude"
PROVIDER_GEMINI = "gemini"
PROVIDER_MOCK = "mock"


# ---------------------------------------------------------------------------
# Provider Defaults
# ---------------------------------------------------------------------------

OPENAI_DEFAULT_MODEL = "gpt-4o-mini"
GROK_DEFAULT_MODEL = "grok-beta"
CLAUDE_DEFAULT_MODEL = "claude-3-haiku-20240307"
GEMINI_DEFAULT_MODEL = "gemini-1.5-flash"

GROK_BASE_URL = "https://api.x.ai/v1"

# Per-provider request timeouts in seconds (Grok tends to be slowest)
OPENAI_TIMEOUT = 10.0
GROK_TIMEOUT = 15.0
CLAUDE_TIMEOUT = 12.0
GEMINI_TIMEOUT = 10.0
MOCK_TIMEOUT = 1.0

LLM_MAX_TOKENS = 500
LLM_TEMPERATURE = 0.7

# Models each provider is known to serve; anything else only logs a warning
KNOWN_MODELS = {
    PROVIDER_OPENAI: ("gpt-4", "gpt-4-turbo", "gpt-4o", "gpt-4o-mini", "gpt-3.5-turbo"),
    PROVIDER_GROK: ("grok-beta", "grok-1", "grok-2"),
    PROVIDER_CLAUDE: (
        "claude-3-opus-20240229",
        "claude-3-sonnet-20240229",
        "claude-3-haiku-20240307",
        "claude-3-5-sonnet-20241022",
    ),
    PROVIDER_GEMINI: ("gemini-pro", "gemini-1.5-pro", "gemini-1.5-flash"),
}


# ---------------------------------------------------------------------------
# Adapter Manager Defaults
# ---------------------------------------------------------------------------

DEFAULT_PRIMARY_PROVIDER = PROVIDER_OPENAI
DEFAULT_FALLBACK_PROVIDERS = PROVIDER_MOCK  # comma-separated
DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY = 1.0  # seconds, constant between attempts

# Connectivity probe during initialize(); keeps startup fast when a
# provider is unreachable.
CONNECTION_TEST_TIMEOUT = 5.0
HEALTH_CHECK_TIMEOUT = 5.0

# Background health monitoring interval in seconds (0 disables)
HEALTH_CHECK_INTERVAL = float(os.getenv("AI_HEALTH_CHECK_INTERVAL", "300"))

# Mock adapter artificial latency bounds (seconds)
MOCK_MAX_RESPONSE_DELAY = 10.0


# ---------------------------------------------------------------------------
# HTTP API
# ---------------------------------------------------------------------------

ENVIRONMENT = os.getenv("SHOPMATE_ENV", "production")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")]

# Outer deadline around the whole fallback cascade for one HTTP request
API_REQUEST_TIMEOUT = float(os.getenv("API_REQUEST_TIMEOUT", "30.0"))

# Serve mock recommendations instead of 5xx responses when the core fails
API_DEGRADE_TO_MOCK = env_flag(os.getenv("API_DEGRADE_TO_MOCK"), default=True)

MAX_PRODUCT_NAME_LENGTH = 200


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

from shopmate.config.logging import (  # noqa: E402
    get_logger,
    configure_logging,
    log_banner,
    log_section,
    log_kv,
    LOG_LEVEL,
    LOG_FORMAT,
)


__all__ = [
    # Providers
    "PROVIDER_OPENAI",
    "PROVIDER_GROK",
    "PROVIDER_CLAUDE",
    "PROVIDER_GEMINI",
    "PROVIDER_MOCK",
    "OPENAI_DEFAULT_MODEL",
    "GROK_DEFAULT_MODEL",
    "CLAUDE_DEFAULT_MODEL",
    "GEMINI_DEFAULT_MODEL",
    "GROK_BASE_URL",
    "OPENAI_TIMEOUT",
    "GROK_TIMEOUT",
    "CLAUDE_TIMEOUT",
    "GEMINI_TIMEOUT",
    "MOCK_TIMEOUT",
    "LLM_MAX_TOKENS",
    "LLM_TEMPERATURE",
    "KNOWN_MODELS",
    # Manager
    "DEFAULT_PRIMARY_PROVIDER",
    "DEFAULT_FALLBACK_PROVIDERS",
    "DEFAULT_MAX_RETRIES",
    "DEFAULT_RETRY_DELAY",
    "CONNECTION_TEST_TIMEOUT",
    "HEALTH_CHECK_TIMEOUT",
    "HEALTH_CHECK_INTERVAL",
    "MOCK_MAX_RESPONSE_DELAY",
    # API
    "ENVIRONMENT",
    "CORS_ORIGINS",
    "API_REQUEST_TIMEOUT",
    "API_DEGRADE_TO_MOCK",
    "MAX_PRODUCT_NAME_LENGTH",
    # Logging
    "get_logger",
    "configure_logging",
    "log_banner",
    "log_section",
    "log_kv",
    "LOG_LEVEL",
    "LOG_FORMAT",
]
