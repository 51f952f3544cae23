"""
Check configured AI providers and show their status.

Initializes the AI service from the environment, then for each provider:
- reports whether it is configured and available
- runs a health probe
- generates recommendations for a test product and times the call

Helps verify API keys and model settings before deploying.

Usage:
    python scripts/check_providers.py
    python scripts/check_providers.py --provider claude --verbose
    python scripts/check_providers.py --json
"""

import argparse
import asyncio
import json
import time

from shopmate.config import configure_logging, get_logger, log_banner, log_kv, log_section
from shopmate.core import AIAdapterError, Product, Provider
from shopmate.services import AIService
from shopmate.services.recommendation import API_KEY_ENV_VARS

logger = get_logger(__name__)

TEST_PRODUCT = Product(
    id="test-1",
    name="MacBook Air M2",
    description="Apple MacBook Air 13-inch with M2 chip, 8GB RAM, 256GB SSD",
    price=1199,
    category="Laptops",
    features=("M2 Chip", "13-inch Display", "All-day Battery"),
)

SETUP_URLS = {
    Provider.OPENAI: "https://platform.openai.com/api-keys",
    Provider.GROK: "https://console.x.ai/",
    Provider.CLAUDE: "https://console.anthropic.com/",
    Provider.GEMINI: "https://aistudio.google.com/app/apikey",
}


def show_setup_instructions(provider: Provider) -> None:
    env_vars = API_KEY_ENV_VARS.get(provider)
    if not env_vars:
        return
    logger.info("  %s is not available. To enable it:", provider.value)
    logger.info("    set %s", " or ".join(env_vars))
    logger.info("    get a key at %s", SETUP_URLS[provider])


async def check_provider(service: AIService, provider: Provider, verbose: bool) -> dict:
    """Probe one provider and return a JSON-serializable report."""
    log_section(logger, provider.value.upper())
    report = {"provider": provider.value, "available": False, "healthy": False}

    if provider not in service.get_available_providers():
        show_setup_instructions(provider)
        info = service.get_adapter_info().get(provider.value, {})
        report["error"] = info.get("last_error")
        return report
    report["available"] = True

    await service.switch_provider(provider)
    health = await service.get_health_status()
    report["healthy"] = health.get(provider, False)
    log_kv(logger, "Healthy", report["healthy"])
    if not report["healthy"]:
        return report

    start = time.perf_counter()
    result = await service.generate_recommendations(TEST_PRODUCT)
    report["duration_ms"] = round((time.perf_counter() - start) * 1000, 1)
    log_kv(logger, "Duration (ms)", report["duration_ms"])

    if isinstance(result, AIAdapterError):
        report["error"] = result.message
        logger.warning("  Generation failed: %s", result.message)
        return report

    report["answered_by"] = result.provider.value if result.provider else None
    report["recommendations"] = len(result.recommendations)
    log_kv(logger, "Answered by", report["answered_by"])
    log_kv(logger, "Recommendations", report["recommendations"])
    if verbose:
        for rec in result.recommendations[:2]:
            logger.info("    - %s: %s", rec.name, rec.reason)
        info = service.get_adapter_info()[provider.value]
        log_kv(logger, "Model", info.get("model"))
        log_kv(logger, "JSON mode", info.get("supports_json_mode"))
    return report


async def run_checks(only: Provider | None, verbose: bool) -> dict:
    log_banner(logger, "SHOPMATE AI PROVIDER CHECK", width=70)

    service = AIService()
    await service.initialize()
    original_active = service.get_active_provider()
    log_kv(logger, "Active provider", original_active.value if original_active else None)
    log_kv(
        logger,
        "Available providers",
        ", ".join(p.value for p in service.get_available_providers()) or "none",
    )

    providers = [only] if only else list(Provider)
    reports = [await check_provider(service, p, verbose) for p in providers]

    if original_active is not None:
        await service.switch_provider(original_active)

    log_banner(logger, "SUMMARY", width=70)
    healthy = [r["provider"] for r in reports if r["healthy"]]
    log_kv(logger, "Healthy", f"{len(healthy)}/{len(reports)}")
    if not healthy:
        logger.error("No provider is healthy; check your configuration")
    elif healthy == [Provider.MOCK.value]:
        logger.warning("Only the mock provider is working; add an API key for real recommendations")

    return {"active_provider": original_active.value if original_active else None, "providers": reports}


def main():
    parser = argparse.ArgumentParser(description="Check configured AI providers")
    parser.add_argument(
        "--provider",
        "-p",
        type=str,
        default=None,
        choices=[p.value for p in Provider],
        help="Check only this provider",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Show sample recommendations and adapter details",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Also print the report as JSON",
    )
    args = parser.parse_args()

    configure_logging()
    only = Provider.parse(args.provider) if args.provider else None
    result = asyncio.run(run_checks(only, args.verbose))

    if args.json:
        log_section(logger, "JSON OUTPUT")
        print(json.dumps(result, indent=2))


if __name__ == "__main__":
    main()
