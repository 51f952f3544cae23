"""
Response validation shared by every provider adapter.

Providers answer in different envelopes (chat completions, Anthropic
messages, Gemini candidates) and models do not always honor the requested
format. This module reduces any of those payloads to a canonical
RecommendationResponse or a retryable format error, so behavior is the
same whichever backend answered.

Validation is idempotent: feeding ``response.to_dict()`` back in yields an
equal response.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

from shopmate.config import get_logger
from shopmate.core.errors import ErrorKind
from shopmate.core.models import (
    AIAdapterError,
    Product,
    Provider,
    Recommendation,
    RecommendationResponse,
    RecommendationResult,
)

logger = get_logger(__name__)

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)
_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

NO_VALID_RECOMMENDATIONS = "No valid recommendations received from AI provider"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


def validate_product(product: Any) -> str | None:
    """Check that a product can be sent to a provider.

    Returns:
        None if valid, otherwise a message describing the problem.
    """
    if product is None:
        return "Invalid product data"
    if isinstance(product, Mapping):
        name = product.get("name")
    elif isinstance(product, Product):
        name = product.name
    else:
        return "Invalid product data"

    if not isinstance(name, str) or not name.strip():
        return "Product name is required and must be a non-empty string"
    return None


# ---------------------------------------------------------------------------
# Payload extraction
# ---------------------------------------------------------------------------


def parse_json_content(text: str) -> Any:
    """Parse model output as JSON, tolerating markdown fences and chatter.

    Raises:
        ValueError: If no JSON object can be recovered from the text.
    """
    cleaned = _CODE_FENCE_RE.sub("", text).strip()
    try:
        return json.loads(cleaned)
    except (json.JSONDecodeError, RecursionError):
        pass

    match = _JSON_OBJECT_RE.search(cleaned)
    if match:
        try:
            return json.loads(match.group(0))
        except (json.JSONDecodeError, RecursionError):
            pass
    raise ValueError(f"Response is not valid JSON: {text[:80]!r}")


def _recommendations_from_text(text: Any) -> list:
    if not isinstance(text, str) or not text.strip():
        return []
    try:
        parsed = parse_json_content(text)
    except ValueError:
        logger.warning("Failed to parse provider text as JSON: %.120s", text)
        return []
    if isinstance(parsed, Mapping) and isinstance(parsed.get("recommendations"), list):
        return parsed["recommendations"]
    if isinstance(parsed, list):
        return parsed
    return []


def _first(items: Any) -> Any:
    if isinstance(items, list) and items:
        return items[0]
    return None


def extract_recommendations(payload: Mapping[str, Any]) -> list:
    """Pull the raw recommendation list out of a provider payload.

    Supported shapes, checked in order:
        {"recommendations": [...]}
        {"choices": [{"message": {"content": "<json>"}}]}      (OpenAI, Grok)
        {"content": [{"type": "text", "text": "<json>"}]}      (Claude)
        {"candidates": [{"content": {"parts": [{"text": ...}]}}]}  (Gemini)
    """
    recommendations = payload.get("recommendations")
    if isinstance(recommendations, list):
        return recommendations

    choice = _first(payload.get("choices"))
    if isinstance(choice, Mapping):
        message = choice.get("message") or {}
        if isinstance(message, Mapping):
            return _recommendations_from_text(message.get("content"))

    content = payload.get("content")
    if isinstance(content, list):
        for block in content:
            if isinstance(block, Mapping) and block.get("type") == "text":
                return _recommendations_from_text(block.get("text"))

    candidate = _first(payload.get("candidates"))
    if isinstance(candidate, Mapping):
        candidate_content = candidate.get("content") or {}
        if isinstance(candidate_content, Mapping):
            part = _first(candidate_content.get("parts"))
            if isinstance(part, Mapping):
                return _recommendations_from_text(part.get("text"))

    return []


def filter_recommendations(items: list) -> list[Recommendation]:
    """Keep entries with non-empty string name and reason, trimmed."""
    valid = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        name = item.get("name")
        reason = item.get("reason")
        if not isinstance(name, str) or not isinstance(reason, str):
            continue
        if not name.strip() or not reason.strip():
            continue

        price = item.get("price")
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            price = None
        image = item.get("image")
        if not isinstance(image, str) or not image.strip():
            image = None

        valid.append(
            Recommendation(
                name=name.strip(), reason=reason.strip(), price=price, image=image
            )
        )
    return valid


# ---------------------------------------------------------------------------
# Validation entry point
# ---------------------------------------------------------------------------


def format_error(
    message: str, provider: Provider | None = None
) -> AIAdapterError:
    """Build the retryable error used for unusable provider output."""
    return AIAdapterError(
        error="AI Adapter Error",
        message=message,
        provider=provider,
        retryable=True,
        code=ErrorKind.RESPONSE_FORMAT,
    )


def validate_response(
    raw: Any, provider: Provider | None = None
) -> RecommendationResult:
    """Normalize a provider payload into a RecommendationResponse.

    Args:
        raw: Provider output: a JSON string, or an already-parsed mapping
            in any of the shapes understood by ``extract_recommendations``.
        provider: Provider that produced the payload (for error attribution).

    Returns:
        RecommendationResponse with at least one entry, or a retryable
        AIAdapterError when the payload is malformed or has no valid entries.
    """
    if isinstance(raw, (str, bytes)):
        text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
        try:
            raw = parse_json_content(text)
        except ValueError as e:
            return format_error(f"Failed to parse AI provider response: {e}", provider)

    if not isinstance(raw, Mapping):
        return format_error("Invalid response format from AI provider", provider)

    recommendations = filter_recommendations(extract_recommendations(raw))
    if not recommendations:
        return format_error(NO_VALID_RECOMMENDATIONS, provider)

    return RecommendationResponse(recommendations=recommendations, provider=provider)


__all__ = [
    "validate_product",
    "parse_json_content",
    "extract_recommendations",
    "filter_recommendations",
    "validate_response",
    "format_error",
    "NO_VALID_RECOMMENDATIONS",
]
