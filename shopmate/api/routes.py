"""
API route definitions.

Endpoints:
    POST /api/recommendations       Recommendations for {"productName": ...}
    GET  /api/health                Liveness check
    GET  /api/providers             Active/available providers and adapter info
    GET  /api/providers/health      Live provider health probe
    POST /api/providers/switch      Change the active provider
    GET  /metrics                   Prometheus metrics
"""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from shopmate.adapters import mock_recommend
from shopmate.api.metrics import metrics_response, record_error
from shopmate.config import (
    API_DEGRADE_TO_MOCK,
    API_REQUEST_TIMEOUT,
    ENVIRONMENT,
    MAX_PRODUCT_NAME_LENGTH,
    get_logger,
)
from shopmate.core import ErrorKind, Product, Provider, RecommendationResponse

logger = get_logger(__name__)

router = APIRouter()

# HTTP status for core failures when degradation to mock is off
_STATUS_BY_KIND = {
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.NETWORK: 503,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.ALL_PROVIDERS_EXHAUSTED: 503,
    ErrorKind.RATE_LIMIT: 503,
    ErrorKind.SERVER: 503,
}


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------


class RecommendationItem(BaseModel):
    """A single recommended product."""

    name: str
    reason: str
    price: float | None = None
    image: str | None = None


class RecommendationsResponse(BaseModel):
    """Response body for /api/recommendations."""

    recommendations: list[RecommendationItem]


class ErrorResponse(BaseModel):
    """Structured error response (not stack traces)."""

    error: str
    message: str | None = None


class HealthResponse(BaseModel):
    status: str
    message: str
    timestamp: str
    environment: str
    active_provider: str | None = None


class ProvidersResponse(BaseModel):
    active_provider: str | None
    available_providers: list[str]
    adapters: dict[str, dict]


class SwitchProviderRequest(BaseModel):
    provider: str = Field(..., min_length=1, description="Provider name, e.g. 'claude'")


class SwitchProviderResponse(BaseModel):
    switched: bool
    active_provider: str | None


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _error_response(status_code: int, error: str, message: str | None = None) -> JSONResponse:
    """Build a structured error response."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=message).model_dump(exclude_none=True),
    )


def _degrade_or_fail(
    product_name: str, status_code: int, error: str, message: str | None
) -> JSONResponse:
    """Serve mock recommendations instead of an error when degradation is on."""
    if API_DEGRADE_TO_MOCK:
        logger.warning(
            "Serving mock recommendations for %r after failure: %s", product_name, message
        )
        return JSONResponse(
            status_code=200, content={"recommendations": mock_recommend(product_name)}
        )
    return _error_response(status_code, error, message)


def _provider_name(provider: Provider | None) -> str | None:
    return provider.value if provider else None


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


@router.post(
    "/api/recommendations",
    response_model=RecommendationsResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)
async def recommendations(request: Request):
    """Recommend related products for a product name.

    The body is parsed by hand so malformed input gets a 400 with the same
    ``{error, message}`` shape as every other failure.
    """
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error_response(400, "Bad request", "Request body is required and must be valid JSON")

    if not isinstance(body, dict):
        return _error_response(400, "Bad request", "Request body must be a JSON object")

    product_name = body.get("productName")
    if product_name is None:
        return _error_response(400, "Bad request", "productName is required in request body")
    if not isinstance(product_name, str):
        return _error_response(400, "Bad request", "productName must be a string")

    product_name = product_name.strip()
    if not product_name:
        return _error_response(400, "Bad request", "productName cannot be empty")
    if len(product_name) > MAX_PRODUCT_NAME_LENGTH:
        return _error_response(
            400,
            "Bad request",
            f"productName is too long (maximum {MAX_PRODUCT_NAME_LENGTH} characters)",
        )

    logger.info("Recommendation request for: %s", product_name)
    product = Product(id="api-request", name=product_name)
    service = request.app.state.service

    try:
        result = await asyncio.wait_for(
            service.generate_recommendations(product),
            timeout=API_REQUEST_TIMEOUT,
        )
    except asyncio.TimeoutError:
        logger.warning("Request timeout after %.0fs for: %s", API_REQUEST_TIMEOUT, product_name)
        record_error("timeout")
        return _degrade_or_fail(
            product_name,
            504,
            "Request timeout",
            f"Recommendation request timed out after {API_REQUEST_TIMEOUT:.0f} seconds",
        )
    except Exception:
        logger.exception("Recommendation failed for: %s", product_name)
        record_error("internal_error")
        return _degrade_or_fail(
            product_name, 500, "Internal server error", "Failed to generate recommendations"
        )

    if isinstance(result, RecommendationResponse):
        return result.to_dict()

    kind = result.code or ErrorKind.UNKNOWN
    record_error(kind.value)
    if kind is ErrorKind.INVALID_INPUT:
        return _error_response(400, "Bad request", result.message)

    logger.error("Recommendation error for %s: %s", product_name, result.message)
    return _degrade_or_fail(
        product_name, _STATUS_BY_KIND.get(kind, 500), result.error, result.message
    )


# ---------------------------------------------------------------------------
# Health & providers
# ---------------------------------------------------------------------------


@router.get("/api/health", response_model=HealthResponse)
async def health(request: Request):
    """Liveness probe; does not call any provider."""
    service = request.app.state.service
    return {
        "status": "OK",
        "message": "Shopmate API server is running",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": ENVIRONMENT,
        "active_provider": _provider_name(service.get_active_provider()),
    }


@router.get("/api/providers", response_model=ProvidersResponse)
async def providers(request: Request):
    service = request.app.state.service
    return {
        "active_provider": _provider_name(service.get_active_provider()),
        "available_providers": [p.value for p in service.get_available_providers()],
        "adapters": service.get_adapter_info(),
    }


@router.get("/api/providers/health")
async def providers_health(request: Request):
    """Run a synthetic request against every provider.

    Costs one provider call per configured adapter, so it is not suitable
    as a load balancer probe.
    """
    status = await request.app.state.service.get_health_status()
    return {provider.value: healthy for provider, healthy in status.items()}


@router.post(
    "/api/providers/switch",
    response_model=SwitchProviderResponse,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def switch_provider(body: SwitchProviderRequest, request: Request):
    try:
        provider = Provider.parse(body.provider)
    except ValueError as e:
        return _error_response(400, "Unknown provider", str(e))

    service = request.app.state.service
    if not await service.switch_provider(provider):
        return _error_response(
            409, "Provider unavailable", f"{provider.value} is not available"
        )
    return {"switched": True, "active_provider": _provider_name(service.get_active_provider())}


# ---------------------------------------------------------------------------
# Prometheus metrics
# ---------------------------------------------------------------------------


@router.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    body, content_type = metrics_response()
    return Response(content=body, media_type=content_type)
