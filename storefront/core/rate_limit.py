"""Rate limiting dependencies for FastAPI routes.

This module wires the rate limiting adapter into the HTTP layer.

Design goals:
- Routes declare a named budget (see RateLimitSettings) and nothing else.
- The limiter instance is owned by the application (``app.state``), created
  by the app factory, so every app (and every test) gets isolated counters.
- Throttling is answered with HTTP 429 before any promo logic runs.

Clients are identified by IP, read from proxy headers in a fixed order:
X-Forwarded-For (first hop), CF-Connecting-IP, X-Real-IP, else "unknown".
"""

from __future__ import annotations

import logging
from typing import Mapping

from fastapi import HTTPException, Request, status

from storefront.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from storefront.core.config import settings
from storefront.core.logging import hash_identifier

logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"


def get_client_ip(headers: Mapping[str, str]) -> str:
    """Derive the client identifier from proxy headers.

    Args:
        headers: Request headers (any mapping; lookup is case-insensitive).

    Returns:
        The client IP, or "unknown" when no proxy header is present.
    """

    lowered = {k.lower(): v for k, v in headers.items()}

    forwarded_for = lowered.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    cf_connecting_ip = lowered.get("cf-connecting-ip")
    if cf_connecting_ip:
        return cf_connecting_ip.strip()

    real_ip = lowered.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return UNKNOWN_CLIENT


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter owned by the running application."""

    return request.app.state.rate_limiter


def _namespace(budget_name: str) -> str:
    return budget_name.split("_", 1)[0]


def enforce_rate_limit(request: Request, budget_name: str) -> RateLimitResult | None:
    """Consume one unit of ``budget_name`` for the calling client.

    Args:
        request: FastAPI request.
        budget_name: Attribute name on RateLimitSettings (e.g. "promo_validate").

    Returns:
        The limiter decision, or None when rate limiting is disabled.

    Raises:
        HTTPException: 429 Too Many Requests when the budget is exhausted.
    """

    if not settings.app.rate_limit_enabled:
        return None

    budget = settings.rate_limit.budget(budget_name)
    client_ip = get_client_ip(request.headers)
    key = f"{_namespace(budget_name)}:{client_ip}"

    result = get_rate_limiter(request).check(key, budget.limit, budget.window_seconds)
    log_extra = {
        "budget": budget_name,
        "key_hash": hash_identifier(key),
        "limit": result.limit,
        "remaining": result.remaining,
        "window_s": budget.window_seconds,
    }

    if result.allowed:
        logger.debug("rate_limit.allowed", extra=log_extra)
        return result

    logger.warning(
        "rate_limit.exceeded",
        extra={**log_extra, "retry_after_s": result.reset_in_seconds},
    )

    headers: dict[str, str] = {}
    if settings.app.rate_limit_include_headers:
        headers["Retry-After"] = str(result.reset_in_seconds)
        headers["X-RateLimit-Limit"] = str(result.limit)
        headers["X-RateLimit-Remaining"] = "0"
        headers["X-RateLimit-Reset"] = str(int(result.reset_at))

    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=f"Too many attempts. Try again in {result.reset_in_seconds} seconds.",
        headers=headers or None,
    )


def rate_limited(budget_name: str):
    """Build a FastAPI dependency enforcing ``budget_name``.

    Usage:
        @router.post("/promo/validate", dependencies=[Depends(rate_limited("promo_validate"))])
    """

    settings.rate_limit.budget(budget_name)

    async def _dependency(request: Request) -> None:
        enforce_rate_limit(request, budget_name)

    return _dependency
