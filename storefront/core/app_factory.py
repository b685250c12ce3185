from __future__ import annotations

"""Application factory for the FastAPI app.

Builds the app together with the objects it owns for its whole lifetime:
the rate limiter, the stores and the promo engine. Each call returns an
independent app, which keeps tests isolated from one another.
"""

import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from storefront.adapters.rate_limit import AbstractRateLimiter, InMemoryFixedWindowRateLimiter
from storefront.adapters.storage import Stores, create_stores
from storefront.api.routes import cart_router, health_router, promo_router, settings_router
from storefront.core.config import settings
from storefront.core.exception_handlers import setup_exception_handlers
from storefront.core.logging import configure_logging
from storefront.core.middleware import request_id_middleware
from storefront.core.openapi import apply_openapi_customizations
from storefront.services.promo_service import PromoEngine

logger = logging.getLogger(__name__)


async def _sweep_rate_limiter(limiter: AbstractRateLimiter, interval_seconds: int) -> None:
    """Purge expired rate limit windows until cancelled."""
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            limiter.purge_expired()
        except Exception:
            logger.exception("rate_limit.sweep_failed")


@asynccontextmanager
async def _lifespan(app: FastAPI):
    task = asyncio.create_task(
        _sweep_rate_limiter(
            app.state.rate_limiter,
            settings.app.rate_limit_sweep_interval_seconds,
        )
    )
    logger.info(
        "app.started",
        extra={
            "app_env": settings.app_env,
            "storage_backend": settings.app.storage_backend,
            "rate_limit_enabled": settings.app.rate_limit_enabled,
        },
    )
    try:
        yield
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def create_app(
    *,
    stores: Stores | None = None,
    rate_limiter: AbstractRateLimiter | None = None,
    promo_engine: PromoEngine | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        stores: Promo/settings stores; built from settings when omitted.
        rate_limiter: Limiter instance; a fresh in-memory one when omitted.
        promo_engine: Engine instance; built over ``stores.promo`` when omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Storefront Pricing API",
        description=(
            "Pricing core of the perfume storefront: cart quotes (size-based unit "
            "prices, shipping, totals), promo code validation and redemption, and "
            "public shipping settings. Promo checks are rate limited per client IP."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=_lifespan,
    )

    stores = stores or create_stores()
    app.state.stores = stores
    app.state.rate_limiter = rate_limiter or InMemoryFixedWindowRateLimiter()
    app.state.promo_engine = promo_engine or PromoEngine(
        stores.promo,
        currency=settings.app.currency,
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(promo_router, prefix="/v1")
    app.include_router(cart_router, prefix="/v1")
    app.include_router(settings_router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags)
    apply_openapi_customizations(app)

    return app
