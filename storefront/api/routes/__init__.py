from __future__ import annotations

from storefront.api.routes.cart import router as cart_router
from storefront.api.routes.health import router as health_router
from storefront.api.routes.promo import router as promo_router
from storefront.api.routes.settings import router as settings_router

__all__ = ["cart_router", "health_router", "promo_router", "settings_router"]
