from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from storefront.adapters.storage.base import AbstractSettingsStore
from storefront.api.deps import get_settings_store
from storefront.core.config import settings
from storefront.schemas.settings import ShippingSettingsResponse
from storefront.services.pricing_service import resolve_shipping_rates

router = APIRouter(tags=["Settings"])


@router.get("/settings/shipping", response_model=ShippingSettingsResponse)
def get_shipping_settings(
    settings_store: Annotated[AbstractSettingsStore, Depends(get_settings_store)],
) -> ShippingSettingsResponse:
    """Shipping prices and free-shipping threshold shown at checkout.

    Falls back to the configured defaults when the store is unavailable.
    """

    rates = resolve_shipping_rates(settings_store, settings.shipping)
    return ShippingSettingsResponse(
        free_shipping_threshold=rates.free_shipping_threshold,
        standard_price=rates.standard_price,
        express_price=rates.express_price,
        enable_express=rates.enable_express,
        currency=settings.app.currency,
    )
