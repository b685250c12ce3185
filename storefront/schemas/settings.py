"""Pydantic schemas for public storefront settings."""

from __future__ import annotations

from pydantic import BaseModel

from storefront.schemas.common import Money


class ShippingSettingsResponse(BaseModel):
    free_shipping_threshold: Money
    standard_price: Money
    express_price: Money
    enable_express: bool
    currency: str
