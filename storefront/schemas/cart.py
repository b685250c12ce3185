"""Pydantic schemas for cart lines and price quotes."""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, Field

from storefront.schemas.common import Money, NonNegativeMoney
from storefront.schemas.promo import PromoValidationResponse


class ShippingMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"


class CartLine(BaseModel):
    """One entry in a shopping cart, as held by the client."""

    product_id: str = Field(..., min_length=1, description="Stable product or pack identifier.")
    unit_price_by_size: dict[str, NonNegativeMoney] = Field(
        default_factory=dict,
        description="Unit price per size label (e.g. {'5ml': 25.0, '10ml': 45.0}).",
    )
    base_price: NonNegativeMoney = Field(
        ...,
        description="Fallback unit price when no positive size price applies.",
    )
    selected_size: str = Field(..., description="Size label chosen by the customer.")
    quantity: int = Field(..., ge=1, description="Number of units.")
    stock: int | None = Field(
        default=None,
        ge=0,
        description="Units in stock; 0 marks the line as out of stock.",
    )

    @property
    def out_of_stock(self) -> bool:
        return self.stock == 0


class QuoteRequest(BaseModel):
    lines: list[CartLine] = Field(..., min_length=1, description="Cart snapshot, in display order.")
    shipping_method: ShippingMethod = Field(
        ShippingMethod.STANDARD,
        description="Either 'standard' or 'express'.",
    )
    promo_code: str | None = Field(
        default=None,
        max_length=50,
        description="Optional promo code to apply to the subtotal.",
    )


class QuoteResponse(BaseModel):
    """Price breakdown for a cart."""

    subtotal: Money
    shipping_cost: Money
    discount_amount: Money = Decimal("0.00")
    total: Money
    currency: str
    item_count: int = Field(..., description="Total number of units across lines.")
    purchasable: bool = Field(
        ...,
        description="False while any line is out of stock; checkout must not proceed.",
    )
    out_of_stock_product_ids: list[str] = Field(default_factory=list)
    free_shipping_threshold: Money
    promo: PromoValidationResponse | None = Field(
        default=None,
        description="Outcome of the promo code, when one was supplied.",
    )
