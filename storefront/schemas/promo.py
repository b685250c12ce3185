"""Pydantic schemas for promo code validation and redemption."""

from __future__ import annotations

from typing import Literal, Union

from pydantic import BaseModel, Field, field_validator

from storefront.adapters.storage.base import DiscountType
from storefront.schemas.common import Money, NonNegativeMoney


class PromoCheckRequest(BaseModel):
    """Body of /v1/promo/validate and /v1/promo/redeem."""

    code: str = Field(..., min_length=1, max_length=50, description="Promo code as typed by the customer.")
    order_total: NonNegativeMoney | None = Field(
        default=None,
        description="Cart subtotal. When omitted the minimum is not checked and the discount is 0.",
    )
    product_ids: list[str] = Field(
        default_factory=list,
        description="Products and packs in the cart, used for the exclusion check.",
    )

    @field_validator("code")
    @classmethod
    def _code_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Promo code is required")
        return value


class PromoCodePublic(BaseModel):
    """Fields of a promo code that may be shown to the customer."""

    id: str
    code: str
    description: str | None = None
    discount_type: DiscountType
    discount_value: Money
    min_order_amount: Money


class PromoAcceptedResponse(BaseModel):
    valid: Literal[True] = True
    promo_code: PromoCodePublic
    discount_amount: Money


class PromoRejectedResponse(BaseModel):
    valid: Literal[False] = False
    reason: str = Field(..., description="Machine-readable rejection kind, e.g. 'expired'.")
    error: str = Field(..., description="Message to display to the customer.")


PromoValidationResponse = Union[PromoAcceptedResponse, PromoRejectedResponse]
