from typing import Annotated

from fastapi import APIRouter, Depends, Request

from storefront.adapters.storage.base import AbstractSettingsStore
from storefront.api.deps import get_promo_engine, get_settings_store
from storefront.core.config import settings
from storefront.core.rate_limit import enforce_rate_limit, rate_limited
from storefront.schemas.cart import QuoteRequest, QuoteResponse
from storefront.services.cart_service import Cart, build_quote
from storefront.services.pricing_service import (
    ZERO,
    check_shipping_method,
    resolve_shipping_rates,
)
from storefront.services.promo_service import PromoAccepted, PromoEngine, canonicalize_code

router = APIRouter(tags=["Cart"])


@router.post(
    "/cart/quote",
    response_model=QuoteResponse,
    dependencies=[Depends(rate_limited("general"))],
)
def quote_cart(
    body: QuoteRequest,
    request: Request,
    engine: Annotated[PromoEngine, Depends(get_promo_engine)],
    settings_store: Annotated[AbstractSettingsStore, Depends(get_settings_store)],
) -> QuoteResponse:
    """Price a cart: subtotal, shipping, optional promo discount and total.

    Lines for the same product and size are merged when their prices and
    stock agree. Out-of-stock lines are priced but make the cart
    non-purchasable. A promo code counts against the promo validation budget
    as well, once the rest of the request is known to be valid.
    """
    cart = Cart(body.lines)
    rates = resolve_shipping_rates(settings_store, settings.shipping)
    # Input errors are raised before the promo budget or store is touched
    check_shipping_method(body.shipping_method, rates)

    promo_result = None
    discount = ZERO
    if body.promo_code is not None:
        code = canonicalize_code(body.promo_code)
        enforce_rate_limit(request, "promo_validate")
        promo_result = engine.validate(code, cart.subtotal(), cart.product_ids)
        if isinstance(promo_result, PromoAccepted):
            discount = promo_result.discount_amount

    quote = build_quote(cart, body.shipping_method, rates, discount)

    return QuoteResponse(
        subtotal=quote.subtotal,
        shipping_cost=quote.shipping_cost,
        discount_amount=quote.discount_amount,
        total=quote.total,
        currency=settings.app.currency,
        item_count=quote.item_count,
        purchasable=quote.purchasable,
        out_of_stock_product_ids=quote.out_of_stock_product_ids,
        free_shipping_threshold=rates.free_shipping_threshold,
        promo=promo_result.to_response() if promo_result is not None else None,
    )
