"""Cart pricing: unit prices, subtotal, shipping and grand total.

Every function here is pure. Amounts are Decimal and are rounded to cents
by ``round_currency`` only, with ROUND_HALF_UP (half away from zero for the
non-negative amounts handled here), so the displayed and charged amounts
cannot drift apart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from storefront.adapters.storage.base import AbstractSettingsStore
from storefront.core.config import ShippingDefaults
from storefront.core.errors import StorageError, ValidationAppError
from storefront.schemas.cart import CartLine, ShippingMethod

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def round_currency(amount: Decimal) -> Decimal:
    """Quantize an amount to cents (ROUND_HALF_UP)."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def resolve_unit_price(
    unit_price_by_size: Mapping[str, Decimal],
    selected_size: str,
    base_price: Decimal,
) -> Decimal:
    """Return the unit price for a size, using a three-tier fallback.

    1. The price of the selected size, when present and positive.
    2. The lowest positive price across all sizes.
    3. The product's base price.

    A size priced at zero (or missing) never makes the product free.
    """
    size_price = unit_price_by_size.get(selected_size)
    if size_price is not None and size_price > 0:
        return Decimal(size_price)

    positive_prices = [Decimal(p) for p in unit_price_by_size.values() if p > 0]
    if positive_prices:
        return min(positive_prices)

    return Decimal(base_price)


def effective_unit_price(line: CartLine) -> Decimal:
    return resolve_unit_price(line.unit_price_by_size, line.selected_size, line.base_price)


def line_total(line: CartLine) -> Decimal:
    return round_currency(effective_unit_price(line) * line.quantity)


def compute_subtotal(lines: Iterable[CartLine]) -> Decimal:
    """Sum of line totals. Out-of-stock lines are included."""
    return round_currency(sum((line_total(line) for line in lines), ZERO))


@dataclass(frozen=True)
class ShippingRates:
    free_shipping_threshold: Decimal
    standard_price: Decimal
    express_price: Decimal
    enable_express: bool = True

    @classmethod
    def from_defaults(cls, defaults: ShippingDefaults) -> "ShippingRates":
        return cls(
            free_shipping_threshold=defaults.free_shipping_threshold,
            standard_price=defaults.standard_price,
            express_price=defaults.express_price,
            enable_express=defaults.enable_express,
        )


# Keys of the admin "shipping" settings document
_SHIPPING_KEYS = {
    "free_shipping_threshold": "freeShippingThreshold",
    "standard_price": "standardShippingPrice",
    "express_price": "expressShippingPrice",
}


def _read_amount(raw: Mapping[str, Any], field: str, fallback: Decimal) -> Decimal:
    value = raw.get(field, raw.get(_SHIPPING_KEYS[field]))
    if value is None:
        return fallback
    try:
        amount = Decimal(str(value))
    except InvalidOperation:
        logger.warning("shipping_settings.invalid_value", extra={"field": field, "value": str(value)})
        return fallback
    if amount.is_nan() or amount < 0:
        logger.warning("shipping_settings.invalid_value", extra={"field": field, "value": str(value)})
        return fallback
    return amount


def resolve_shipping_rates(
    store: AbstractSettingsStore,
    defaults: ShippingDefaults,
) -> ShippingRates:
    """Merge the stored shipping settings over the configured defaults.

    Unset values fall back one by one; an unavailable store falls back
    entirely. Both snake_case and the admin UI's camelCase keys are read.
    """
    fallback = ShippingRates.from_defaults(defaults)
    try:
        raw = store.get_shipping_settings()
    except StorageError as exc:
        logger.warning(
            "shipping_settings.unavailable",
            extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
        )
        return fallback

    if not raw:
        return fallback

    enable_express = raw.get("enable_express", raw.get("enableExpressShipping"))
    return ShippingRates(
        free_shipping_threshold=_read_amount(
            raw, "free_shipping_threshold", fallback.free_shipping_threshold
        ),
        standard_price=_read_amount(raw, "standard_price", fallback.standard_price),
        express_price=_read_amount(raw, "express_price", fallback.express_price),
        enable_express=fallback.enable_express if enable_express is None else bool(enable_express),
    )


def check_shipping_method(method: ShippingMethod | str, rates: ShippingRates) -> ShippingMethod:
    """Return the method if it can be used with these rates.

    Raises:
        ValidationAppError: If the method is unknown or express is disabled.
    """
    try:
        method = ShippingMethod(method)
    except ValueError:
        raise ValidationAppError(
            code="invalid_shipping_method",
            message=f"Unknown shipping method: {method!r}",
            details={"field": "shipping_method", "allowed": [m.value for m in ShippingMethod]},
        ) from None

    if method is ShippingMethod.EXPRESS and not rates.enable_express:
        raise ValidationAppError(
            code="express_shipping_disabled",
            message="Express shipping is currently unavailable",
            details={"field": "shipping_method", "allowed": [ShippingMethod.STANDARD.value]},
        )
    return method


def compute_shipping(
    subtotal: Decimal,
    method: ShippingMethod | str,
    rates: ShippingRates,
) -> Decimal:
    """Shipping cost for a subtotal and method.

    Free for either method once the subtotal reaches the threshold.

    Raises:
        ValidationAppError: If the method is unknown or express is disabled.
    """
    method = check_shipping_method(method, rates)

    if subtotal >= rates.free_shipping_threshold:
        return ZERO

    price = rates.express_price if method is ShippingMethod.EXPRESS else rates.standard_price
    return round_currency(price)


def compute_total(subtotal: Decimal, shipping_cost: Decimal, discount_amount: Decimal) -> Decimal:
    """subtotal + shipping - discount, never below zero."""
    return max(ZERO, round_currency(subtotal + shipping_cost - discount_amount))
