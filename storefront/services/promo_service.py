"""Promo code validation and redemption.

Validation is a pure function of the code, the cart, the stored records and
the evaluation time. Checks run in a fixed order and the first failure wins,
so a code that is both expired and below the minimum reports "expired".

Rejections are returned as ``PromoRejected`` values. Only exceptional
conditions raise:
- ValidationAppError: malformed input (blank or over-long code, negative subtotal)
- LookupFailedAppError: the store could not be reached (safe to retry)
- MalformedRecordAppError: the stored record breaks its own invariants
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Callable, Iterable, TypeVar, Union

from storefront.adapters.storage.base import (
    AbstractPromoStore,
    DiscountType,
    ExcludedItem,
    PromoCode,
)
from storefront.core.errors import (
    LookupFailedAppError,
    MalformedRecordAppError,
    StorageError,
    ValidationAppError,
)
from storefront.schemas.promo import (
    PromoAcceptedResponse,
    PromoCodePublic,
    PromoRejectedResponse,
)
from storefront.services.pricing_service import ZERO, round_currency

logger = logging.getLogger(__name__)

MAX_CODE_LENGTH = 50

T = TypeVar("T")


class PromoRejectionReason(str, Enum):
    PROMO_EXCLUDED_ITEMS = "promo_excluded_items"
    INVALID_CODE = "invalid_code"
    INACTIVE = "inactive"
    NOT_YET_STARTED = "not_yet_started"
    EXPIRED = "expired"
    USAGE_LIMIT_REACHED = "usage_limit_reached"
    BELOW_MINIMUM = "below_minimum"


@dataclass(frozen=True)
class PromoAccepted:
    promo_code: PromoCode
    discount_amount: Decimal

    accepted = True

    def to_response(self) -> PromoAcceptedResponse:
        promo = self.promo_code
        return PromoAcceptedResponse(
            promo_code=PromoCodePublic(
                id=promo.id,
                code=promo.code,
                description=promo.description,
                discount_type=promo.discount_type,
                discount_value=promo.discount_value,
                min_order_amount=promo.min_order_amount,
            ),
            discount_amount=self.discount_amount,
        )


@dataclass(frozen=True)
class PromoRejected:
    reason: PromoRejectionReason
    message: str

    accepted = False

    def to_response(self) -> PromoRejectedResponse:
        return PromoRejectedResponse(reason=self.reason.value, error=self.message)


PromoResult = Union[PromoAccepted, PromoRejected]


def canonicalize_code(code: str) -> str:
    """Trim and uppercase a promo code.

    Raises:
        ValidationAppError: If the code is blank or too long.
    """
    canonical = (code or "").strip().upper()
    if not canonical:
        raise ValidationAppError(
            code="promo_code_required",
            message="Promo code is required",
            details={"field": "code"},
        )
    if len(canonical) > MAX_CODE_LENGTH:
        raise ValidationAppError(
            code="promo_code_too_long",
            message=f"Promo code must be at most {MAX_CODE_LENGTH} characters",
            details={"field": "code"},
        )
    return canonical


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the store are UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def check_promo_record(promo: PromoCode) -> None:
    """Reject stored records whose values cannot be priced.

    Raises:
        MalformedRecordAppError: On negative amounts or counters, or a
            percentage above 100.
    """
    problems: list[str] = []
    if promo.discount_value < 0:
        problems.append("discount_value is negative")
    if promo.discount_type is DiscountType.PERCENTAGE and promo.discount_value > 100:
        problems.append("percentage discount_value exceeds 100")
    if promo.min_order_amount < 0:
        problems.append("min_order_amount is negative")
    if promo.max_uses is not None and promo.max_uses < 0:
        problems.append("max_uses is negative")
    if promo.current_uses < 0:
        problems.append("current_uses is negative")

    if problems:
        raise MalformedRecordAppError(
            code="promo_record_malformed",
            message=f"Promo code {promo.id} is malformed: {'; '.join(problems)}",
            details={"context": {"promo_id": promo.id, "problems": problems}},
        )


def compute_discount(promo: PromoCode, cart_subtotal: Decimal) -> Decimal:
    """Discount for a subtotal, capped at the subtotal and rounded to cents."""
    if promo.discount_type is DiscountType.PERCENTAGE:
        discount = cart_subtotal * promo.discount_value / Decimal(100)
    else:
        discount = min(promo.discount_value, cart_subtotal)
    return round_currency(discount)


def _format_amount(amount: Decimal, currency: str) -> str:
    return f"{round_currency(amount)} {currency}"


class PromoEngine:
    """Validates promo codes against a cart snapshot."""

    def __init__(
        self,
        store: AbstractPromoStore,
        *,
        currency: str = "EUR",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._currency = currency
        self._clock = clock

    def _lookup(self, operation: str, func: Callable[..., T], *args) -> T:
        try:
            return func(*args)
        except StorageError as exc:
            logger.error(
                "promo.lookup_failed",
                extra={
                    "operation": operation,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            raise LookupFailedAppError(
                code="lookup_failed",
                message=f"Promo store unavailable during {operation}",
                details={"retryable": True},
            ) from exc

    def _reject(self, reason: PromoRejectionReason, message: str, code: str) -> PromoRejected:
        logger.info("promo.rejected", extra={"reason": reason.value, "promo_code": code})
        return PromoRejected(reason=reason, message=message)

    def validate(
        self,
        code: str,
        cart_subtotal: Decimal | None = None,
        product_ids: Iterable[str] = (),
        *,
        now: datetime | None = None,
    ) -> PromoResult:
        """Validate a code for a cart.

        Args:
            code: Code as typed by the customer.
            cart_subtotal: Cart subtotal. When None the minimum order check
                is skipped and the discount is 0.
            product_ids: Products and packs in the cart.
            now: Evaluation time; defaults to the engine clock.

        Returns:
            PromoAccepted or PromoRejected.
        """
        canonical = canonicalize_code(code)
        if cart_subtotal is not None and cart_subtotal < 0:
            raise ValidationAppError(
                code="invalid_order_total",
                message="Order total cannot be negative",
                details={"field": "order_total"},
            )
        ids = list(product_ids)
        now = _as_utc(now or self._clock())

        if ids:
            excluded: list[ExcludedItem] = self._lookup(
                "find_excluded_items", self._store.find_excluded_items, ids
            )
            if excluded:
                names = ", ".join(item.name for item in excluded)
                return self._reject(
                    PromoRejectionReason.PROMO_EXCLUDED_ITEMS,
                    f"Promo codes cannot be used on: {names}",
                    canonical,
                )

        promo = self._lookup("find_promo_by_code", self._store.find_promo_by_code, canonical)
        if promo is None:
            return self._reject(PromoRejectionReason.INVALID_CODE, "Invalid promo code", canonical)

        check_promo_record(promo)

        if not promo.is_active:
            return self._reject(
                PromoRejectionReason.INACTIVE,
                "This promo code is no longer active",
                canonical,
            )

        if now < _as_utc(promo.starts_at):
            return self._reject(
                PromoRejectionReason.NOT_YET_STARTED,
                "This promo code is not valid yet",
                canonical,
            )

        if promo.expires_at is not None and now >= _as_utc(promo.expires_at):
            return self._reject(
                PromoRejectionReason.EXPIRED,
                "This promo code has expired",
                canonical,
            )

        if promo.max_uses is not None and promo.current_uses >= promo.max_uses:
            return self._reject(
                PromoRejectionReason.USAGE_LIMIT_REACHED,
                "This promo code has reached its usage limit",
                canonical,
            )

        if cart_subtotal is None:
            discount = ZERO
        else:
            if promo.min_order_amount > 0 and cart_subtotal < promo.min_order_amount:
                return self._reject(
                    PromoRejectionReason.BELOW_MINIMUM,
                    f"Minimum order amount: {_format_amount(promo.min_order_amount, self._currency)}",
                    canonical,
                )
            discount = compute_discount(promo, cart_subtotal)

        logger.info(
            "promo.accepted",
            extra={
                "promo_code": canonical,
                "discount_type": promo.discount_type.value,
                "discount_amount": str(discount),
            },
        )
        return PromoAccepted(promo_code=promo, discount_amount=discount)

    def redeem(
        self,
        code: str,
        cart_subtotal: Decimal | None = None,
        product_ids: Iterable[str] = (),
        *,
        now: datetime | None = None,
    ) -> PromoResult:
        """Re-validate a code at order time and record one use.

        An earlier ``validate`` call is never trusted: the code may have
        expired or run out of uses since. The store increments the counter
        atomically, so two concurrent orders cannot both take the last slot.
        """
        result = self.validate(code, cart_subtotal, product_ids, now=now)
        if isinstance(result, PromoRejected):
            return result

        redeemed = self._lookup("try_redeem", self._store.try_redeem, result.promo_code.id)
        if not redeemed:
            return self._reject(
                PromoRejectionReason.USAGE_LIMIT_REACHED,
                "This promo code has reached its usage limit",
                result.promo_code.code,
            )

        logger.info(
            "promo.redeemed",
            extra={"promo_id": result.promo_code.id, "discount_amount": str(result.discount_amount)},
        )
        return result
