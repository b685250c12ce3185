"""Cart aggregate and price quotes.

Carts live on the client; the server rebuilds one from the posted lines for
every quote so the totals never depend on client-side arithmetic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from storefront.core.errors import ValidationAppError
from storefront.schemas.cart import CartLine, ShippingMethod
from storefront.services.pricing_service import (
    ZERO,
    ShippingRates,
    compute_shipping,
    compute_subtotal,
    compute_total,
)


def _same_terms(a: CartLine, b: CartLine) -> bool:
    return (
        a.unit_price_by_size == b.unit_price_by_size
        and a.base_price == b.base_price
        and a.stock == b.stock
    )


class Cart:
    """Ordered collection of cart lines, looked up by (product_id, selected_size)."""

    def __init__(self, lines: list[CartLine] | None = None) -> None:
        self._lines: list[CartLine] = []
        for line in lines or []:
            self.add_item(line)

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    def _matching(self, product_id: str, size: str) -> list[int]:
        return [
            i
            for i, line in enumerate(self._lines)
            if line.product_id == product_id and line.selected_size == size
        ]

    def add_item(self, line: CartLine) -> None:
        """Add a line, merging quantities into an identical line.

        Lines for the same product and size only merge when their prices and
        stock agree. Otherwise both are kept, so each is priced on its own
        terms and an out-of-stock snapshot is never hidden.
        """
        if line.quantity < 1:
            raise ValidationAppError(
                code="invalid_quantity",
                message="Quantity must be at least 1",
                details={"field": "quantity", "value": str(line.quantity)},
            )
        for i in self._matching(line.product_id, line.selected_size):
            existing = self._lines[i]
            if _same_terms(existing, line):
                self._lines[i] = existing.model_copy(
                    update={"quantity": existing.quantity + line.quantity}
                )
                return
        self._lines.append(line)

    def remove_item(self, product_id: str, size: str) -> None:
        """Remove every line for the product and size."""
        matching = set(self._matching(product_id, size))
        self._lines = [line for i, line in enumerate(self._lines) if i not in matching]

    def update_quantity(self, product_id: str, size: str, quantity: int) -> None:
        """Set the quantity for a product and size; zero or less removes it.

        When several lines share the product and size, the first keeps the
        new quantity and the others are dropped.
        """
        if quantity <= 0:
            self.remove_item(product_id, size)
            return
        matching = self._matching(product_id, size)
        if not matching:
            return
        first, rest = matching[0], set(matching[1:])
        self._lines[first] = self._lines[first].model_copy(update={"quantity": quantity})
        self._lines = [line for i, line in enumerate(self._lines) if i not in rest]

    def clear(self) -> None:
        self._lines.clear()

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def product_ids(self) -> list[str]:
        return list(dict.fromkeys(line.product_id for line in self._lines))

    @property
    def out_of_stock_lines(self) -> list[CartLine]:
        return [line for line in self._lines if line.out_of_stock]

    @property
    def is_purchasable(self) -> bool:
        return bool(self._lines) and not self.out_of_stock_lines

    def subtotal(self) -> Decimal:
        return compute_subtotal(self._lines)

    def __len__(self) -> int:
        return len(self._lines)


@dataclass(frozen=True)
class Quote:
    subtotal: Decimal
    shipping_cost: Decimal
    discount_amount: Decimal
    total: Decimal
    item_count: int
    purchasable: bool
    out_of_stock_product_ids: list[str] = field(default_factory=list)


def build_quote(
    cart: Cart,
    method: ShippingMethod | str,
    rates: ShippingRates,
    discount_amount: Decimal = ZERO,
) -> Quote:
    """Combine subtotal, shipping and an accepted discount into a quote."""
    subtotal = cart.subtotal()
    shipping_cost = compute_shipping(subtotal, method, rates)
    return Quote(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        discount_amount=discount_amount,
        total=compute_total(subtotal, shipping_cost, discount_amount),
        item_count=cart.item_count,
        purchasable=cart.is_purchasable,
        out_of_stock_product_ids=list(
            dict.fromkeys(line.product_id for line in cart.out_of_stock_lines)
        ),
    )
