"""Unit tests for the Cart aggregate and quotes."""

from decimal import Decimal

import pytest
from conftest import make_line

from storefront.core.errors import ValidationAppError
from storefront.services.cart_service import Cart, build_quote
from storefront.services.pricing_service import ShippingRates

D = Decimal

RATES = ShippingRates(D("150.00"), D("9.90"), D("14.90"))


def test_add_item_merges_same_product_and_size() -> None:
    cart = Cart()
    cart.add_item(make_line(product_id="a", selected_size="5ml", quantity=1))
    cart.add_item(make_line(product_id="a", selected_size="5ml", quantity=2))
    cart.add_item(make_line(product_id="a", selected_size="10ml", quantity=1))

    assert len(cart) == 2
    assert cart.lines[0].quantity == 3
    assert cart.item_count == 4


def test_add_item_rejects_non_positive_quantity() -> None:
    line = make_line().model_copy(update={"quantity": 0})

    with pytest.raises(ValidationAppError):
        Cart().add_item(line)


def test_update_quantity_and_remove() -> None:
    cart = Cart([make_line(product_id="a", selected_size="5ml")])

    cart.update_quantity("a", "5ml", 5)
    assert cart.item_count == 5

    cart.update_quantity("a", "5ml", 0)
    assert len(cart) == 0


def test_remove_unknown_item_is_noop() -> None:
    cart = Cart([make_line(product_id="a")])
    cart.remove_item("zzz", "5ml")
    assert len(cart) == 1


def test_out_of_stock_blocks_purchase_but_not_pricing() -> None:
    cart = Cart(
        [
            make_line(product_id="a", base_price=D("40"), stock=0),
            make_line(product_id="b", base_price=D("60"), stock=3),
        ]
    )

    assert cart.is_purchasable is False
    assert [line.product_id for line in cart.out_of_stock_lines] == ["a"]
    assert cart.subtotal() == D("100.00")


def test_empty_cart_is_not_purchasable() -> None:
    assert Cart().is_purchasable is False


def test_product_ids_are_unique_and_ordered() -> None:
    cart = Cart(
        [
            make_line(product_id="b", selected_size="5ml"),
            make_line(product_id="a"),
            make_line(product_id="b", selected_size="10ml"),
        ]
    )
    assert cart.product_ids == ["b", "a"]


def test_quote_with_discount_and_free_shipping() -> None:
    cart = Cart([make_line(base_price=D("100"), quantity=2)])

    quote = build_quote(cart, "standard", RATES, D("20.00"))

    assert quote.subtotal == D("200.00")
    assert quote.shipping_cost == D("0")
    assert quote.total == D("180.00")
    assert quote.purchasable is True


def test_quote_below_threshold_adds_shipping() -> None:
    cart = Cart([make_line(base_price=D("149.99"))])

    quote = build_quote(cart, "standard", RATES)

    assert quote.shipping_cost == D("9.90")
    assert quote.total == D("159.89")


def test_quote_total_floored_at_zero() -> None:
    cart = Cart([make_line(base_price=D("160"))])

    quote = build_quote(cart, "express", RATES, D("500.00"))

    assert quote.total == D("0.00")


def test_quote_reports_out_of_stock_products() -> None:
    cart = Cart([make_line(product_id="a", stock=0), make_line(product_id="b")])

    quote = build_quote(cart, "standard", RATES)

    assert quote.purchasable is False
    assert quote.out_of_stock_product_ids == ["a"]


def test_lines_with_different_terms_are_not_merged() -> None:
    cart = Cart(
        [
            make_line(product_id="a", base_price=D("10")),
            make_line(product_id="a", base_price=D("20"), quantity=2),
            make_line(product_id="a", base_price=D("10")),
        ]
    )

    assert len(cart) == 2
    assert [line.quantity for line in cart.lines] == [2, 2]
    assert cart.subtotal() == D("60.00")


def test_out_of_stock_line_is_kept_beside_in_stock_line() -> None:
    cart = Cart([make_line(product_id="a"), make_line(product_id="a", stock=0)])

    assert len(cart) == 2
    assert cart.is_purchasable is False


def test_remove_item_removes_every_matching_line() -> None:
    cart = Cart(
        [
            make_line(product_id="a", base_price=D("10")),
            make_line(product_id="a", base_price=D("20")),
            make_line(product_id="b"),
        ]
    )

    cart.remove_item("a", "10ml")

    assert cart.product_ids == ["b"]


def test_update_quantity_collapses_matching_lines() -> None:
    cart = Cart(
        [
            make_line(product_id="a", base_price=D("10")),
            make_line(product_id="b"),
            make_line(product_id="a", base_price=D("20")),
        ]
    )

    cart.update_quantity("a", "10ml", 3)

    assert [(line.product_id, line.quantity) for line in cart.lines] == [("a", 3), ("b", 1)]
    assert cart.lines[0].base_price == D("10")
