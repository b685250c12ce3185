"""Unit tests for the promo engine: check order, discounts, redemption."""

from __future__ import annotations

import threading
from datetime import timedelta
from decimal import Decimal

import pytest
from conftest import NOW, make_promo

from storefront.adapters.storage import DiscountType, ExcludedItem, InMemoryPromoStore
from storefront.core.errors import (
    LookupFailedAppError,
    MalformedRecordAppError,
    StorageError,
    ValidationAppError,
)
from storefront.services.promo_service import (
    PromoAccepted,
    PromoEngine,
    PromoRejected,
    PromoRejectionReason as Reason,
    canonicalize_code,
)

D = Decimal


def _engine(*promos, excluded=()) -> PromoEngine:
    store = InMemoryPromoStore(promo_codes=promos, excluded_items=excluded)
    return PromoEngine(store, currency="EUR", clock=lambda: NOW)


def _reason(result) -> Reason:
    assert isinstance(result, PromoRejected)
    return result.reason


class TestCanonicalize:
    def test_trims_and_uppercases(self) -> None:
        assert canonicalize_code("  welcome10 ") == "WELCOME10"

    @pytest.mark.parametrize("code", ["", "   "])
    def test_blank_is_input_error(self, code: str) -> None:
        with pytest.raises(ValidationAppError):
            canonicalize_code(code)

    def test_too_long_is_input_error(self) -> None:
        with pytest.raises(ValidationAppError):
            canonicalize_code("X" * 51)


class TestRejections:
    def test_excluded_items_checked_before_lookup(self) -> None:
        engine = _engine(excluded=[ExcludedItem(id="pack-1", name="Discovery Pack")])

        result = engine.validate("DOES-NOT-EXIST", D("100"), ["perfume-1", "pack-1"])

        assert _reason(result) is Reason.PROMO_EXCLUDED_ITEMS
        assert "Discovery Pack" in result.message

    def test_excluded_items_reject_valid_code(self) -> None:
        engine = _engine(
            make_promo(),
            excluded=[
                ExcludedItem(id="pack-1", name="Discovery Pack"),
                ExcludedItem(id="pack-2", name="Duo Pack"),
            ],
        )

        result = engine.validate("WELCOME10", D("100"), ["pack-2", "pack-1"])

        assert _reason(result) is Reason.PROMO_EXCLUDED_ITEMS
        assert result.message == "Promo codes cannot be used on: Duo Pack, Discovery Pack"

    def test_unknown_code(self) -> None:
        assert _reason(_engine(make_promo()).validate("NOPE", D("100"))) is Reason.INVALID_CODE

    def test_lookup_is_case_insensitive(self) -> None:
        result = _engine(make_promo()).validate("  welcome10 ", D("100"))
        assert isinstance(result, PromoAccepted)

    def test_inactive(self) -> None:
        result = _engine(make_promo(is_active=False)).validate("WELCOME10", D("100"))
        assert _reason(result) is Reason.INACTIVE

    def test_not_yet_started(self) -> None:
        result = _engine(make_promo(starts_at=NOW + timedelta(seconds=1))).validate("WELCOME10", D("100"))
        assert _reason(result) is Reason.NOT_YET_STARTED

    def test_starts_exactly_now_is_valid(self) -> None:
        result = _engine(make_promo(starts_at=NOW)).validate("WELCOME10", D("100"))
        assert isinstance(result, PromoAccepted)

    def test_expired_at_expiry_instant(self) -> None:
        result = _engine(make_promo(expires_at=NOW)).validate("WELCOME10", D("100"))
        assert _reason(result) is Reason.EXPIRED

    def test_no_expiry_never_expires(self) -> None:
        result = _engine(make_promo(expires_at=None)).validate("WELCOME10", D("100"))
        assert isinstance(result, PromoAccepted)

    def test_usage_cap_reached(self) -> None:
        result = _engine(make_promo(max_uses=1, current_uses=1)).validate("WELCOME10", D("100"))
        assert _reason(result) is Reason.USAGE_LIMIT_REACHED

    def test_below_minimum_states_minimum(self) -> None:
        result = _engine(make_promo(min_order_amount=D("75"))).validate("WELCOME10", D("74.99"))

        assert _reason(result) is Reason.BELOW_MINIMUM
        assert result.message == "Minimum order amount: 75.00 EUR"

    def test_minimum_reached_exactly(self) -> None:
        result = _engine(make_promo(min_order_amount=D("75"))).validate("WELCOME10", D("75.00"))
        assert isinstance(result, PromoAccepted)

    def test_expired_reported_before_below_minimum(self) -> None:
        promo = make_promo(expires_at=NOW - timedelta(days=1), min_order_amount=D("500"))
        assert _reason(_engine(promo).validate("WELCOME10", D("10"))) is Reason.EXPIRED

    def test_inactive_reported_before_expired(self) -> None:
        promo = make_promo(is_active=False, expires_at=NOW - timedelta(days=1))
        assert _reason(_engine(promo).validate("WELCOME10", D("10"))) is Reason.INACTIVE


class TestDiscounts:
    def test_percentage(self) -> None:
        result = _engine(make_promo()).validate("WELCOME10", D("200.00"))

        assert isinstance(result, PromoAccepted)
        assert result.discount_amount == D("20.00")

    def test_percentage_rounds_half_up(self) -> None:
        # 10% of 0.25 = 0.025 -> 0.03
        result = _engine(make_promo()).validate("WELCOME10", D("0.25"))
        assert result.discount_amount == D("0.03")

    def test_fixed_capped_at_subtotal(self) -> None:
        promo = make_promo(discount_type=DiscountType.FIXED, discount_value=D("50"))
        result = _engine(promo).validate("WELCOME10", D("30.00"))
        assert result.discount_amount == D("30.00")

    def test_fixed_below_subtotal(self) -> None:
        promo = make_promo(discount_type=DiscountType.FIXED, discount_value=D("15.5"))
        result = _engine(promo).validate("WELCOME10", D("30.00"))
        assert result.discount_amount == D("15.50")

    def test_no_subtotal_skips_minimum_and_discount(self) -> None:
        promo = make_promo(min_order_amount=D("100"))
        result = _engine(promo).validate("WELCOME10")

        assert isinstance(result, PromoAccepted)
        assert result.discount_amount == D("0.00")

    def test_public_response_fields(self) -> None:
        response = _engine(make_promo()).validate("WELCOME10", D("200")).to_response()

        assert response.valid is True
        assert response.promo_code.code == "WELCOME10"
        assert response.promo_code.id == "promo-1"
        assert "current_uses" not in response.promo_code.model_dump()


def test_validate_is_pure() -> None:
    engine = _engine(make_promo(max_uses=5, current_uses=2))

    first = engine.validate("WELCOME10", D("120"), ["a", "b"], now=NOW)
    second = engine.validate("WELCOME10", D("120"), ["a", "b"], now=NOW)

    assert first == second


def test_explicit_now_overrides_clock() -> None:
    engine = _engine(make_promo())
    later = NOW + timedelta(days=31)

    assert _reason(engine.validate("WELCOME10", D("100"), now=later)) is Reason.EXPIRED


def test_naive_store_timestamps_are_utc() -> None:
    promo = make_promo(expires_at=(NOW + timedelta(hours=1)).replace(tzinfo=None))
    assert isinstance(_engine(promo).validate("WELCOME10", D("100")), PromoAccepted)


def test_negative_subtotal_is_input_error() -> None:
    with pytest.raises(ValidationAppError):
        _engine(make_promo()).validate("WELCOME10", D("-1"))


class TestMalformedRecords:
    @pytest.mark.parametrize(
        "overrides",
        [
            {"discount_value": D("-5")},
            {"discount_value": D("150")},
            {"min_order_amount": D("-1")},
            {"max_uses": -1},
            {"current_uses": -2},
        ],
    )
    def test_rejected_at_read_time(self, overrides: dict) -> None:
        with pytest.raises(MalformedRecordAppError):
            _engine(make_promo(**overrides)).validate("WELCOME10", D("100"))

    def test_fixed_above_100_is_fine(self) -> None:
        promo = make_promo(discount_type=DiscountType.FIXED, discount_value=D("150"))
        assert _engine(promo).validate("WELCOME10", D("300")).discount_amount == D("150.00")

    def test_percentage_of_100_is_fine(self) -> None:
        promo = make_promo(discount_value=D("100"))
        assert _engine(promo).validate("WELCOME10", D("80")).discount_amount == D("80.00")


class TestLookupFailures:
    class _BrokenStore(InMemoryPromoStore):
        def find_promo_by_code(self, code):
            raise StorageError("database unreachable")

    def test_store_failure_is_not_invalid_code(self) -> None:
        engine = PromoEngine(self._BrokenStore(), clock=lambda: NOW)

        with pytest.raises(LookupFailedAppError) as exc_info:
            engine.validate("WELCOME10", D("100"))

        assert exc_info.value.code == "lookup_failed"
        assert "database unreachable" not in exc_info.value.message


class TestRedeem:
    def test_redeem_increments_uses(self) -> None:
        store = InMemoryPromoStore([make_promo(max_uses=2)])
        engine = PromoEngine(store, clock=lambda: NOW)

        assert isinstance(engine.redeem("WELCOME10", D("100")), PromoAccepted)
        assert store.find_promo_by_code("WELCOME10").current_uses == 1

    def test_redeem_revalidates(self) -> None:
        store = InMemoryPromoStore([make_promo(max_uses=1)])
        engine = PromoEngine(store, clock=lambda: NOW)

        assert isinstance(engine.validate("WELCOME10", D("100")), PromoAccepted)
        engine.redeem("WELCOME10", D("100"))

        assert _reason(engine.redeem("WELCOME10", D("100"))) is Reason.USAGE_LIMIT_REACHED

    def test_redeem_after_expiry_is_rejected(self) -> None:
        store = InMemoryPromoStore([make_promo()])
        engine = PromoEngine(store, clock=lambda: NOW)

        result = engine.redeem("WELCOME10", D("100"), now=NOW + timedelta(days=60))

        assert _reason(result) is Reason.EXPIRED
        assert store.find_promo_by_code("WELCOME10").current_uses == 0

    def test_concurrent_redemptions_take_one_slot(self) -> None:
        store = InMemoryPromoStore([make_promo(max_uses=1)])
        engine = PromoEngine(store, clock=lambda: NOW)
        results = []
        barrier = threading.Barrier(8)

        def worker() -> None:
            barrier.wait()
            results.append(engine.redeem("WELCOME10", D("100")))

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(isinstance(r, PromoAccepted) for r in results) == 1
        assert store.find_promo_by_code("WELCOME10").current_uses == 1
