"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports the settings module.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"
os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("APP_RATE_LIMIT_ENABLED", "true")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest
from fastapi.testclient import TestClient

from storefront.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from storefront.adapters.storage import (
    DiscountType,
    ExcludedItem,
    InMemoryPromoStore,
    InMemorySettingsStore,
    PromoCode,
    Stores,
)
from storefront.core.app_factory import create_app
from storefront.schemas.cart import CartLine
from storefront.services.promo_service import PromoEngine

NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


def make_promo(**overrides: Any) -> PromoCode:
    base: dict[str, Any] = {
        "id": "promo-1",
        "code": "WELCOME10",
        "description": "10% off your first order",
        "discount_type": DiscountType.PERCENTAGE,
        "discount_value": Decimal("10"),
        "min_order_amount": Decimal("0"),
        "max_uses": None,
        "current_uses": 0,
        "starts_at": NOW - timedelta(days=30),
        "expires_at": NOW + timedelta(days=30),
        "is_active": True,
    }
    base.update(overrides)
    return PromoCode(**base)


def make_line(**overrides: Any) -> CartLine:
    base: dict[str, Any] = {
        "product_id": "oud-royal",
        "unit_price_by_size": {},
        "base_price": Decimal("40"),
        "selected_size": "10ml",
        "quantity": 1,
        "stock": None,
    }
    base.update(overrides)
    return CartLine(**base)


@pytest.fixture
def promo_store() -> InMemoryPromoStore:
    return InMemoryPromoStore(
        promo_codes=[
            make_promo(),
            make_promo(
                id="promo-2",
                code="FIXED50",
                description="50 EUR off",
                discount_type=DiscountType.FIXED,
                discount_value=Decimal("50"),
            ),
            make_promo(
                id="promo-3",
                code="BIGSPEND",
                min_order_amount=Decimal("100"),
            ),
            make_promo(
                id="promo-4",
                code="LASTONE",
                max_uses=1,
                current_uses=0,
            ),
        ],
        excluded_items=[
            ExcludedItem(id="pack-discovery", name="Discovery Pack", kind="pack"),
        ],
    )


@pytest.fixture
def settings_store() -> InMemorySettingsStore:
    return InMemorySettingsStore()


@pytest.fixture
def engine(promo_store: InMemoryPromoStore) -> PromoEngine:
    return PromoEngine(promo_store, currency="EUR", clock=lambda: NOW)


@pytest.fixture
def app(promo_store, settings_store, engine):
    return create_app(
        stores=Stores(promo=promo_store, settings=settings_store),
        rate_limiter=InMemoryFixedWindowRateLimiter(),
        promo_engine=engine,
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def valid_api_key_headers() -> dict[str, str]:
    return {"X-API-Key": "test-api-key-123"}
