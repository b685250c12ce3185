"""Storage adapter layer - promo codes, exclusion flags and settings."""

from storefront.adapters.storage.base import (
    AbstractPromoStore,
    AbstractSettingsStore,
    DiscountType,
    ExcludedItem,
    PromoCode,
)
from storefront.adapters.storage.factory import Stores, create_stores
from storefront.adapters.storage.in_memory import InMemoryPromoStore, InMemorySettingsStore

__all__ = [
    "AbstractPromoStore",
    "AbstractSettingsStore",
    "DiscountType",
    "ExcludedItem",
    "InMemoryPromoStore",
    "InMemorySettingsStore",
    "PromoCode",
    "Stores",
    "create_stores",
]
