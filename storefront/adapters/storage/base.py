"""Storage interfaces and the records the pricing core reads.

Records mirror the rows the storefront database holds. They deliberately
carry no range constraints: the promo engine checks stored invariants at
read time so that a corrupted row is reported instead of priced.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class PromoCode(BaseModel):
    """A discount rule, owned by the admin back office."""

    model_config = ConfigDict(frozen=True)

    id: str
    code: str
    description: str | None = None
    discount_type: DiscountType
    discount_value: Decimal
    min_order_amount: Decimal = Decimal("0")
    max_uses: int | None = None
    current_uses: int = 0
    starts_at: datetime
    expires_at: datetime | None = None
    is_active: bool = True


class ExcludedItem(BaseModel):
    """A product or pack flagged ``promo_allowed = false``."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    kind: str = Field("pack", description="'product' or 'pack'")


class AbstractPromoStore(ABC):
    """Read access to promo codes and exclusion flags, plus redemption."""

    @abstractmethod
    def find_promo_by_code(self, code: str) -> PromoCode | None:
        """Return the record whose canonical code equals ``code``.

        Raises:
            StorageError: If the backing store is unavailable.
        """
        raise NotImplementedError

    @abstractmethod
    def find_excluded_items(self, ids: Iterable[str]) -> list[ExcludedItem]:
        """Return the items among ``ids`` that do not accept promo codes.

        Raises:
            StorageError: If the backing store is unavailable.
        """
        raise NotImplementedError

    @abstractmethod
    def try_redeem(self, promo_id: str) -> bool:
        """Atomically increment ``current_uses`` if a slot is left.

        Returns:
            True if the redemption was recorded, False if the cap was reached.

        Raises:
            StorageError: If the backing store is unavailable.
        """
        raise NotImplementedError


class AbstractSettingsStore(ABC):
    """Read access to admin-configured storefront settings."""

    @abstractmethod
    def get_shipping_settings(self) -> dict[str, Any] | None:
        """Return the raw shipping settings document, or None when unset.

        Raises:
            StorageError: If the backing store is unavailable.
        """
        raise NotImplementedError
