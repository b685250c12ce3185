"""In-memory stores.

Used for local development, tests and single-node demos. Thread-safe: the
redemption counter is compared and incremented under one lock, which is the
guarantee a database-backed store must provide with a transaction or a
conditional UPDATE.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Iterable

from storefront.adapters.storage.base import (
    AbstractPromoStore,
    AbstractSettingsStore,
    ExcludedItem,
    PromoCode,
)

logger = logging.getLogger(__name__)


def canonical_code(code: str) -> str:
    """Promo codes are compared trimmed and uppercased."""
    return code.strip().upper()


class InMemoryPromoStore(AbstractPromoStore):
    def __init__(
        self,
        promo_codes: Iterable[PromoCode] = (),
        excluded_items: Iterable[ExcludedItem] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._by_code: dict[str, PromoCode] = {}
        self._excluded: dict[str, ExcludedItem] = {}
        for promo in promo_codes:
            self.put_promo(promo)
        for item in excluded_items:
            self._excluded[item.id] = item

    def put_promo(self, promo: PromoCode) -> None:
        with self._lock:
            self._by_code[canonical_code(promo.code)] = promo

    def find_promo_by_code(self, code: str) -> PromoCode | None:
        with self._lock:
            return self._by_code.get(canonical_code(code))

    def find_excluded_items(self, ids: Iterable[str]) -> list[ExcludedItem]:
        seen: set[str] = set()
        found: list[ExcludedItem] = []
        with self._lock:
            for item_id in ids:
                if item_id in seen:
                    continue
                seen.add(item_id)
                item = self._excluded.get(item_id)
                if item is not None:
                    found.append(item)
        return found

    def try_redeem(self, promo_id: str) -> bool:
        with self._lock:
            for key, promo in self._by_code.items():
                if promo.id != promo_id:
                    continue
                if promo.max_uses is not None and promo.current_uses >= promo.max_uses:
                    return False
                self._by_code[key] = promo.model_copy(
                    update={"current_uses": promo.current_uses + 1}
                )
                logger.info(
                    "promo.redemption_recorded",
                    extra={
                        "promo_id": promo_id,
                        "current_uses": promo.current_uses + 1,
                        "max_uses": promo.max_uses,
                    },
                )
                return True
        return False


class InMemorySettingsStore(AbstractSettingsStore):
    def __init__(self, shipping: dict[str, Any] | None = None) -> None:
        self._lock = threading.RLock()
        self._shipping = dict(shipping) if shipping is not None else None

    def set_shipping_settings(self, shipping: dict[str, Any] | None) -> None:
        with self._lock:
            self._shipping = dict(shipping) if shipping is not None else None

    def get_shipping_settings(self) -> dict[str, Any] | None:
        with self._lock:
            return dict(self._shipping) if self._shipping is not None else None
