"""Factory for the promo and settings stores."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from storefront.adapters.storage.base import (
    AbstractPromoStore,
    AbstractSettingsStore,
    ExcludedItem,
    PromoCode,
)
from storefront.adapters.storage.in_memory import InMemoryPromoStore, InMemorySettingsStore
from storefront.core.config import settings
from storefront.core.errors import ValidationAppError

logger = logging.getLogger(__name__)


class CatalogSeed(BaseModel):
    """Shape of the JSON file used to seed the in-memory stores."""

    promo_codes: list[PromoCode] = Field(default_factory=list)
    excluded_items: list[ExcludedItem] = Field(default_factory=list)
    shipping: dict[str, Any] | None = None


@dataclass(frozen=True)
class Stores:
    promo: AbstractPromoStore
    settings: AbstractSettingsStore


def load_catalog_seed(path: str | Path) -> CatalogSeed:
    """Read and validate a catalog seed file.

    Raises:
        ValidationAppError: If the file is missing or does not match CatalogSeed.
    """
    seed_path = Path(path)
    try:
        raw = seed_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValidationAppError(
            code="catalog_seed_unreadable",
            message=f"Cannot read catalog seed file: {seed_path}",
            details={"hint": "Check APP_CATALOG_PATH"},
        ) from exc

    try:
        seed = CatalogSeed.model_validate_json(raw)
    except ValidationError as exc:
        raise ValidationAppError(
            code="catalog_seed_invalid",
            message=f"Catalog seed file is invalid: {exc.error_count()} error(s)",
            details={"hint": "See CatalogSeed for the expected shape"},
        ) from exc

    logger.info(
        "catalog_seed.loaded",
        extra={
            "promo_codes": len(seed.promo_codes),
            "excluded_items": len(seed.excluded_items),
            "has_shipping": seed.shipping is not None,
        },
    )
    return seed


def create_stores() -> Stores:
    """Instantiate stores based on settings.

    Raises:
        ValidationAppError: On an unknown backend or an invalid seed file.
    """
    backend = settings.app.storage_backend.lower()

    if backend == "memory":
        seed = CatalogSeed()
        if settings.app.catalog_path:
            seed = load_catalog_seed(settings.app.catalog_path)
        return Stores(
            promo=InMemoryPromoStore(seed.promo_codes, seed.excluded_items),
            settings=InMemorySettingsStore(seed.shipping),
        )

    raise ValidationAppError(
        code="storage_unknown_backend",
        message=f"Unknown storage backend: '{backend}'. Supported backends: memory",
    )
