"""Accessors for application-owned services.

Services are built once by the app factory and stored on ``app.state``;
routes reach them through these dependencies so tests can swap them per app.
"""

from __future__ import annotations

from fastapi import Request

from storefront.adapters.storage.base import AbstractSettingsStore
from storefront.services.promo_service import PromoEngine


def get_promo_engine(request: Request) -> PromoEngine:
    return request.app.state.promo_engine


def get_settings_store(request: Request) -> AbstractSettingsStore:
    return request.app.state.stores.settings
