"""API key check for internal endpoints.

Storefront-facing endpoints (promo validation, quotes, settings) are open.
Promo redemption is called by the order finalization service and must carry
an ``X-API-Key`` header matching one of ``APP_API_KEYS``. Failures are raised
as AuthenticationAppError and rendered by the global handler (403).
"""

from __future__ import annotations

import hmac
import logging
from typing import Annotated

from fastapi import Header

from storefront.core.config import settings
from storefront.core.errors import AuthenticationAppError
from storefront.core.logging import hash_identifier

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Split a comma-separated key list, ignoring blanks.

    >>> sorted(parse_api_keys("k1, k2 ,,k1"))
    ['k1', 'k2']
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def validate_api_key(provided_key: str | None) -> None:
    """Raise unless ``provided_key`` is one of the configured keys.

    Raises:
        AuthenticationAppError: ``missing_api_key``, ``api_keys_not_configured``
            or ``invalid_api_key``.
    """
    if not settings.app.api_key_required:
        return

    if not provided_key:
        logger.warning("auth.rejected", extra={"reason": "missing_api_key"})
        raise AuthenticationAppError(
            code="missing_api_key",
            message=f"Missing API key. Provide the {API_KEY_HEADER} header.",
        )

    valid_keys = parse_api_keys(settings.app.api_keys)
    if not valid_keys:
        logger.error("auth.rejected", extra={"reason": "api_keys_not_configured"})
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    # No short-circuit: every configured key is compared
    matches = [hmac.compare_digest(provided_key.encode(), key.encode()) for key in valid_keys]
    if not any(matches):
        logger.warning(
            "auth.rejected",
            extra={"reason": "invalid_api_key", "api_key_hash": hash_identifier(provided_key)},
        )
        raise AuthenticationAppError(code="invalid_api_key", message="Invalid API key")

    logger.debug("auth.accepted", extra={"api_key_hash": hash_identifier(provided_key)})


async def verify_api_key(
    x_api_key: Annotated[str | None, Header(alias=API_KEY_HEADER)] = None,
) -> None:
    """FastAPI dependency guarding internal routes.

    Usage:
        @router.post("/promo/redeem", dependencies=[Depends(verify_api_key)])
    """
    validate_api_key(x_api_key)
