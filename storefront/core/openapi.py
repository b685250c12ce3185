"""OpenAPI customization.

Adds the ``X-API-Key`` security scheme, applied only to internal operations
(promo redemption), and the tags metadata shown in the docs.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

# Paths called by other services rather than by the storefront front end
INTERNAL_PATHS = ("/v1/promo/redeem",)

TAGS_METADATA = [
    {"name": "Promo", "description": "Promo code validation and redemption."},
    {"name": "Cart", "description": "Cart price quotes."},
    {"name": "Settings", "description": "Public storefront settings."},
    {"name": "Health", "description": "Liveness checks."},
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and API key security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        security_schemes = components.setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Key of the calling service (order finalization).",
            },
        )

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        for tag in TAGS_METADATA:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        for path, methods in schema.get("paths", {}).items():
            if path not in INTERNAL_PATHS:
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = [{"ApiKeyAuth": []}]

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
