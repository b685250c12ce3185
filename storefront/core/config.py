"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from decimal import Decimal
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    Pydantic Settings (v2) populates values from environment variables, so
    nested groups are created through default_factory instead of being
    passed to the container constructor.
    """

    return AppSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()


def _build_shipping_defaults() -> "ShippingDefaults":
    return ShippingDefaults()


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field(
        "json",
        description="Log format: 'json' (structured) or 'plain' (human readable)",
    )
    output: str = Field("stdout", description="Log output: 'stdout' or 'file'")
    file_path: str | None = Field(
        None,
        description="Log file path when output is 'file' (default logs/app.log)",
    )
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    currency: str = Field(
        "EUR",
        description="ISO 4217 currency code used for every amount",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required on internal endpoints",
    )
    api_keys: str | None = Field(
        None,
        description="Comma-separated list of valid API keys for authentication",
    )
    storage_backend: str = Field(
        "memory",
        description="Backend for promo/settings stores (supported: memory)",
    )
    catalog_path: str | None = Field(
        None,
        description="Optional JSON file used to seed the in-memory stores",
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable rate limiting per client IP",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    rate_limit_sweep_interval_seconds: int = Field(
        60,
        description="Interval between purges of expired rate limit windows",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class RateLimitBudget(BaseModel):
    """A named (limit, window) pair."""

    limit: int = Field(..., ge=1)
    window_seconds: int = Field(..., ge=1)


class RateLimitSettings(BaseSettings):
    """Per-endpoint rate limit budgets.

    Override with e.g. RATE_LIMIT_PROMO_VALIDATE='{"limit": 5, "window_seconds": 60}'.
    """

    promo_validate: RateLimitBudget = Field(
        default_factory=lambda: RateLimitBudget(limit=10, window_seconds=60),
        description="Promo code checks per client",
    )
    general: RateLimitBudget = Field(
        default_factory=lambda: RateLimitBudget(limit=100, window_seconds=60),
        description="Generic API budget per client (cart quotes)",
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )

    def budget(self, name: str) -> RateLimitBudget:
        value = getattr(self, name, None)
        if not isinstance(value, RateLimitBudget):
            raise KeyError(f"Unknown rate limit budget: {name!r}")
        return value


class ShippingDefaults(BaseSettings):
    """Shipping values used when the settings store is unavailable or unset."""

    free_shipping_threshold: Decimal = Field(Decimal("150.00"), ge=0)
    standard_price: Decimal = Field(Decimal("9.90"), ge=0)
    express_price: Decimal = Field(Decimal("14.90"), ge=0)
    enable_express: bool = Field(True)

    model_config = SettingsConfigDict(
        env_prefix="SHIPPING_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is malformed.
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=_build_log_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    shipping: ShippingDefaults = Field(default_factory=_build_shipping_defaults)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
