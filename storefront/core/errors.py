"""Application-level exception types.

Only exceptional conditions are raised: malformed input, unavailable
collaborators, corrupted stored records. Promo rejections are ordinary
results (see storefront.services.promo_service) and never go through here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients."""

    hint: str
    field: str
    value: str
    allowed: list[str]
    retryable: bool
    context: dict[str, Any]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when caller input is invalid (never reaches storage)."""


class AuthenticationAppError(AppError):
    """Raised when authentication/authorization fails."""


class LookupFailedAppError(AppError):
    """Raised when a storage collaborator cannot be reached. Safe to retry."""


class MalformedRecordAppError(AppError):
    """Raised when a stored record violates its own invariants."""


class StorageError(Exception):
    """Raised by store adapters when the backing store is unavailable."""
