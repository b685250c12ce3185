"""Rate limiter interfaces.

The HTTP layer depends on this abstraction so a shared store (e.g. Redis)
can replace the per-process implementation without touching the routes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        limit: Max requests per window.
        remaining: Requests left in the current window (0 when blocked).
        reset_in_seconds: Whole seconds until the window resets (rounded up).
        reset_at: UNIX epoch seconds at which the window resets.
    """

    allowed: bool
    limit: int
    remaining: int
    reset_in_seconds: int
    reset_at: float


class AbstractRateLimiter(ABC):
    """Interface for rate limiters."""

    @abstractmethod
    def check(self, identifier: str, limit: int, window_seconds: int) -> RateLimitResult:
        """Count one request for ``identifier`` and decide whether it is allowed.

        Args:
            identifier: Unique key (e.g. ``promo:203.0.113.7``).
            limit: Maximum number of requests per window.
            window_seconds: Window length in seconds.

        Returns:
            RateLimitResult describing the decision. With valid arguments a
            check always produces a decision; it never fails on client input.

        Raises:
            ValueError: On an empty identifier or a limit/window below 1.
                Callers pass configured budgets, so this is a programming
                error, not a runtime outcome.
        """
        raise NotImplementedError

    def __len__(self) -> int:
        """Number of identifiers currently tracked."""
        return 0

    def purge_expired(self) -> int:
        """Drop state for windows that have ended. Returns the number removed."""
        return 0
