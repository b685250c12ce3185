"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: the increment-and-compare runs under a lock.
- A window starts at the first request for a key and lasts window_seconds;
  bursts straddling a window boundary are allowed.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Callable

from storefront.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class _WindowState:
    count: int
    window_reset_at: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter counting requests per key in a fixed window.

    Important:
        Counters live in process memory. With several Uvicorn/Gunicorn
        workers each worker enforces its own independent limits, so the
        effective global limit is ``limit * workers``.
    """

    def __init__(self, *, clock: Callable[[], float] = time.time) -> None:
        """Initialize the limiter.

        Args:
            clock: Time source returning UNIX time in seconds.
        """
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: dict[str, _WindowState] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def check(self, identifier: str, limit: int, window_seconds: int) -> RateLimitResult:
        """Count one request for the identifier and decide.

        Raises:
            ValueError: If identifier is empty or limit/window are not positive.
        """
        if not identifier:
            raise ValueError("identifier must be a non-empty string")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        with self._lock:
            now = self._clock()
            state = self._state_by_key.get(identifier)

            if state is None or state.window_reset_at < now:
                reset_at = now + window_seconds
                self._state_by_key[identifier] = _WindowState(count=1, window_reset_at=reset_at)
                return RateLimitResult(
                    allowed=True,
                    limit=limit,
                    remaining=limit - 1,
                    reset_in_seconds=window_seconds,
                    reset_at=reset_at,
                )

            state.count += 1
            reset_in = max(0, math.ceil(state.window_reset_at - now))

            if state.count > limit:
                return RateLimitResult(
                    allowed=False,
                    limit=limit,
                    remaining=0,
                    reset_in_seconds=reset_in,
                    reset_at=state.window_reset_at,
                )

            return RateLimitResult(
                allowed=True,
                limit=limit,
                remaining=limit - state.count,
                reset_in_seconds=reset_in,
                reset_at=state.window_reset_at,
            )

    def purge_expired(self) -> int:
        """Remove entries whose window has already ended.

        Entries still inside their window are kept.
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, s in self._state_by_key.items() if s.window_reset_at < now]
            for key in expired:
                del self._state_by_key[key]

        if expired:
            logger.debug(
                "rate_limit.purged",
                extra={"purged": len(expired), "remaining_keys": len(self)},
            )
        return len(expired)

    def reset(self) -> None:
        """Forget every counter."""
        with self._lock:
            self._state_by_key.clear()
