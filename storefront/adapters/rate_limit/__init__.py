"""Rate limiting adapters.

The service starts with an in-memory limiter; a shared store can be added
behind the same interface without changing the API layer.
"""

from storefront.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from storefront.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryFixedWindowRateLimiter",
    "RateLimitResult",
]
