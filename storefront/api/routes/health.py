from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness check used by the load balancer.

    Returns:
        dict: ``status`` ("ok") and the number of clients currently tracked
        by the rate limiter.
    """

    return {
        "status": "ok",
        "rate_limited_clients": len(request.app.state.rate_limiter),
    }
