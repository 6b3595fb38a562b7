"""
Rate Limiting Module

Sliding-window rate limiting for the public application endpoint, backed
by Redis sorted sets. Falls back to in-memory storage when Redis is not
available (single-instance only).
"""

import logging
import time
from collections.abc import Callable

from fastapi import HTTPException, Request, status

from research_engine.core.redis import get_redis

logger = logging.getLogger(__name__)

# {key: [timestamp, ...]}
_memory_store: dict[str, list[float]] = {}


class RateLimitExceeded(HTTPException):
    """Raised when a caller exceeds its request budget."""

    def __init__(self, limit: int, window_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": f"Rate limit exceeded. Maximum {limit} requests per {window_seconds} seconds.",
                "retry_after_seconds": window_seconds,
            },
            headers={"Retry-After": str(window_seconds)},
        )


async def _check_rate_limit_redis(client, key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    window_start = now - window_seconds

    pipe = client.pipeline()
    pipe.zremrangebyscore(key, 0, window_start)
    pipe.zcard(key)
    pipe.zadd(key, {str(now): now})
    pipe.expire(key, window_seconds)

    results = await pipe.execute()
    return results[1] < limit


def _check_rate_limit_memory(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    window_start = now - window_seconds

    hits = [ts for ts in _memory_store.get(key, []) if ts > window_start]
    if len(hits) >= limit:
        _memory_store[key] = hits
        return False

    hits.append(now)
    _memory_store[key] = hits
    return True


async def check_rate_limit(key: str, limit: int, window_seconds: int) -> bool:
    """
    Check if a request is within rate limits.

    Tries Redis first, falls back to in-memory storage.

    Returns:
        True if request is allowed, False if rate limit exceeded
    """
    client = get_redis()

    if client is not None:
        try:
            return await _check_rate_limit_redis(client, key, limit, window_seconds)
        except Exception as e:
            logger.warning(f"Redis rate limit check failed, using memory: {e}")

    return _check_rate_limit_memory(key, limit, window_seconds)


def client_ip_key(request: Request) -> str:
    """
    Key a request by client IP and route template.

    Applications to different projects share one budget per client.
    """
    client_ip = request.client.host if request.client else "unknown"
    route = request.scope.get("route")
    path = getattr(route, "path", None) or request.url.path
    return f"rate_limit:{client_ip}:{path}"


def rate_limiter(
    limit: int,
    window_seconds: int,
    key_func: Callable[[Request], str] = client_ip_key,
):
    """
    Build a FastAPI dependency enforcing a rate limit.

    Usage:
        @router.post("/apply", dependencies=[Depends(rate_limiter(5, 3600))])
        async def apply(...):
            ...

    Raises:
        RateLimitExceeded: When the limit is exceeded (HTTP 429)
    """

    async def dependency(request: Request) -> None:
        key = key_func(request)
        if not await check_rate_limit(key, limit, window_seconds):
            logger.warning(f"Rate limit exceeded for {key}: {limit}/{window_seconds}s")
            raise RateLimitExceeded(limit, window_seconds)

    return dependency


__all__ = [
    "RateLimitExceeded",
    "check_rate_limit",
    "client_ip_key",
    "rate_limiter",
]
