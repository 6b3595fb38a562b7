"""
Redis Configuration

Async Redis client used by the public rate limiter. Redis is optional:
when it cannot be reached at startup the API runs without it.
"""

import logging

from redis.asyncio import Redis, from_url

from research_engine.core.config import Settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis(settings: Settings) -> Redis | None:
    """
    Initialize the Redis connection.

    Returns:
        The client, or None if Redis is unreachable
    """
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    try:
        await client.ping()
    except Exception as e:
        logger.warning(f"Redis unavailable, continuing without it: {e}")
        await client.aclose()
        redis_client = None
        return None

    redis_client = client
    logger.info("Redis connection established")
    return redis_client


def get_redis() -> Redis | None:
    """Return the shared Redis client, or None if Redis is not available."""
    return redis_client


async def close_redis() -> None:
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
