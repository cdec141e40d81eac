"""
Redis Client

Shared async Redis connection used for rate limiting and short-lived
voucher identity verification state.
"""

import logging

from redis.asyncio import Redis, from_url

from vulcan.core.config import settings

logger = logging.getLogger(__name__)

redis_client: Redis | None = None


async def init_redis() -> Redis:
    """
    Connect to Redis on startup.

    Raises if the server cannot be pinged; the caller decides whether that
    is fatal for the environment.
    """
    global redis_client
    client = from_url(
        settings.redis_url,
        encoding="utf-8",
        decode_responses=True,
    )
    await client.ping()
    redis_client = client
    return redis_client


async def get_redis() -> Redis | None:
    """
    Return the Redis client, or None if Redis was not initialised.

    Usage in FastAPI:
        async def endpoint(redis: Redis | None = Depends(get_redis)):
            if redis is None:
                ...
    """
    return redis_client


def is_redis_available() -> bool:
    return redis_client is not None


async def close_redis() -> None:
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None
        logger.info("Redis connection closed")
