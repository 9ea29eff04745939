"""
Redis client for Course

Holds confirmation codes, pending e-mail changes and the password-recovery
rate gate, and carries outgoing e-mail jobs on a pub/sub channel. Unlike a
cache, the auth flows cannot run without it, so connection failures are not
papered over.
"""
import logging
from typing import Optional
import redis.asyncio as redis

logger = logging.getLogger(__name__)

# Global Redis client (initialized lazily)
_redis_client: Optional[redis.Redis] = None


def create_redis(dsn: str) -> redis.Redis:
    return redis.from_url(
        dsn,
        encoding="utf-8",
        decode_responses=True,
    )


async def get_redis(dsn: str) -> redis.Redis:
    """Get the shared Redis client, connecting on first use."""
    global _redis_client

    if _redis_client is None:
        client = create_redis(dsn)
        await client.ping()
        logger.info("Redis connection established")
        _redis_client = client

    return _redis_client


async def close_redis():
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")
