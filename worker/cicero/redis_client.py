"""Shared Redis connection for the trigger queue and rate limiting."""

import logging

import redis.asyncio as aioredis

from cicero.config import REDIS_URL

logger = logging.getLogger(__name__)

# Global Redis client
_redis: aioredis.Redis | None = None


def get_redis() -> aioredis.Redis:
    """Get or create the Redis client.

    Returns:
        Async Redis client decoding responses to str
    """
    global _redis
    if _redis is None:
        _redis = aioredis.from_url(REDIS_URL, decode_responses=True)
        logger.info("Redis client created")
    return _redis


async def close_redis() -> None:
    """Close the Redis client."""
    global _redis
    if _redis:
        await _redis.aclose()
        _redis = None
        logger.info("Redis client closed")
