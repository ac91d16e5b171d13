"""
Redis client used for per-truck locks.
"""

import logging

import redis.asyncio as redis
from redis.exceptions import RedisError

from fleetdesk.app.core.config import settings

logger = logging.getLogger("fleetdesk.redis")

redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """FastAPI dependency returning the shared client."""
    return redis_client


async def ping_redis() -> bool:
    try:
        return await redis_client.ping()
    except RedisError as e:
        logger.warning("Redis ping failed: %s", e)
        return False
