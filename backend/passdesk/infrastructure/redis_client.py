"""
Redis connection for the cross-process sync lock.
Redis is optional: when disabled or unreachable the application runs without
it and the sync job falls back to its in-process guard.
"""

from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from passdesk.core.config import Settings
from passdesk.core.logging import get_logger

logger = get_logger(__name__)


async def connect_redis(settings: Settings) -> Optional[redis.Redis]:
    """Create and ping a Redis client. Returns None if Redis is disabled or down."""
    if not settings.REDIS_ENABLED:
        return None

    client = redis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_timeout=5,
        retry_on_timeout=True,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as e:
        logger.error("redis_connection_failed", error=str(e))
        await client.aclose()
        return None

    logger.info("redis_connected", url=settings.REDIS_URL)
    return client


async def close_redis(client: Optional[redis.Redis]) -> None:
    if client is not None:
        await client.aclose()
