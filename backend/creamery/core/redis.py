"""Async Redis connection manager.

The request-scoped client lives on app.state; a module-level reference is
kept for non-request callers such as schedule locks.
"""

import logging

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from creamery.core.config import settings

logger = logging.getLogger(__name__)

_fallback_client: aioredis.Redis | None = None


async def init_redis(app_state: object) -> aioredis.Redis | None:
    """Connect to Redis and store the client on app.state.

    Returns None when Redis cannot be reached; schedule locks then fall back
    to the in-process registry.
    """
    global _fallback_client
    client = aioredis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
    )
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Redis unavailable (%s), using in-process schedule locks", exc)
        await client.aclose()
        app_state.redis = None  # type: ignore[attr-defined]
        return None
    app_state.redis = client  # type: ignore[attr-defined]
    _fallback_client = client
    return client


async def close_redis(app_state: object) -> None:
    """Close the Redis connection stored on app.state."""
    global _fallback_client
    client: aioredis.Redis | None = getattr(app_state, "redis", None)
    if client is not None:
        await client.aclose()
        app_state.redis = None  # type: ignore[attr-defined]
    _fallback_client = None


def get_redis() -> aioredis.Redis:
    """Accessor for non-request contexts (e.g. schedule locks).

    Raises RuntimeError when Redis was never initialised or is unavailable.
    """
    if _fallback_client is None:
        raise RuntimeError("Redis client not initialized. Call init_redis() first.")
    return _fallback_client
