from __future__ import annotations

import json
import logging
from typing import Any

import redis
from ..core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

KEY_PREFIX = "gayatri"


def cache_key(*parts: Any) -> str:
    return ":".join([KEY_PREFIX, *(str(p) for p in parts)])


def _get_sync_redis() -> redis.Redis:
    """
    Fresh client per call; Celery workers and the API process never share
    a connection.
    """
    return redis.from_url(
        settings.REDIS_URL,
        decode_responses=True,
        socket_timeout=5,
        socket_connect_timeout=5,
    )


async def cached_get(
    key: str,
    set_value: Any | None = None,
    ttl: int | None = None,
) -> Any:
    """
    Async TTL cache backed by Redis.

        stats = await cached_get(key)                    # read
        await cached_get(key, set_value=stats, ttl=60)   # write with TTL

    Values are stored as JSON (datetimes as ISO strings). Any Redis failure
    behaves like a cache miss.
    """
    client = _get_sync_redis()
    try:
        if set_value is None:
            val = client.get(key)
            return json.loads(val) if val is not None else None

        serialized = json.dumps(set_value, default=str)
        if ttl is not None:
            client.set(key, serialized, ex=ttl)
        else:
            client.set(key, serialized)
        return set_value
    except redis.RedisError:
        logger.warning("Redis unavailable for key %s", key, extra={"step": "cache"})
        return None
    finally:
        client.close()


async def cache_delete(key: str) -> None:
    client = _get_sync_redis()
    try:
        client.delete(key)
    except redis.RedisError:
        logger.warning("Redis unavailable for key %s", key, extra={"step": "cache"})
    finally:
        client.close()
