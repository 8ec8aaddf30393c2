"""
Redis caching service for per-user booking listings.

CACHING STRATEGY
================

What we cache:
  - "My bookings" listing responses (paginated, JSON-serialized)
  - Cache key pattern: "bookings:user:{user_id}:page={page}&limit={limit}"

Invalidation:
  - Any write touching a booking (create, update, delete) deletes every
    cached page of the owning user's listing
  - TTL-based expiry as safety net (5 minutes by default)

  All keys of one user share the prefix "bookings:user:{user_id}:", so a
  SCAN over that prefix finds them. The per-user keyspace is a handful of
  pages, so the SCAN cost is negligible.

Why NOT cache single bookings, admin listings or searches:
  - Single reads must reflect status changes immediately
  - Admin listings and searches span all users, so every write would have
    to invalidate them anyway

Redis is optional: when it is disabled or unreachable every call degrades
to a cache miss / no-op and the database answers.
"""

import json
from typing import Optional

import redis.asyncio as redis

from nestery.core.config import get_settings
from nestery.core.logging import get_logger
from nestery.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled or down."""
    global _redis_client

    if not settings.REDIS_ENABLED:
        return None

    if _redis_client is None:
        try:
            _redis_client = redis.from_url(
                settings.REDIS_URL,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                retry_on_timeout=True,
            )
            await _redis_client.ping()
            logger.info("redis_connected", url=settings.REDIS_URL)
        except Exception as e:
            logger.error("redis_connection_failed", error=str(e))
            _redis_client = None
            return None

    return _redis_client


async def close_redis() -> None:
    """Close Redis connection on shutdown."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def _user_prefix(user_id: int) -> str:
    return f"bookings:user:{user_id}:"


def _make_user_bookings_key(user_id: int, page: int, limit: int) -> str:
    return f"{_user_prefix(user_id)}page={page}&limit={limit}"


async def get_cached_user_bookings(user_id: int, page: int, limit: int) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_user_bookings_key(user_id, page, limit)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_user_bookings(user_id: int, page: int, limit: int, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_user_bookings_key(user_id, page, limit)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_user_bookings(user_id: int) -> None:
    """Drop every cached listing page of one user."""
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{_user_prefix(user_id)}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", user_id=user_id, keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", user_id=user_id, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for monitoring."""
    client = await get_redis()
    if not client:
        return {"status": "disabled"}

    try:
        info = await client.info("stats")
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "status": "connected",
            "hits": hits,
            "misses": misses,
            "hit_rate": round(hits / max(hits + misses, 1) * 100, 2),
        }
    except Exception as e:
        return {"status": "error", "error": str(e)}
