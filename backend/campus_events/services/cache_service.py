"""
Redis caching service for the public event listing.

CACHING STRATEGY
================

What we cache:
  - The approved-only event listing seen by anonymous users and students
    (paginated, JSON-serialized)
  - Cache key pattern: "events:public:page={page}&size={size}&status={status}"

  Organizer, reviewer and admin listings are per-principal and always read
  from the database.

Invalidation strategy:
  - Any event write (create, edit, status, review, delete) and any
    registration write (current_count changes) deletes every public page
  - TTL-based expiry as safety net (5 minutes)

  All public keys share the "events:public:" prefix so they can be found
  with SCAN and deleted.

Failure mode:
  Redis is advisory. Connection or command errors are logged and the caller
  falls back to the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from campus_events.core.config import get_settings
from campus_events.core.logging import get_logger
from campus_events.core.metrics import record_cache_operation

logger = get_logger(__name__)
settings = get_settings()

PUBLIC_LIST_PREFIX = "events:public:"

_redis_client: Optional[redis.Redis] = None


async def get_redis() -> Optional[redis.Redis]:
    """Get or create Redis connection. Returns None if Redis is disabled."""
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
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None


def make_public_list_key(page: int, page_size: int, status: Optional[int]) -> str:
    return f"{PUBLIC_LIST_PREFIX}page={page}&size={page_size}&status={status}"


async def get_cached_events(page: int, page_size: int, status: Optional[int]) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = make_public_list_key(page, page_size, status)
    try:
        data = await client.get(key)
        if data:
            record_cache_operation("get", hit=True)
            logger.debug("cache_hit", key=key)
            return json.loads(data)
        record_cache_operation("get", hit=False)
        logger.debug("cache_miss", key=key)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_events(
    page: int,
    page_size: int,
    status: Optional[int],
    data: dict,
) -> None:
    client = await get_redis()
    if not client:
        return

    key = make_public_list_key(page, page_size, status)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str, ensure_ascii=False))
        logger.debug("cache_set", key=key, ttl=settings.REDIS_CACHE_TTL)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_event_cache() -> None:
    client = await get_redis()
    if not client:
        return

    try:
        deleted = 0
        async for key in client.scan_iter(match=f"{PUBLIC_LIST_PREFIX}*", count=100):
            await client.delete(key)
            deleted += 1
        logger.info("cache_invalidated", keys_deleted=deleted)
    except Exception as e:
        logger.error("cache_invalidation_error", error=str(e))


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
