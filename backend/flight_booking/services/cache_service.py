"""
Redis caching service for seat availability reads.

CACHING STRATEGY
================

What we cache:
  - Per-flight availability responses (all fare class pools, JSON-serialized)
  - Cache key pattern: "availability:flight={flight_id}"

Why:
  - Availability is polled far more often than it changes
  - Short TTL (REDIS_CACHE_TTL, default 30s) bounds staleness

Invalidation strategy:
  - After committing a reserve/release/publish/retire, the caller deletes
    the flight's key, so the next read refills from PostgreSQL

Why the cache is never consulted when booking:
  - The seat counter is the contended resource; only the conditional UPDATE
    in seat_pool.reserve decides whether seats exist. A stale cached
    "5 remaining" must never let a booking through.

Redis is advisory: every failure here is logged and the caller carries on
against the database.
"""

import json
from typing import Optional

import redis.asyncio as redis
from flight_booking.core.config import get_settings
from flight_booking.core.logging import get_logger
from flight_booking.core.metrics import record_cache_operation

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


def _make_availability_key(flight_id: int) -> str:
    return f"availability:flight={flight_id}"


async def get_cached_availability(flight_id: int) -> Optional[dict]:
    client = await get_redis()
    if not client:
        return None

    key = _make_availability_key(flight_id)
    try:
        data = await client.get(key)
        record_cache_operation("get", hit=data is not None)
        if data:
            return json.loads(data)
    except Exception as e:
        logger.error("cache_get_error", key=key, error=str(e))

    return None


async def set_cached_availability(flight_id: int, data: dict) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_availability_key(flight_id)
    try:
        await client.setex(key, settings.REDIS_CACHE_TTL, json.dumps(data, default=str))
        record_cache_operation("set", hit=True)
    except Exception as e:
        logger.error("cache_set_error", key=key, error=str(e))


async def invalidate_availability(flight_id: int) -> None:
    client = await get_redis()
    if not client:
        return

    key = _make_availability_key(flight_id)
    try:
        await client.delete(key)
        logger.debug("cache_invalidated", key=key)
    except Exception as e:
        logger.error("cache_invalidation_error", key=key, error=str(e))


async def get_cache_stats() -> dict:
    """Get Redis cache statistics for the health endpoint."""
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
