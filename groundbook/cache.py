"""
Redis caching for the availability read model
Occupancy snapshots per (ground, date); never consulted by a write path
"""
import json
import logging
from datetime import date
from typing import Any, Optional

from .config import AVAILABILITY_CACHE_TTL, CACHE_ENABLED
from .rate_limiter import get_redis_client

logger = logging.getLogger(__name__)


class Cache:
    """Redis cache wrapper with JSON serialization; every failure degrades to a miss"""

    def __init__(self, enabled: bool = True):
        self.enabled = enabled
        self.redis_client = None

    def _get_client(self):
        """Lazy load Redis client"""
        if not self.enabled:
            return None
        if self.redis_client is None:
            try:
                self.redis_client = get_redis_client()
            except Exception as e:
                logger.warning(f"⚠️ Redis cache unavailable: {e}")
                return None
        return self.redis_client

    def get(self, key: str) -> Optional[Any]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.get(key)
            if value:
                logger.debug(f"✅ Cache HIT: {key}")
                return json.loads(value)
            logger.debug(f"❌ Cache MISS: {key}")
            return None
        except Exception as e:
            logger.error(f"❌ Cache get error for {key}: {e}")
            return None

    def set(self, key: str, value: Any, ttl: int = 3600) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.setex(key, ttl, json.dumps(value))
            logger.debug(f"✅ Cache SET: {key} (TTL: {ttl}s)")
            return True
        except Exception as e:
            logger.error(f"❌ Cache set error for {key}: {e}")
            return False

    def delete(self, key: str) -> bool:
        client = self._get_client()
        if not client:
            return False

        try:
            client.delete(key)
            logger.debug(f"✅ Cache DELETE: {key}")
            return True
        except Exception as e:
            logger.error(f"❌ Cache delete error for {key}: {e}")
            return False

    def incr(self, key: str, ttl: int = 3600) -> Optional[int]:
        client = self._get_client()
        if not client:
            return None

        try:
            value = client.incr(key)
            client.expire(key, ttl)
            logger.debug(f"✅ Cache INCR: {key} -> {value}")
            return int(value)
        except Exception as e:
            logger.error(f"❌ Cache incr error for {key}: {e}")
            return None


# Global cache instance
cache = Cache(enabled=CACHE_ENABLED)

# Generations must outlive every snapshot stored under them
GENERATION_TTL = 7 * 24 * 3600


def generation_key(ground_id: str, booking_date: date) -> str:
    return f"availability:gen:{ground_id}:{booking_date.isoformat()}"


def availability_key(ground_id: str, booking_date: date, generation: int) -> str:
    return f"availability:{ground_id}:{booking_date.isoformat()}:{generation}"


def get_occupancy_generation(ground_id: str, booking_date: date) -> int:
    """
    Current write generation for one ground and date.
    Read it before loading bookings and store the snapshot under it: a write
    that commits in between bumps the generation, so the older snapshot is never read.
    """
    generation = cache.get(generation_key(ground_id, booking_date))
    return int(generation) if generation else 0


def get_occupancy_cached(ground_id: str, booking_date: date, generation: int) -> Optional[list[dict]]:
    """Cached occupancy snapshot for one ground, date and generation, or None on miss"""
    return cache.get(availability_key(ground_id, booking_date, generation))


def set_occupancy_cached(
    ground_id: str, booking_date: date, generation: int, occupancies: list[dict]
) -> bool:
    return cache.set(
        availability_key(ground_id, booking_date, generation), occupancies, AVAILABILITY_CACHE_TTL
    )


def invalidate_occupancy(ground_id: str, booking_date: date) -> bool:
    """Bump the generation after any booking write for this ground and date"""
    return cache.incr(generation_key(ground_id, booking_date), GENERATION_TTL) is not None


def get_cache_stats() -> dict:
    """Cache statistics for the health endpoint"""
    client = cache._get_client()
    if not client:
        return {"available": False, "enabled": cache.enabled}

    try:
        info = client.info()
        hits = info.get("keyspace_hits", 0)
        misses = info.get("keyspace_misses", 0)
        return {
            "available": True,
            "enabled": True,
            "used_memory": info.get("used_memory_human"),
            "hit_rate": hits / max(hits + misses, 1) * 100,
        }
    except Exception as e:
        logger.error(f"❌ Failed to get cache stats: {e}")
        return {"available": False, "enabled": True, "error": str(e)}
