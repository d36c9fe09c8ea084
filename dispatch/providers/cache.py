"""Distance caching: a SQLite TTL store and a caching provider decorator.

A cache failure never aborts a lookup: reads fall through to the inner
provider and failed writes are logged and dropped.
"""

import logging
import sqlite3

from dispatch.core.db import get_cached_distance, set_cached_distance
from dispatch.core.errors import CacheFailureError
from dispatch.providers.base import DistanceCache, DistanceProvider

logger = logging.getLogger(__name__)


class SqliteDistanceCache(DistanceCache):
    """Entries older than ttl_hours read as misses."""

    def __init__(self, conn: sqlite3.Connection, ttl_hours: int = 24) -> None:
        self._conn = conn
        self._ttl_hours = ttl_hours

    def get(self, key: str) -> float | None:
        try:
            return get_cached_distance(self._conn, key, self._ttl_hours)
        except sqlite3.Error as e:
            msg = f"distance cache read failed for {key}: {e}"
            raise CacheFailureError(msg) from e

    def set(self, key: str, value: float) -> None:
        try:
            set_cached_distance(self._conn, key, value)
        except sqlite3.Error as e:
            msg = f"distance cache write failed for {key}: {e}"
            raise CacheFailureError(msg) from e


def cache_key(kind: str, from_lat: float, from_lng: float, to_lat: float, to_lng: float) -> str:
    return f"{kind}:{from_lat:.6f},{from_lng:.6f}:{to_lat:.6f},{to_lng:.6f}"


class CachedDistanceProvider(DistanceProvider):
    """Wraps another provider, checking the cache before each lookup."""

    def __init__(self, inner: DistanceProvider, cache: DistanceCache) -> None:
        self._inner = inner
        self._cache = cache

    async def get_distance(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float,
    ) -> float:
        key = cache_key("distance", from_lat, from_lng, to_lat, to_lng)
        cached = self._read(key)
        if cached is not None:
            return cached
        result = await self._inner.get_distance(from_lat, from_lng, to_lat, to_lng)
        self._write(key, result)
        return result

    async def get_travel_time(
        self, from_lat: float, from_lng: float, to_lat: float, to_lng: float,
    ) -> int:
        key = cache_key("traveltime", from_lat, from_lng, to_lat, to_lng)
        cached = self._read(key)
        if cached is not None:
            return int(cached)
        result = await self._inner.get_travel_time(from_lat, from_lng, to_lat, to_lng)
        self._write(key, float(result))
        return result

    async def close(self) -> None:
        await self._inner.close()

    def _read(self, key: str) -> float | None:
        try:
            value = self._cache.get(key)
        except CacheFailureError as e:
            logger.warning("Cache read failed, calling provider directly: %s", e)
            return None
        if value is not None:
            logger.debug("Cache hit: %s", key)
        return value

    def _write(self, key: str, value: float) -> None:
        try:
            self._cache.set(key, value)
        except CacheFailureError as e:
            logger.warning("Cache write failed, result not cached: %s", e)
