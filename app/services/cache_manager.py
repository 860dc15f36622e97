"""
Cache Manager service: TTL-based in-process cache for analysis results and
per-session memory.
"""

import asyncio
import hashlib
import logging
import time
from typing import Any, Dict, Optional, Tuple

from app.models.requests import FlightMode, TripRequest


ANALYSIS_PREFIX = "analysis:"
SESSION_PREFIX = "session:"
AGENT_PREFIX = "agent:"


class CacheManager:
    """
    TTL-based cache manager.

    Stores JSON-ready dictionaries under namespaced keys ("analysis:",
    "session:", "agent:"), each entry with its own TTL. Analysis results are
    cached so repeated identical requests skip the remote AI call.
    """

    def __init__(self, ttl: int = 600, enabled: bool = True, max_size: int = 1000):
        """
        Initialize the Cache Manager.

        Args:
            ttl: Default time-to-live in seconds (default: 10 minutes)
            enabled: Whether caching is enabled
            max_size: Maximum number of cache entries
        """
        self.ttl = ttl
        self.enabled = enabled
        self.max_size = max_size
        self.logger = logging.getLogger(__name__)

        # Cache storage: {cache_key: (data, stored_at, access_count, ttl)}
        self._cache: Dict[str, Tuple[Dict[str, Any], float, int, int]] = {}

        self._lock = asyncio.Lock()

        self._stats = {
            'hits': 0,
            'misses': 0,
            'evictions': 0,
            'cleanups': 0
        }

        self.logger.info(f"CacheManager initialized: TTL={ttl}s, enabled={enabled}, max_size={max_size}")

    @staticmethod
    def request_fingerprint(request: TripRequest) -> str:
        """
        Build the raw fingerprint string for a trip request.

        Only fields that influence the analysis or the echoed context take
        part; free-text notes do not.
        """
        parts = [
            request.destination_name,
            request.destination_address or "",
            request.destination_city or "",
            request.destination_state or "",
            request.destination_pincode or "",
            request.event_name or "",
            request.departure_date,
            request.departure_time,
            request.transport_mode.value,
            request.current_location or "",
            request.user_timezone or "",
        ]
        if request.current_coords and request.destination_coords:
            parts.append(
                f"{request.current_coords.lat},{request.current_coords.lng}"
                f">{request.destination_coords.lat},{request.destination_coords.lng}"
            )
        if request.flight_mode != FlightMode.NONE:
            parts.extend([
                request.flight_mode.value,
                request.flight_airline or "",
                request.flight_number or "",
                request.flight_destination_city or "",
                request.flight_departure_time or "",
                request.pickup_flight_number or "",
                request.pickup_arrival_time or "",
            ])
        return "|".join(parts)

    def generate_cache_key(self, request: TripRequest) -> str:
        """
        Generate the analysis cache key for a trip request.

        Args:
            request: Validated trip request

        Returns:
            Key of the form "analysis:<md5 hex>"
        """
        digest = hashlib.md5(self.request_fingerprint(request).encode('utf-8')).hexdigest()
        cache_key = f"{ANALYSIS_PREFIX}{digest}"

        self.logger.debug(f"Generated cache key: {cache_key} for {request.destination_name}")
        return cache_key

    async def get(self, cache_key: str) -> Optional[Dict[str, Any]]:
        """
        Retrieve data from cache if available and not expired.

        Args:
            cache_key: Cache key to lookup

        Returns:
            Cached data if available and valid, None otherwise
        """
        if not self.enabled:
            return None

        async with self._lock:
            if cache_key not in self._cache:
                self._stats['misses'] += 1
                self.logger.debug(f"Cache MISS: {cache_key}")
                return None

            data, stored_at, access_count, ttl = self._cache[cache_key]
            current_time = time.time()

            if current_time - stored_at > ttl:
                self.logger.debug(f"Cache entry expired: {cache_key}")
                del self._cache[cache_key]
                self._stats['misses'] += 1
                return None

            self._cache[cache_key] = (data, stored_at, access_count + 1, ttl)
            self._stats['hits'] += 1

            self.logger.info(f"Cache HIT: {cache_key} (age: {int(current_time - stored_at)}s)")
            return dict(data)

    async def set(self, cache_key: str, data: Dict[str, Any], ttl: Optional[int] = None) -> None:
        """
        Store data in cache.

        Args:
            cache_key: Cache key to store under
            data: Data to cache
            ttl: Entry TTL in seconds, the manager default if omitted
        """
        if not self.enabled:
            return

        entry_ttl = ttl if ttl is not None else self.ttl

        async with self._lock:
            if len(self._cache) >= self.max_size and cache_key not in self._cache:
                self._evict_lru()

            self._cache[cache_key] = (dict(data), time.time(), 1, entry_ttl)

            self.logger.info(f"Cache SET: {cache_key} (TTL: {entry_ttl}s, size: {len(self._cache)})")

    async def invalidate(self, cache_key: str) -> bool:
        """
        Invalidate a specific cache entry.

        Returns:
            True if entry was found and removed, False otherwise
        """
        if not self.enabled:
            return False

        async with self._lock:
            if cache_key in self._cache:
                del self._cache[cache_key]
                self.logger.info(f"Invalidated cache entry: {cache_key}")
                return True
            return False

    async def cleanup_expired(self) -> int:
        """
        Remove all expired cache entries.

        Returns:
            Number of entries removed
        """
        if not self.enabled:
            return 0

        async with self._lock:
            current_time = time.time()
            expired_keys = [
                cache_key
                for cache_key, (_, stored_at, _, ttl) in self._cache.items()
                if current_time - stored_at > ttl
            ]

            for key in expired_keys:
                del self._cache[key]

            removed_count = len(expired_keys)
            if removed_count > 0:
                self._stats['cleanups'] += 1
                self.logger.info(f"Cleaned up {removed_count} expired cache entries")

            return removed_count

    async def clear(self) -> int:
        """
        Clear all cache entries.

        Returns:
            Number of entries removed
        """
        async with self._lock:
            count = len(self._cache)
            self._cache.clear()
            self.logger.info(f"Cleared all cache entries ({count} removed)")
            return count

    def _evict_lru(self) -> None:
        """Evict the least used, oldest entry. Caller holds the lock."""
        if not self._cache:
            return

        lru_key = min(
            self._cache.keys(),
            key=lambda k: (self._cache[k][2], self._cache[k][1])  # access_count, then stored_at
        )

        del self._cache[lru_key]
        self._stats['evictions'] += 1
        self.logger.debug(f"Evicted LRU cache entry: {lru_key}")

    @property
    def available(self) -> bool:
        return self.enabled

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary containing cache statistics
        """
        hit_rate = 0.0
        total_requests = self._stats['hits'] + self._stats['misses']
        if total_requests > 0:
            hit_rate = self._stats['hits'] / total_requests

        return {
            'enabled': self.enabled,
            'ttl': self.ttl,
            'max_size': self.max_size,
            'current_size': len(self._cache),
            'hits': self._stats['hits'],
            'misses': self._stats['misses'],
            'hit_rate': round(hit_rate, 3),
            'evictions': self._stats['evictions'],
            'cleanups': self._stats['cleanups']
        }

    def get_cache_info(self) -> Dict[str, Any]:
        """
        Get detailed cache information including entry details.
        """
        current_time = time.time()
        entries = []

        for cache_key, (data, stored_at, access_count, ttl) in self._cache.items():
            age = int(current_time - stored_at)
            entries.append({
                'key': cache_key,
                'namespace': cache_key.split(':', 1)[0],
                'age_seconds': age,
                'expires_in_seconds': max(0, ttl - age),
                'access_count': access_count,
                'data_size': len(str(data))
            })

        entries.sort(key=lambda x: x['age_seconds'])

        return {
            'stats': self.get_stats(),
            'entries': entries
        }

