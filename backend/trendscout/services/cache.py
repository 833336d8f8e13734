"""
In-process TTL cache for discovery results.

Keys follow "trends:hybrid:<niche>" with "all" standing in for no niche.
Expired entries read as misses and are purged on the next write. Failed
fetches are never stored.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Dict, Generic, Optional, TypeVar

from trendscout.config import ALL_NICHES_SENTINEL, CACHE_KEY_PREFIX
from trendscout.models import CacheEntry

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CACHE_TTL_SECONDS = 14400


def get_cache_key(niche: Optional[str]) -> str:
    """
    Generate the cache key for a niche.

    Args:
        niche: Niche identifier, or None for all niches

    Returns:
        Cache key string, e.g. "trends:hybrid:fitness"
    """
    normalized = (niche or "").strip().lower() or ALL_NICHES_SENTINEL
    return f"{CACHE_KEY_PREFIX}:{normalized}"


class TTLCache(Generic[T]):
    """Thread-safe key/value store with per-entry expiry."""

    def __init__(self, default_ttl: float = DEFAULT_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry[T]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[T]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry.value

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            self._entries[key] = CacheEntry(value=value, stored_at=now, expires_at=now + ttl)

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, int]:
        now = self._clock()
        with self._lock:
            live = sum(1 for e in self._entries.values() if not e.is_expired(now))
            return {"entries": len(self._entries), "live": live}

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("Purged %d expired cache entries", len(expired))
