"""
In-memory TTL cache for decoded API payloads.
Keeps repeated term / related / studies lookups from hitting the remote API while a user types.
"""

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Generic, Optional, TypeVar

from core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A cached payload and the monotonic time it stops being valid."""

    value: T
    expires_at: float

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (time.monotonic() if now is None else now) >= self.expires_at


@dataclass
class TTLCache(Generic[T]):
    """
    Thread-safe TTL cache with least-recently-used eviction.

    Expired entries are dropped lazily on access; when max_size is reached the
    least recently read or written entry is evicted.
    """

    default_ttl: float = 300.0
    max_size: int = 256
    _entries: "OrderedDict[str, CacheEntry[T]]" = field(default_factory=OrderedDict)
    _lock: threading.RLock = field(default_factory=threading.RLock)

    def get(self, key: str) -> Optional[T]:
        """Return the cached value, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return entry.value

    def set(self, key: str, value: T, ttl: Optional[float] = None) -> None:
        lifetime = self.default_ttl if ttl is None else ttl
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            while self._entries and len(self._entries) >= self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cache entry %s", evicted)
            self._entries[key] = CacheEntry(value=value, expires_at=time.monotonic() + lifetime)

    def get_or_load(self, key: str, loader: Callable[[], T], ttl: Optional[float] = None) -> T:
        """
        Return the cached value for key, calling loader() on a miss.

        The loader runs outside the lock; exceptions propagate and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return cached
        logger.debug("Cache miss for %s", key)
        value = loader()
        if value is not None:
            self.set(key, value, ttl)
        return value

    def delete(self, key: str) -> bool:
        """Delete a key. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = time.monotonic()
        with self._lock:
            stale = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.debug("Purged %d expired cache entries", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None


# Global cache instances, one per remote endpoint
_terms_cache: Optional[TTLCache] = None
_related_cache: Optional[TTLCache] = None
_studies_cache: Optional[TTLCache] = None


def get_terms_cache() -> TTLCache:
    """Get the global cache for the full term list."""
    global _terms_cache
    if _terms_cache is None:
        _terms_cache = TTLCache(default_ttl=settings.TERMS_CACHE_TTL, max_size=4)
    return _terms_cache


def get_related_cache() -> TTLCache:
    """Get the global cache for related-terms payloads, keyed by term."""
    global _related_cache
    if _related_cache is None:
        _related_cache = TTLCache(default_ttl=settings.RELATED_CACHE_TTL, max_size=500)
    return _related_cache


def get_studies_cache() -> TTLCache:
    """Get the global cache for study search payloads, keyed by prepared query."""
    global _studies_cache
    if _studies_cache is None:
        _studies_cache = TTLCache(default_ttl=settings.STUDIES_CACHE_TTL, max_size=200)
    return _studies_cache


def clear_all_caches() -> None:
    """Clear all cache instances. Useful for testing."""
    for cache in (_terms_cache, _related_cache, _studies_cache):
        if cache is not None:
            cache.clear()
