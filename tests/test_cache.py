"""
Unit tests for the caching module.
"""

import threading

import pytest
from unittest.mock import patch

from services.cache import (
    CacheEntry,
    TTLCache,
    clear_all_caches,
    get_related_cache,
    get_studies_cache,
    get_terms_cache,
)


class TestCacheEntry:
    """Tests for CacheEntry expiry."""

    def test_not_expired_before_deadline(self):
        entry = CacheEntry(value="x", expires_at=100.0)
        assert entry.is_expired(now=99.0) is False

    def test_expired_at_deadline(self):
        entry = CacheEntry(value="x", expires_at=100.0)
        assert entry.is_expired(now=100.0) is True


class TestTTLCache:
    """Tests for TTLCache behaviour."""

    def test_set_and_get(self):
        cache = TTLCache[list]()
        cache.set("terms", ["a"])
        assert cache.get("terms") == ["a"]
        assert "terms" in cache

    def test_missing_key(self):
        cache = TTLCache[str]()
        assert cache.get("nope") is None
        assert "nope" not in cache

    @patch("services.cache.time.monotonic")
    def test_entries_expire(self, mock_clock):
        mock_clock.return_value = 1000.0
        cache = TTLCache[str](default_ttl=10)
        cache.set("short", "v", ttl=1)
        cache.set("long", "v")

        mock_clock.return_value = 1005.0

        assert cache.get("short") is None
        assert cache.get("long") == "v"
        assert len(cache) == 1

    @patch("services.cache.time.monotonic")
    def test_purge_expired(self, mock_clock):
        mock_clock.return_value = 0.0
        cache = TTLCache[str](default_ttl=5)
        cache.set("a", "1")
        cache.set("b", "2", ttl=50)

        mock_clock.return_value = 10.0

        assert cache.purge_expired() == 1
        assert len(cache) == 1

    def test_least_recently_used_is_evicted(self):
        cache = TTLCache[str](max_size=2, default_ttl=100)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.get("a")  # a is now the most recent

        cache.set("c", "3")

        assert cache.get("b") is None
        assert cache.get("a") == "1"
        assert cache.get("c") == "3"

    def test_overwrite_does_not_evict(self):
        cache = TTLCache[str](max_size=2)
        cache.set("a", "1")
        cache.set("b", "2")
        cache.set("a", "updated")
        assert len(cache) == 2
        assert cache.get("a") == "updated"

    def test_delete_and_clear(self):
        cache = TTLCache[str]()
        cache.set("a", "1")
        cache.set("b", "2")

        assert cache.delete("a") is True
        assert cache.delete("a") is False

        cache.clear()
        assert len(cache) == 0

    def test_get_or_load_calls_loader_once(self):
        cache = TTLCache[list]()
        calls = []

        def loader():
            calls.append(1)
            return ["pain"]

        assert cache.get_or_load("terms", loader) == ["pain"]
        assert cache.get_or_load("terms", loader) == ["pain"]
        assert len(calls) == 1

    def test_get_or_load_propagates_errors(self):
        cache = TTLCache[list]()

        def loader():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            cache.get_or_load("terms", loader)
        assert len(cache) == 0

    def test_thread_safety(self):
        cache = TTLCache[int](max_size=50)
        errors = []

        def worker(offset):
            try:
                for i in range(200):
                    cache.set(f"key{(i + offset) % 80}", i)
                    cache.get(f"key{i % 80}")
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(cache) <= 50


class TestGlobalCaches:
    """Tests for the per-endpoint cache instances."""

    def test_singletons(self):
        assert get_terms_cache() is get_terms_cache()
        assert get_related_cache() is get_related_cache()
        assert get_studies_cache() is get_studies_cache()

    def test_clear_all_caches(self):
        for cache in (get_terms_cache(), get_related_cache(), get_studies_cache()):
            cache.set("test", "value")

        clear_all_caches()

        for cache in (get_terms_cache(), get_related_cache(), get_studies_cache()):
            assert cache.get("test") is None
