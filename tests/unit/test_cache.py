"""
Tests for artisan_match.utils.cache — LRU and TTL caches.
"""

import pytest

from artisan_match.utils.cache import LRUCache, TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


# ── LRUCache ────────────────────────────────────────────────────────────────


class TestLRUCache:
    def test_get_missing_returns_none(self):
        cache = LRUCache(2)
        assert cache.get("missing") is None

    def test_put_and_get(self):
        cache = LRUCache(2)
        cache.put("a", 1)
        assert cache.get("a") == 1

    def test_evicts_least_recently_used(self):
        cache = LRUCache(2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.get("a")  # a is now most recent
        cache.put("c", 3)
        assert "b" not in cache
        assert "a" in cache and "c" in cache

    def test_never_exceeds_max_size(self):
        cache = LRUCache(3)
        for i in range(10):
            cache.put(i, i)
            assert len(cache) <= 3
        assert cache.keys() == [7, 8, 9]

    def test_overwrite_does_not_evict(self):
        cache = LRUCache(2)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("a", 10)
        assert len(cache) == 2
        assert cache.get("a") == 10
        assert cache.stats().evictions == 0

    def test_stats(self):
        cache = LRUCache(1)
        cache.put("a", 1)
        cache.get("a")
        cache.get("b")
        cache.put("c", 3)
        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.evictions == 1
        assert stats.hit_rate == pytest.approx(0.5)
        assert stats.to_dict()["size"] == 1

    def test_clear(self):
        cache = LRUCache(2)
        cache.put("a", 1)
        cache.get("a")
        cache.clear()
        assert len(cache) == 0
        assert cache.stats().hits == 0

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            LRUCache(0)


# ── TTLCache ────────────────────────────────────────────────────────────────


class TestTTLCache:
    def test_entry_expires(self):
        clock = FakeClock()
        cache = TTLCache(10, ttl_seconds=5.0, clock=clock)
        cache.put("a", 1)
        clock.now = 4.0
        assert cache.get("a") == 1
        clock.now = 6.0
        assert cache.get("a") is None
        assert "a" not in cache

    def test_expiry_counted_as_miss_and_eviction(self):
        clock = FakeClock()
        cache = TTLCache(10, ttl_seconds=1.0, clock=clock)
        cache.put("a", 1)
        clock.now = 2.0
        cache.get("a")
        stats = cache.stats()
        assert stats.misses == 1
        assert stats.evictions == 1

    def test_reinsert_refreshes_ttl(self):
        clock = FakeClock()
        cache = TTLCache(10, ttl_seconds=5.0, clock=clock)
        cache.put("a", 1)
        clock.now = 4.0
        cache.put("a", 2)
        clock.now = 8.0
        assert cache.get("a") == 2

    def test_size_bound(self):
        cache = TTLCache(2, ttl_seconds=60.0)
        for key in "abc":
            cache.put(key, key)
        assert len(cache) == 2
        assert "a" not in cache
