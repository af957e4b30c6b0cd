"""
Tests des caches bornes avec TTL (memoire) et du cache Redis avec un client mocke.
"""
import json
import pytest
from unittest.mock import MagicMock

import redis

from peakplay.core.cache import MemoryTTLCache, RedisTTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class TestMemoryTTLCache:
    @pytest.fixture
    def clock(self):
        return FakeClock()

    def test_get_set(self, clock):
        cache = MemoryTTLCache("test", max_entries=10, default_ttl=60, clock=clock)
        cache.set("a", {"x": 1})
        assert cache.get("a") == {"x": 1}
        assert cache.get("missing") is None

    def test_expired_entry_is_a_miss(self, clock):
        cache = MemoryTTLCache("test", default_ttl=60, clock=clock)
        cache.set("a", 1)
        clock.now += 59
        assert cache.get("a") == 1
        clock.now += 1
        assert cache.get("a") is None
        assert "a" not in cache.stats()["keys"]

    def test_per_entry_ttl(self, clock):
        cache = MemoryTTLCache("test", default_ttl=60, clock=clock)
        cache.set("short", 1, ttl=5)
        cache.set("long", 2)
        clock.now += 10
        assert cache.get("short") is None
        assert cache.get("long") == 2

    def test_lru_eviction(self, clock):
        cache = MemoryTTLCache("test", max_entries=2, clock=clock)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)
        assert cache.get("b") is None
        assert cache.get("a") == 1
        assert cache.get("c") == 3
        assert cache.stats()["evictions"] == 1

    def test_stats_and_clear(self, clock):
        cache = MemoryTTLCache("badges", clock=clock)
        cache.set("a", 1)
        cache.get("a")
        cache.get("b")
        stats = cache.stats()
        assert stats["name"] == "badges"
        assert stats["size"] == 1
        assert stats["hits"] == 1
        assert stats["misses"] == 1
        cache.clear()
        assert cache.stats()["size"] == 0

    def test_delete(self, clock):
        cache = MemoryTTLCache("test", clock=clock)
        cache.set("a", 1)
        cache.delete("a")
        cache.delete("unknown")
        assert cache.get("a") is None

    def test_invalid_size(self):
        with pytest.raises(ValueError):
            MemoryTTLCache("test", max_entries=0)


class TestRedisTTLCache:
    def test_set_uses_setex_with_prefix(self):
        client = MagicMock()
        cache = RedisTTLCache("badges", client, default_ttl=300)
        cache.set("k", {"a": 1})
        client.setex.assert_called_once_with("peakplay:cache:badges:k", 300, json.dumps({"a": 1}))

    def test_get_decodes_json(self):
        client = MagicMock()
        client.get.return_value = '{"a": 1}'
        cache = RedisTTLCache("badges", client)
        assert cache.get("k") == {"a": 1}

    def test_redis_error_is_a_miss(self):
        client = MagicMock()
        client.get.side_effect = redis.ConnectionError("down")
        cache = RedisTTLCache("badges", client)
        assert cache.get("k") is None

    def test_clear_deletes_namespace(self):
        client = MagicMock()
        client.scan_iter.return_value = iter(["peakplay:cache:badges:a", "peakplay:cache:badges:b"])
        cache = RedisTTLCache("badges", client)
        cache.clear()
        client.delete.assert_called_once_with("peakplay:cache:badges:a", "peakplay:cache:badges:b")
