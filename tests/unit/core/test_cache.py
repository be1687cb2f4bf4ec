"""Unit tests for core.cache: get/put/has caches and the newest-wins address cache."""

import itertools

import pytest

from nostrapps.core.cache import AddressCache, CacheLayer, MemoryCache
from nostrapps.core.metrics import CACHE_LOOKUPS


def _lookups(cache: str, result: str) -> float:
    return CACHE_LOOKUPS.labels(cache=cache, result=result)._value.get()


class TestMemoryCache:
    def test_get_missing_returns_none(self) -> None:
        cache: MemoryCache[str, int] = MemoryCache("test_missing")
        assert cache.get("x") is None
        assert not cache.has("x")

    def test_put_then_get(self) -> None:
        cache: MemoryCache[str, int] = MemoryCache("test_put")
        assert cache.put("x", 1) is True
        assert cache.get("x") == 1
        assert cache.has("x")
        assert "x" in cache
        assert len(cache) == 1

    def test_clear(self) -> None:
        cache: MemoryCache[str, int] = MemoryCache("test_clear")
        cache.put("x", 1)
        cache.clear()
        assert len(cache) == 0

    def test_lookups_are_counted(self) -> None:
        cache: MemoryCache[str, int] = MemoryCache("test_counted")
        hits, misses = _lookups("test_counted", "hit"), _lookups("test_counted", "miss")
        cache.get("x")
        cache.put("x", 1)
        cache.get("x")
        assert _lookups("test_counted", "miss") == misses + 1
        assert _lookups("test_counted", "hit") == hits + 1

    def test_has_does_not_count(self) -> None:
        cache: MemoryCache[str, int] = MemoryCache("test_has")
        before = _lookups("test_has", "miss")
        cache.has("x")
        assert _lookups("test_has", "miss") == before


class TestAddressCache:
    def test_newer_replaces(self, make_event) -> None:
        cache = AddressCache("addresses")
        old, new = make_event(0, 100), make_event(0, 200)
        cache.put("k", old)
        assert cache.put("k", new) is True
        assert cache.get("k") is new

    def test_older_ignored(self, make_event) -> None:
        cache = AddressCache("addresses")
        old, new = make_event(0, 100), make_event(0, 200)
        cache.put("k", new)
        assert cache.put("k", old) is False
        assert cache.get("k") is new

    def test_tie_keeps_incumbent(self, make_event) -> None:
        cache = AddressCache("addresses")
        first, second = make_event(0, 100, salt="1"), make_event(0, 100, salt="2")
        cache.put("k", first)
        assert cache.put("k", second) is False
        assert cache.get("k") is first

    @pytest.mark.parametrize("order", list(itertools.permutations([100, 300, 200])))
    def test_arrival_order_does_not_matter(self, make_event, order) -> None:
        cache = AddressCache("addresses")
        for ts in order:
            cache.put("k", make_event(0, ts))
        assert cache.get("k").created_at == 300


class TestCacheLayer:
    def test_store_event_writes_both_stores(self, make_event) -> None:
        caches = CacheLayer()
        event = make_event(30023, 100, tags=[["d", "post"]])
        caches.store_event(event)
        assert caches.events.get(event.id) is event
        assert caches.addresses.get(event.dedup_key) is event

    def test_store_event_keeps_newest_address(self, make_event) -> None:
        caches = CacheLayer()
        new = make_event(3, 200)
        old = make_event(3, 100)
        caches.store_event(new)
        caches.store_event(old)
        assert caches.addresses.get(new.dedup_key) is new
        assert caches.events.get(old.id) is old

    def test_clear_empties_every_cache(self, make_event) -> None:
        caches = CacheLayer()
        caches.store_event(make_event(1))
        caches.kind_apps.put(1, object())
        caches.clear()
        assert len(caches.events) == len(caches.addresses) == len(caches.kind_apps) == 0
