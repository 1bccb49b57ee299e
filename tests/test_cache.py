"""
Tests for the memory and database cache stores.
"""
import threading
from datetime import datetime, timedelta

import pytest

from weatherwidget.core.cache import DatabaseCacheStore, MemoryCacheStore, create_cache_store


class MovableClock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def db_clock():
    return MovableClock()


@pytest.fixture(params=["memory", "database"])
def store_and_clock(request, db, clock, db_clock):
    if request.param == "memory":
        return MemoryCacheStore(clock=clock), clock
    return DatabaseCacheStore(clock=db_clock), db_clock


class TestCacheStores:

    def test_get_missing(self, store_and_clock):
        store, _ = store_and_clock
        assert store.get("nope") is None

    def test_set_then_get(self, store_and_clock):
        store, _ = store_and_clock
        store.set("weather_data_a", {"name": "London", "temp": 12.5}, 60)
        assert store.get("weather_data_a") == {"name": "London", "temp": 12.5}

    def test_expiry(self, store_and_clock):
        store, clock = store_and_clock
        store.set("k", {"v": 1}, 60)
        clock.advance(59)
        assert store.get("k") == {"v": 1}
        clock.advance(1)
        assert store.get("k") is None

    def test_set_replaces(self, store_and_clock):
        store, clock = store_and_clock
        store.set("k", {"v": 1}, 10)
        clock.advance(5)
        store.set("k", {"v": 2}, 60)
        clock.advance(30)
        assert store.get("k") == {"v": 2}

    def test_delete_is_idempotent(self, store_and_clock):
        store, _ = store_and_clock
        store.set("k", {"v": 1}, 60)
        store.delete("k")
        store.delete("k")
        assert store.get("k") is None

    def test_delete_by_prefix(self, store_and_clock):
        store, _ = store_and_clock
        store.set("weather_data_1", {"v": 1}, 60)
        store.set("weather_data_2", {"v": 2}, 60)
        store.set("other_key", {"v": 3}, 60)
        assert store.delete_by_prefix("weather_data_") == 2
        assert store.get("weather_data_1") is None
        assert store.get("weather_data_2") is None
        assert store.get("other_key") == {"v": 3}

    def test_delete_by_prefix_treats_wildcards_literally(self, store_and_clock):
        store, _ = store_and_clock
        store.set("weatherXdata_1", {"v": 1}, 60)
        assert store.delete_by_prefix("weather_data_") == 0
        assert store.get("weatherXdata_1") == {"v": 1}


class TestMemoryCacheStore:

    def test_clear(self, cache):
        cache.set("a", 1, 60)
        cache.clear()
        assert cache.get("a") is None

    def test_purge_while_another_thread_writes(self):
        store = MemoryCacheStore()
        for i in range(20000):
            store.set(f"weather_data_{i}", {"v": i}, 3600)

        stop = threading.Event()
        writing = threading.Event()

        def writer():
            n = 0
            while not stop.is_set():
                store.set(f"other_{n}", n, 3600)
                writing.set()
                n += 1

        thread = threading.Thread(target=writer, daemon=True)
        thread.start()
        assert writing.wait(timeout=5)
        try:
            removed = [store.delete_by_prefix("weather_data_") for _ in range(5)]
        finally:
            stop.set()
            thread.join(timeout=5)

        assert removed[0] == 20000
        assert sum(removed[1:]) == 0
        assert store.get("weather_data_0") is None
        assert store.get("other_0") == 0


class TestCreateCacheStore:

    def test_default_is_database(self):
        assert isinstance(create_cache_store({}), DatabaseCacheStore)

    def test_memory_backend(self):
        assert isinstance(create_cache_store({"cache": {"backend": "memory"}}), MemoryCacheStore)

    def test_unknown_backend_falls_back(self):
        assert isinstance(create_cache_store({"cache": {"backend": "redis"}}), DatabaseCacheStore)
