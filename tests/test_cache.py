"""
Tests for the in-memory TTL cache.

Run with: pytest tests/test_cache.py -v
"""

import asyncio
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cache import (
    DEFAULT_TTL,
    LONG_TTL,
    SHORT_TTL,
    CacheOptions,
    MemoryCache,
    create_cache_key,
)

# --- Fixtures ---


class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def logger():
    return MagicMock()


@pytest.fixture
def cache(clock, logger):
    return MemoryCache(CacheOptions(name="test-cache"), clock=clock, logger=logger)


# --- set / get ---


class TestSetAndGet:
    def test_store_and_retrieve(self, cache):
        cache.set("key1", "value1")
        assert cache.get("key1") == "value1"

    def test_missing_key_returns_none(self, cache):
        assert cache.get("nonexistent") is None

    def test_expired_entry_returns_none(self, cache, clock):
        cache.set("key1", "value1", 1000)
        clock.advance(1500)
        assert cache.get("key1") is None

    def test_entry_valid_before_ttl(self, cache, clock):
        cache.set("key1", "value1", 5000)
        clock.advance(4000)
        assert cache.get("key1") == "value1"

    def test_entry_expires_exactly_at_ttl(self, cache, clock):
        cache.set("key1", "value1", 1000)
        clock.advance(999)
        assert cache.get("key1") == "value1"
        clock.advance(1)
        assert cache.get("key1") is None

    def test_expired_get_removes_entry(self, cache, clock):
        cache.set("key1", "value1", 1000)
        clock.advance(2000)
        assert cache.size() == 1
        assert cache.get("key1") is None
        assert cache.size() == 0

    def test_set_overwrites_and_refreshes_ttl(self, cache, clock):
        cache.set("key1", "old", 1000)
        clock.advance(800)
        cache.set("key1", "new", 1000)
        clock.advance(800)
        assert cache.get("key1") == "new"
        assert cache.size() == 1

    def test_default_ttl_from_options(self, clock, logger):
        c = MemoryCache(CacheOptions(name="short", default_ttl_ms=SHORT_TTL), clock=clock, logger=logger)
        c.set("key1", "value1")
        clock.advance(SHORT_TTL - 1)
        assert c.get("key1") == "value1"
        clock.advance(1)
        assert c.get("key1") is None

    def test_default_options(self, clock):
        c = MemoryCache(clock=clock)
        assert c.name == "cache"
        assert c.default_ttl_ms == DEFAULT_TTL
        c.set("key1", "value1")
        clock.advance(DEFAULT_TTL - 1)
        assert c.get("key1") == "value1"

    def test_falsy_values_are_cached(self, cache):
        cache.set("zero", 0)
        cache.set("empty", [])
        assert cache.get("zero") == 0
        assert cache.get("empty") == []

    def test_logs_through_injected_logger(self, cache, logger):
        cache.set("key1", "value1")
        cache.get("key1")
        cache.get("missing")
        assert logger.debug.called


# --- invalidation ---


class TestInvalidate:
    def test_invalidate_removes_only_that_key(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        cache.invalidate("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2

    def test_invalidate_missing_key_is_noop(self, cache):
        cache.set("a", 1)
        cache.invalidate("nonexistent")
        assert cache.size() == 1

    def test_invalidate_all(self, cache):
        cache.set("key1", "value1")
        cache.set("key2", "value2")
        cache.invalidate_all()
        assert cache.get("key1") is None
        assert cache.get("key2") is None
        assert cache.size() == 0

    def test_invalidate_all_leaves_other_instances(self, cache, clock):
        other = MemoryCache(CacheOptions(name="other"), clock=clock, logger=MagicMock())
        cache.set("key", "mine")
        other.set("key", "theirs")
        cache.invalidate_all()
        assert other.get("key") == "theirs"


# --- get_or_fetch ---


class TestGetOrFetch:
    def test_hit_skips_fetcher(self, cache):
        cache.set("key1", "cached-value")
        calls = []

        async def fetcher():
            calls.append(1)
            return "fetched-value"

        result = asyncio.run(cache.get_or_fetch("key1", fetcher))
        assert result == "cached-value"
        assert calls == []

    def test_miss_calls_fetcher_once_and_caches(self, cache):
        calls = []

        async def fetcher():
            calls.append(1)
            return "fetched-value"

        result = asyncio.run(cache.get_or_fetch("key1", fetcher))
        assert result == "fetched-value"
        assert len(calls) == 1
        assert cache.get("key1") == "fetched-value"

    def test_expired_entry_is_refetched(self, cache, clock):
        cache.set("key1", "stale", 1000)
        clock.advance(1000)

        async def fetcher():
            return "fresh"

        assert asyncio.run(cache.get_or_fetch("key1", fetcher)) == "fresh"

    def test_ttl_passed_through(self, cache, clock):
        async def fetcher():
            return "value"

        asyncio.run(cache.get_or_fetch("key1", fetcher, 1000))
        clock.advance(1000)
        assert cache.get("key1") is None

    def test_fetcher_error_propagates_and_writes_nothing(self, cache):
        async def fetcher():
            raise RuntimeError("backend down")

        with pytest.raises(RuntimeError, match="backend down"):
            asyncio.run(cache.get_or_fetch("key1", fetcher))
        assert cache.size() == 0
        assert cache.get("key1") is None

    def test_concurrent_misses_fetch_twice_and_last_write_wins(self, cache):
        calls = []

        async def fetcher():
            calls.append(1)
            n = len(calls)
            await asyncio.sleep(0)
            return f"value-{n}"

        async def race():
            return await asyncio.gather(
                cache.get_or_fetch("key1", fetcher),
                cache.get_or_fetch("key1", fetcher),
            )

        results = asyncio.run(race())
        assert len(calls) == 2
        assert results == ["value-1", "value-2"]
        assert cache.get("key1") == "value-2"


# --- cleanup ---


class TestCleanup:
    def test_removes_only_expired(self, cache, clock):
        cache.set("a", 1, 1000)
        cache.set("b", 2, 5000)
        clock.advance(2000)
        assert cache.cleanup() == 1
        assert cache.keys() == ["b"]
        assert cache.get("b") == 2

    def test_empty_store(self, cache):
        assert cache.cleanup() == 0

    def test_idempotent(self, cache, clock):
        cache.set("a", 1, 1000)
        clock.advance(1000)
        assert cache.cleanup() == 1
        assert cache.cleanup() == 0


# --- keys / size ---


class TestKeysAndSize:
    def test_keys_in_insertion_order(self, cache):
        cache.set("a", 1)
        cache.set("b", 2)
        assert cache.keys() == ["a", "b"]

    def test_size_counts_entries(self, cache):
        assert cache.size() == 0
        cache.set("key1", "value1")
        assert cache.size() == 1
        cache.set("key2", "value2")
        assert cache.size() == 2

    def test_size_and_keys_include_unswept_expired(self, cache, clock):
        cache.set("a", 1, 1000)
        cache.set("b", 2, 5000)
        clock.advance(2000)
        assert cache.size() == 2
        assert cache.keys() == ["a", "b"]


# --- create_cache_key ---


class TestCreateCacheKey:
    def test_prefix_and_parts(self):
        assert create_cache_key("projects", "list", 1) == "projects:list:1"

    def test_none_parts_dropped(self):
        assert create_cache_key("projects", "list", None, "active") == "projects:list:active"

    def test_prefix_only(self):
        assert create_cache_key("projects") == "projects:"

    def test_falsy_parts_kept(self):
        assert create_cache_key("p", 0, "", False) == "p:0::False"


def test_ttl_constants():
    assert SHORT_TTL == 60_000
    assert DEFAULT_TTL == 300_000
    assert LONG_TTL == 900_000
