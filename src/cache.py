"""In-memory TTL cache for service-layer reads."""

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, Field

V = TypeVar("V")

# --- TTL presets (milliseconds) ---

SHORT_TTL = 1 * 60 * 1000
DEFAULT_TTL = 5 * 60 * 1000
LONG_TTL = 15 * 60 * 1000


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class CacheOptions(BaseModel):
    """Construction options for a MemoryCache."""
    name: str = Field(default="cache", description="Cache name used in log lines")
    default_ttl_ms: int = Field(default=DEFAULT_TTL, description="TTL applied when set() gets none")


@dataclass
class CacheEntry(Generic[V]):
    value: V
    expires_at: int


class MemoryCache(Generic[V]):
    """
    Process-local key/value cache with per-entry expiry.

    Expired entries are dropped lazily by get() and in bulk by cleanup().
    Until then they still count towards size() and show up in keys().
    """

    def __init__(
        self,
        options: Optional[CacheOptions] = None,
        clock: Callable[[], int] = now_ms,
        logger: Optional[logging.Logger] = None,
    ):
        options = options or CacheOptions()
        self.name = options.name
        self.default_ttl_ms = options.default_ttl_ms
        self._store: dict[str, CacheEntry[V]] = {}
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)

    def get(self, key: str) -> Optional[V]:
        """Get value if present and not expired."""
        entry = self._store.get(key)
        if entry is None:
            self._log.debug("[%s] Cache miss for key: %s", self.name, key)
            return None
        if self._clock() >= entry.expires_at:
            del self._store[key]
            self._log.debug("[%s] Cache expired for key: %s", self.name, key)
            return None
        self._log.debug("[%s] Cache hit for key: %s", self.name, key)
        return entry.value

    def set(self, key: str, value: V, ttl_ms: Optional[int] = None) -> None:
        """Store value, replacing any previous entry for the key."""
        ttl = ttl_ms if ttl_ms is not None else self.default_ttl_ms
        self._store[key] = CacheEntry(value=value, expires_at=self._clock() + ttl)
        self._log.debug("[%s] Cache set for key: %s", self.name, key)

    async def get_or_fetch(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[V]],
        ttl_ms: Optional[int] = None,
    ) -> V:
        """
        Return the cached value for key, or await fetcher() and cache its result.

        Concurrent misses on the same key each run fetcher; the last one to
        finish wins. If fetcher raises, nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            return cached

        value = await fetcher()
        self.set(key, value, ttl_ms)
        return value

    def invalidate(self, key: str) -> None:
        self._store.pop(key, None)
        self._log.debug("[%s] Cache invalidated for key: %s", self.name, key)

    def invalidate_all(self) -> None:
        self._store.clear()
        self._log.debug("[%s] All cache invalidated", self.name)

    def cleanup(self) -> int:
        """Remove all expired entries and return how many were removed."""
        now = self._clock()
        expired = [k for k, entry in self._store.items() if entry.expires_at <= now]
        for k in expired:
            del self._store[k]
        if expired:
            self._log.debug("[%s] Cleaned %d expired entries", self.name, len(expired))
        return len(expired)

    def keys(self) -> list[str]:
        """All stored keys in insertion order, expired ones included."""
        return list(self._store)

    def size(self) -> int:
        """Physical entry count, expired ones included."""
        return len(self._store)


def create_cache_key(prefix: str, *parts) -> str:
    """
    Build a cache key like 'projects:list:1'.

    None parts are skipped; every other part is kept in order.
    """
    kept = [str(p) for p in parts if p is not None]
    return f"{prefix}:{':'.join(kept)}"
