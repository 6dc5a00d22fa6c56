"""
Cache Engines - Redis and In-Memory.

Engines store opaque string payloads. Encoding, key derivation and the
single-flight protocol live in ``CacheHandler``.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections import OrderedDict
from dataclasses import dataclass

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from ..core.config import settings
from ..core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


# =============================================================================
# ABSTRACT ENGINE INTERFACE
# =============================================================================


class CacheEngine(ABC):
    """Abstract cache engine interface."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Get value by key."""

    @abstractmethod
    async def set(self, key: str, value: str, ttl: float | None = None) -> None:
        """Set value with optional TTL in seconds."""

    @abstractmethod
    async def add(self, key: str, value: str, ttl: float | None = None) -> bool:
        """Set value only if the key does not exist. Returns True if stored."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete key."""

    async def close(self) -> None:
        """Close connections and release resources."""


# =============================================================================
# IN-MEMORY ENGINE
# =============================================================================


@dataclass
class MemoryEntry:
    """Entry in memory storage with TTL tracking."""

    value: str
    expires_at: float | None = None  # Monotonic timestamp

    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        return time.monotonic() > self.expires_at


class MemoryCacheEngine(CacheEngine):
    """In-memory engine with TTL and LRU eviction. Single process only."""

    MAX_KEYS = 100_000  # Prevent unbounded memory growth

    def __init__(self, max_keys: int | None = None):
        self._data: OrderedDict[str, MemoryEntry] = OrderedDict()
        self._max_keys = max_keys or self.MAX_KEYS
        self._lock = asyncio.Lock()

    def _store(self, key: str, value: str, ttl: float | None) -> None:
        expires_at = time.monotonic() + ttl if ttl else None
        self._data[key] = MemoryEntry(value=value, expires_at=expires_at)
        self._data.move_to_end(key)
        while len(self._data) > self._max_keys:
            self._data.popitem(last=False)

    def _live(self, key: str) -> MemoryEntry | None:
        entry = self._data.get(key)
        if entry is not None and entry.is_expired():
            del self._data[key]
            return None
        return entry

    async def get(self, key: str) -> str | None:
        async with self._lock:
            entry = self._live(key)
            return entry.value if entry else None

    async def set(self, key: str, value: str, ttl: float | None = None) -> None:
        async with self._lock:
            self._store(key, value, ttl)

    async def add(self, key: str, value: str, ttl: float | None = None) -> bool:
        async with self._lock:
            if self._live(key) is not None:
                return False
            self._store(key, value, ttl)
            return True

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._data.pop(key, None)

    async def close(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


# =============================================================================
# REDIS ENGINE
# =============================================================================


class RedisCacheEngine(CacheEngine):
    """Redis engine using redis.asyncio.

    Connection failures are logged and degrade to cache misses.
    """

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self._client = None
        self._lock = asyncio.Lock()

    async def _get_client(self):
        """Get or create Redis client."""
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is not None:
                return self._client

            self._client = aioredis.from_url(
                self.url,
                encoding="utf-8",
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
            logger.info("[RedisCacheEngine] Using Redis at %s", self.url.split("@")[-1])
            return self._client

    @staticmethod
    def _px(ttl: float | None) -> int | None:
        return max(1, int(ttl * 1000)) if ttl else None

    async def get(self, key: str) -> str | None:
        client = await self._get_client()
        try:
            return await client.get(key)
        except (RedisError, OSError) as e:
            logger.error("[Redis] GET failed: %s", e)
            return None

    async def set(self, key: str, value: str, ttl: float | None = None) -> None:
        client = await self._get_client()
        try:
            await client.set(key, value, px=self._px(ttl))
        except (RedisError, OSError) as e:
            logger.error("[Redis] SET failed: %s", e)

    async def add(self, key: str, value: str, ttl: float | None = None) -> bool:
        client = await self._get_client()
        try:
            return bool(await client.set(key, value, px=self._px(ttl), nx=True))
        except (RedisError, OSError) as e:
            # Treat as acquired so an outage degrades to uncached execution
            logger.error("[Redis] SET NX failed: %s", e)
            return True

    async def delete(self, key: str) -> None:
        client = await self._get_client()
        try:
            await client.delete(key)
        except (RedisError, OSError) as e:
            logger.error("[Redis] DELETE failed: %s", e)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


# =============================================================================
# ENGINE SELECTION
# =============================================================================


def get_cache_engine_from_env() -> CacheEngine:
    """Build the cache engine named by ``CACHE_ENGINE``."""
    name = settings.CACHE_ENGINE.lower()
    if name == "memory":
        return MemoryCacheEngine()
    if name == "redis":
        return RedisCacheEngine(settings.REDIS_URL)
    raise ConfigurationError(f"Unknown cache engine: {settings.CACHE_ENGINE}")
