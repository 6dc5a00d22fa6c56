"""
Cache Handler
=============

Facade over a ``CacheEngine`` that adds:
- Key scoping through a prefix (``clone`` creates a new scope)
- JSON encoding of stored values, including stored failures
- Single-flight ``inline`` caching: the first caller for a key takes a lock
  and computes, every later or concurrent caller observes that outcome
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from dataclasses import dataclass, field, replace
from typing import Any

from ..core.config import settings
from ..core.exceptions import CacheFoundError, error_message
from .engines import CacheEngine

logger = logging.getLogger(__name__)

_LOCK_ENTRY = json.dumps({"lock": True})


# ── Options ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class CacheOptions:
    """Per-scope cache options.

    Attributes:
        prefix:       Key namespace (addon id for addon-scoped caches)
        ttl:          Lifetime of stored results in seconds
        error_ttl:    Lifetime of stored failures in seconds
        lock_time:    Lifetime of an in-flight lock in seconds
        lock_timeout: How long a caller waits on someone else's lock
        lock_sleep:   Poll interval while waiting on a lock or key
    """

    prefix: str = ""
    ttl: float | None = field(default_factory=lambda: settings.CACHE_TTL_S)
    error_ttl: float | None = field(default_factory=lambda: settings.CACHE_ERROR_TTL_S)
    lock_time: float = field(default_factory=lambda: settings.CACHE_LOCK_TIME_S)
    lock_timeout: float = field(default_factory=lambda: settings.CACHE_LOCK_TIMEOUT_S)
    lock_sleep: float = field(default_factory=lambda: settings.CACHE_LOCK_SLEEP_S)


# ── Inline Lookup Result ─────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class InlineHit:
    """A finished computation exists for the key."""

    result: Any = None
    error: str | None = None
    is_error: bool = False

    def to_signal(self) -> CacheFoundError:
        if self.is_error:
            return CacheFoundError(error=self.error)
        return CacheFoundError(result=self.result)


@dataclass(frozen=True, slots=True)
class InlineMiss:
    """No result yet; the caller owns the lock and must commit through ``handle``."""

    handle: InlineCache

InlineResult = InlineHit | InlineMiss


class InlineCache:
    """Handle for committing the outcome of a single-flight computation."""

    def __init__(self, cache: CacheHandler, key: str):
        self._cache = cache
        self.key = key
        self.committed = False

    async def set(self, value: Any) -> None:
        await self._cache._write(self.key, {"result": value}, self._cache.options.ttl)
        self.committed = True

    async def set_error(self, error: BaseException | str) -> None:
        message = error if isinstance(error, str) else error_message(error)
        await self._cache._write(
            self.key, {"error": message}, self._cache.options.error_ttl
        )
        self.committed = True


# ── Cache Handler ────────────────────────────────────────────────────────────

class CacheHandler:
    """
    Scoped cache facade.

    Usage:
        cache = CacheHandler(MemoryCacheEngine())
        scoped = cache.clone(prefix="my-addon", ttl=600)
        await scoped.set("key", {"a": 1})
        handle = await scoped.inline("expensive")   # may raise CacheFoundError
        await handle.set(result)
    """

    def __init__(self, engine: CacheEngine, options: CacheOptions | None = None):
        self.engine = engine
        self.options = options or CacheOptions()

    def clone(self, **options: Any) -> CacheHandler:
        """New scope on the same engine with ``options`` overriding this one's."""
        return CacheHandler(self.engine, replace(self.options, **options))

    def create_key(self, key: Any) -> str:
        raw = key if isinstance(key, str) else json.dumps(key, sort_keys=True, default=str)
        digest = hashlib.sha256(raw.encode("utf-8")).hexdigest()[:40]
        return f"{self.options.prefix}:{digest}" if self.options.prefix else digest

    # ── Raw entry access ─────────────────────────────────────────────

    async def _read(self, cache_key: str) -> dict[str, Any] | None:
        raw = await self.engine.get(cache_key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Dropping undecodable cache entry %s", cache_key)
            await self.engine.delete(cache_key)
            return None

    async def _write(self, cache_key: str, entry: dict[str, Any], ttl: float | None) -> None:
        await self.engine.set(cache_key, json.dumps(entry, default=str), ttl)

    # ── Public API ───────────────────────────────────────────────────

    async def get(self, key: Any, default: Any = None) -> Any:
        """Stored result for ``key``; ``default`` when missing, locked or failed."""
        entry = await self._read(self.create_key(key))
        if entry is None or "result" not in entry:
            return default
        return entry["result"]

    async def set(self, key: Any, value: Any, ttl: float | None = None) -> None:
        await self._write(
            self.create_key(key), {"result": value}, ttl if ttl is not None else self.options.ttl
        )

    async def set_error(self, key: Any, error: BaseException | str, ttl: float | None = None) -> None:
        message = error if isinstance(error, str) else error_message(error)
        await self._write(
            self.create_key(key),
            {"error": message},
            ttl if ttl is not None else self.options.error_ttl,
        )

    async def delete(self, key: Any) -> None:
        await self.engine.delete(self.create_key(key))

    async def wait_key(self, key: Any, timeout: float, delete: bool = False) -> Any:
        """
        Poll until a result is stored under ``key``.

        Raises:
            TimeoutError: nothing arrived within ``timeout`` seconds
            CacheFoundError: a failure was stored instead of a result
        """
        cache_key = self.create_key(key)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            entry = await self._read(cache_key)
            if entry is not None and "lock" not in entry:
                if delete:
                    await self.engine.delete(cache_key)
                if "error" in entry:
                    raise CacheFoundError(error=entry["error"])
                return entry["result"]
            if loop.time() >= deadline:
                raise TimeoutError(f"Timed out waiting for cache key {cache_key}")
            await asyncio.sleep(self.options.lock_sleep)

    async def lookup_inline(self, key: Any) -> InlineResult:
        """
        Single-flight lookup.

        Returns ``InlineHit`` when a finished result or failure is stored.
        Otherwise takes the lock and returns ``InlineMiss``. A caller that finds
        a lock waits for the owner's outcome up to ``lock_timeout``; after that
        it computes without the lock.
        """
        cache_key = self.create_key(key)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.options.lock_timeout
        while True:
            entry = await self._read(cache_key)
            if entry is None:
                if await self.engine.add(cache_key, _LOCK_ENTRY, self.options.lock_time):
                    return InlineMiss(InlineCache(self, cache_key))
                continue
            if "lock" not in entry:
                if "error" in entry:
                    return InlineHit(error=entry["error"], is_error=True)
                return InlineHit(result=entry["result"])
            if loop.time() >= deadline:
                logger.warning("Lock on %s not released in %.1fs", cache_key, self.options.lock_timeout)
                return InlineMiss(InlineCache(self, cache_key))
            await asyncio.sleep(self.options.lock_sleep)

    async def inline(self, key: Any) -> InlineCache:
        """Like ``lookup_inline`` but a hit raises ``CacheFoundError``."""
        found = await self.lookup_inline(key)
        if isinstance(found, InlineHit):
            raise found.to_signal()
        return found.handle
