"""Per-request context handed to action handlers."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from .cache import CacheHandler, InlineCache
from .core.exceptions import ConfigurationError


class RequestCacheSlot:
    """Holds the single inline cache handle a request may establish."""

    def __init__(self, cache: CacheHandler):
        self._cache = cache
        self.handle: InlineCache | None = None

    async def __call__(self, key: Any, **options: Any) -> None:
        """Cache this request's output under ``key``.

        Raises ``CacheFoundError`` when a result for ``key`` already exists,
        which ends the handler and replays that result.
        """
        if self.handle is not None:
            raise ConfigurationError("Request cache is already set up")
        cache = self._cache.clone(**options) if options else self._cache
        self.handle = await cache.inline(key)


@dataclass(slots=True)
class ActionHandlerContext:
    cache: CacheHandler
    request: Any
    user: dict[str, Any] | None
    request_cache: RequestCacheSlot
    fetch: Callable[..., Awaitable[dict[str, Any]]]
    recaptcha: Callable[..., Awaitable[str]]
    toast: Callable[..., Awaitable[None]]
    notification: Callable[..., Awaitable[None]]
