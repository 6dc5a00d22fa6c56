"""
Cache Module

Scoped cache facade with single-flight inline caching over Redis or
in-memory engines.
"""

from .engines import (
    CacheEngine,
    MemoryCacheEngine,
    RedisCacheEngine,
    get_cache_engine_from_env,
)
from .handler import (
    CacheHandler,
    CacheOptions,
    InlineCache,
    InlineHit,
    InlineMiss,
    InlineResult,
)

__all__ = [
    "CacheEngine",
    "CacheHandler",
    "CacheOptions",
    "InlineCache",
    "InlineHit",
    "InlineMiss",
    "InlineResult",
    "MemoryCacheEngine",
    "RedisCacheEngine",
    "get_cache_engine_from_env",
]
