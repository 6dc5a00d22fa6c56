"""
Addon Engine
============

Request dispatch for pluggable addons: signature checks, schema migration
and validation, scoped and single-flight caching, middleware hooks, request
recording and out-of-band client tasks.

Modules:
- engine:      Engine lifecycle and options
- pipeline:    Per-request handler
- addons:      Addon base classes
- cache:       Cache facade and engines
- tasks:       Responder and task helpers
- validation:  Schemas, validators and migrations
- recorder:    Request recording and replay
"""

from .addons import BasicAddon, RepositoryAddon, WorkerAddon
from .cache import CacheHandler, MemoryCacheEngine, RedisCacheEngine
from .context import ActionHandlerContext
from .engine import Engine, EngineOptions, EngineState, Middlewares, create_engine
from .recorder import RecordData, RequestRecorder, load_records, replay_records

__version__ = "1.0.0"

__all__ = [
    "ActionHandlerContext",
    "BasicAddon",
    "CacheHandler",
    "Engine",
    "EngineOptions",
    "EngineState",
    "MemoryCacheEngine",
    "Middlewares",
    "RecordData",
    "RedisCacheEngine",
    "RepositoryAddon",
    "RequestRecorder",
    "WorkerAddon",
    "create_engine",
    "load_records",
    "replay_records",
]
