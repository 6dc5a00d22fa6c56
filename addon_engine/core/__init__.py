"""Core configuration, exceptions and shared types."""

from .config import Settings, get_settings, settings
from .exceptions import (
    ActionNotFoundError,
    AddonEngineError,
    AuthError,
    CacheFoundError,
    ConfigurationError,
    NothingFoundError,
    ResponseAlreadySentError,
    TaskError,
    TaskTimeoutError,
    ValidationError,
)
from .types import Action, AddonType, TaskKind

__all__ = [
    "Action",
    "ActionNotFoundError",
    "AddonEngineError",
    "AddonType",
    "AuthError",
    "CacheFoundError",
    "ConfigurationError",
    "NothingFoundError",
    "ResponseAlreadySentError",
    "Settings",
    "TaskError",
    "TaskKind",
    "TaskTimeoutError",
    "ValidationError",
    "get_settings",
    "settings",
]
