"""
Canonical Type Definitions
===========================

Shared enums and callable shapes used across the engine.

This module defines:
- AddonType: Declared addon kinds
- Action: Well-known action names
- TaskKind: Out-of-band task kinds
- Middleware signatures for the three hook points
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..addons import BasicAddon
    from ..context import ActionHandlerContext

__all__ = [
    "Action",
    "ActionHandler",
    "AddonType",
    "InitMiddleware",
    "RequestMiddleware",
    "ResponseMiddleware",
    "SendResponse",
    "TaskKind",
]


class AddonType(StrEnum):
    """Addon kinds an addon can declare."""

    WORKER = "worker"
    REPOSITORY = "repository"


class Action(StrEnum):
    """Action names with special meaning to the pipeline.

    Addons may implement any other action name as well.
    """

    ADDON = "addon"  # Bare addon descriptor fetch
    REPOSITORY = "repository"
    SELFTEST = "selftest"
    TASK = "task"  # Client callback answering an out-of-band task
    DIRECTORY = "directory"
    ITEM = "item"
    SOURCE = "source"
    SUBTITLE = "subtitle"
    RESOLVE = "resolve"
    CAPTCHA = "captcha"


class TaskKind(StrEnum):
    FETCH = "fetch"
    RECAPTCHA = "recaptcha"
    TOAST = "toast"
    NOTIFICATION = "notification"

# Transport callback: (status_code, body) -> awaitable response id or None
SendResponse = Callable[[int, Any], Awaitable[str | None]]

# Addon action handler: (input, ctx, addon) -> output
ActionHandler = Callable[[Any, "ActionHandlerContext", "BasicAddon"], Awaitable[Any]]

# Middleware shapes, one per stage
InitMiddleware = Callable[["BasicAddon", str, Any], Awaitable[Any]]
RequestMiddleware = Callable[["BasicAddon", str, "ActionHandlerContext", Any], Awaitable[Any]]
ResponseMiddleware = Callable[
    ["BasicAddon", str, "ActionHandlerContext", Any, Any], Awaitable[Any]
]
