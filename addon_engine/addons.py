"""
Addons
======

Base classes for addons: pluggable providers implementing one or more
actions. The engine only relies on the public accessors; everything else
is for addon authors.

Usage:
    addon = WorkerAddon({"id": "example", "name": "Example"})

    @addon.action("directory")
    async def directory(input, ctx, addon):
        return {"items": []}
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import fields
from typing import Any, ClassVar

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from .cache import CacheOptions
from .core.exceptions import ActionNotFoundError, ValidationError
from .core.types import Action, ActionHandler, AddonType

logger = logging.getLogger(__name__)

_CACHE_OPTION_NAMES = frozenset(f.name for f in fields(CacheOptions)) - {"prefix"}


class AddonProps(BaseModel):
    """Declared addon properties."""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., pattern=r"^[a-z0-9][a-z0-9._-]*$", max_length=128)
    name: str = Field(..., min_length=1)
    version: str = "0.0.0"
    description: str = ""
    default_cache_options: dict[str, Any] = Field(default_factory=dict)


# ── Built-in handlers ────────────────────────────────────────────────────────

async def _addon_handler(input: Any, ctx: Any, addon: BasicAddon) -> dict[str, Any]:
    return addon.get_props()


async def _selftest_handler(input: Any, ctx: Any, addon: BasicAddon) -> dict[str, Any]:
    return {"id": addon.get_id(), "version": addon.props.get("version", "0.0.0"), "status": "ok"}


# ── Addon classes ────────────────────────────────────────────────────────────

class BasicAddon:
    """Base addon with an action handler registry."""

    addon_type: ClassVar[str] = AddonType.WORKER

    def __init__(self, props: dict[str, Any]):
        self.props = dict(props)
        self._handlers: dict[str, ActionHandler] = {
            Action.ADDON: _addon_handler,
            Action.SELFTEST: _selftest_handler,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.props.get('id')!r})"

    def get_id(self) -> str:
        return str(self.props.get("id", ""))

    def get_type(self) -> str:
        return self.addon_type

    def get_props(self) -> dict[str, Any]:
        """Descriptor returned by the ``addon`` action."""
        props = {k: v for k, v in self.props.items() if k != "default_cache_options"}
        props.setdefault("version", "0.0.0")
        props.setdefault("description", "")
        props["type"] = self.get_type()
        props["actions"] = sorted(a for a in self._handlers if a not in (Action.ADDON, Action.SELFTEST))
        return props

    def get_default_cache_options(self) -> dict[str, Any]:
        return dict(self.props.get("default_cache_options") or {})

    def validate_addon(self) -> None:
        """Check the declared props. Raises ``ValidationError`` on the first problem."""
        try:
            AddonProps.model_validate(self.props)
        except pydantic.ValidationError as e:
            first = e.errors()[0]
            loc = ".".join(str(p) for p in first["loc"])
            raise ValidationError(f"{loc}: {first['msg']}") from e

        unknown = set(self.get_default_cache_options()) - _CACHE_OPTION_NAMES
        if unknown:
            raise ValidationError(f"Unknown default cache options: {sorted(unknown)}")

    def register_action_handler(self, action: str, handler: ActionHandler) -> BasicAddon:
        if action == Action.TASK:
            raise ValueError('"task" is handled by the engine and cannot be registered')
        self._handlers[action] = handler
        return self

    def action(self, name: str) -> Callable[[ActionHandler], ActionHandler]:
        """Decorator form of ``register_action_handler``."""

        def decorator(handler: ActionHandler) -> ActionHandler:
            self.register_action_handler(name, handler)
            return handler

        return decorator

    def get_action_handler(self, action: str) -> ActionHandler:
        handler = self._handlers.get(action)
        if handler is None:
            raise ActionNotFoundError(self.get_id(), action)
        return handler


class WorkerAddon(BasicAddon):
    """Addon serving catalog, source and resolver actions."""

    addon_type = AddonType.WORKER


class RepositoryAddon(BasicAddon):
    """Addon listing a set of worker addons."""

    addon_type = AddonType.REPOSITORY

    def __init__(self, props: dict[str, Any]):
        super().__init__(props)
        self._addons: dict[str, BasicAddon] = {}
        self.register_action_handler(Action.REPOSITORY, self._repository_handler)

    def add_addon(self, addon: BasicAddon) -> RepositoryAddon:
        if addon.get_type() == AddonType.REPOSITORY:
            raise ValueError("Repositories cannot contain other repositories")
        if addon.get_id() in self._addons:
            raise ValueError(f'Addon "{addon.get_id()}" is already in repository {self.get_id()}')
        self._addons[addon.get_id()] = addon
        return self

    def get_addons(self) -> list[BasicAddon]:
        return list(self._addons.values())

    def validate_addon(self) -> None:
        super().validate_addon()
        for addon in self._addons.values():
            try:
                addon.validate_addon()
            except ValidationError as e:
                raise ValidationError(f'Repository member "{addon.get_id()}": {e.detail}') from e

    async def _repository_handler(self, input: Any, ctx: Any, addon: BasicAddon) -> list[dict[str, Any]]:
        return [a.get_props() for a in self._addons.values()]
