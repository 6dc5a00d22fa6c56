"""
Engine
======

Process-wide lifecycle object. Holds the addons and options, validates
addons once at construction, freezes the options on first use and
manufactures per-addon request handlers.

Usage:
    engine = create_engine([addon], replay_mode=False)
    handler = engine.create_addon_handler(addon)
    await handler(action="directory", input={...}, sig=sig, send_response=send)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, fields, replace
from enum import StrEnum
from typing import Any

from .addons import BasicAddon
from .cache import CacheHandler, get_cache_engine_from_env
from .core.config import settings
from .core.exceptions import ConfigurationError, error_message
from .core.types import Action, InitMiddleware, RequestMiddleware, ResponseMiddleware
from .pipeline import AddonHandler, create_addon_handler
from .recorder import RequestRecorder

logger = logging.getLogger(__name__)

DEFAULT_RESULT_REQUIRED_ACTIONS = frozenset({Action.RESOLVE, Action.CAPTCHA})


# ── Options ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True, slots=True)
class Middlewares:
    """Ordered transforms per hook point, applied left to right."""

    init: tuple[InitMiddleware, ...] = ()
    request: tuple[RequestMiddleware, ...] = ()
    response: tuple[ResponseMiddleware, ...] = ()

    @classmethod
    def coerce(cls, value: Middlewares | Mapping[str, Iterable[Any]] | None) -> Middlewares:
        if value is None:
            return cls()
        if isinstance(value, Middlewares):
            return value
        unknown = set(value) - {"init", "request", "response"}
        if unknown:
            raise ConfigurationError(f"Unknown middleware stages: {sorted(unknown)}")
        return cls(**{stage: tuple(fns or ()) for stage, fns in value.items()})


@dataclass(frozen=True, slots=True)
class EngineOptions:
    cache: CacheHandler
    middlewares: Middlewares = field(default_factory=Middlewares)
    request_recorder_path: str | None = None
    replay_mode: bool = False
    result_required_actions: frozenset[str] = DEFAULT_RESULT_REQUIRED_ACTIONS

_OPTION_NAMES = frozenset(f.name for f in fields(EngineOptions))


def _normalize(changes: dict[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - _OPTION_NAMES
    if unknown:
        raise ConfigurationError(f"Unknown engine options: {sorted(unknown)}")
    if "middlewares" in changes:
        changes["middlewares"] = Middlewares.coerce(changes["middlewares"])
    if "result_required_actions" in changes:
        changes["result_required_actions"] = frozenset(changes["result_required_actions"])
    return changes


# ── Engine ───────────────────────────────────────────────────────────────────

class EngineState(StrEnum):
    CONFIGURABLE = "configurable"
    FROZEN = "frozen"


class Engine:
    """
    Addon engine lifecycle.

    ``CONFIGURABLE`` until the first handler is created (or ``initialize`` is
    called), ``FROZEN`` afterwards. Options cannot change once frozen.
    """

    def __init__(self, addons: Sequence[BasicAddon], options: EngineOptions):
        self.addons = tuple(addons)
        self._options = options
        self.state = EngineState.CONFIGURABLE
        self.request_recorder: RequestRecorder | None = None

    @property
    def options(self) -> EngineOptions:
        return self._options

    @property
    def frozen(self) -> bool:
        return self.state is EngineState.FROZEN

    def _assert_not_frozen(self) -> None:
        if self.frozen:
            raise ConfigurationError(
                "Not allowed to update options after addon handlers are created"
            )

    def update_options(self, **changes: Any) -> None:
        """Shallow-merge ``changes`` into the options."""
        self._assert_not_frozen()
        self._options = replace(self._options, **_normalize(changes))

    def initialize(self) -> None:
        """Freeze the options and start the request recorder if configured."""
        self._assert_not_frozen()

        logger.info("Using cache: %s", self._options.cache.engine.name)

        if self._options.request_recorder_path:
            if settings.is_production():
                raise ConfigurationError(
                    "Request recording is not supported in production builds"
                )
            self.request_recorder = RequestRecorder(self._options.request_recorder_path)
            logger.warning("Logging requests to %s", self.request_recorder.path)

        self.state = EngineState.FROZEN

    def create_addon_handler(self, addon: BasicAddon) -> AddonHandler:
        if not self.frozen:
            self.initialize()
        return create_addon_handler(addon, self._options, self.request_recorder)


def create_engine(addons: Sequence[BasicAddon], **options: Any) -> Engine:
    """
    Validate ``addons`` and build an engine.

    Raises:
        ConfigurationError: an addon failed validation, ids collide, or an
            option is unknown
    """
    seen: set[str] = set()
    for addon in addons:
        try:
            addon.validate_addon()
        except Exception as e:  # any self-validation failure is fatal
            raise ConfigurationError(
                f'Validation of addon "{addon.get_id()}" failed: {error_message(e)}'
            ) from e
        if addon.get_id() in seen:
            raise ConfigurationError(f'Duplicate addon id "{addon.get_id()}"')
        seen.add(addon.get_id())

    changes = _normalize(dict(options))
    if changes.get("cache") is None:
        changes["cache"] = CacheHandler(get_cache_engine_from_env())
    return Engine(addons, EngineOptions(**changes))
