"""
Default action validators.

Every ``(addon type, action)`` pair maps to a request/response validator
pair. Pairs without a schema validate nothing and pass data through.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import pydantic
from pydantic import TypeAdapter

from ..core.exceptions import ValidationError
from ..core.types import Action, AddonType
from .schemas import (
    AddonRequest,
    AddonResponse,
    CaptchaRequest,
    DirectoryRequest,
    DirectoryResponse,
    ItemRequest,
    ItemResponse,
    ResolvedUrl,
    ResolveRequest,
    Source,
    Subtitle,
)

logger = logging.getLogger(__name__)

_PASS = TypeAdapter(Any)


@dataclass(frozen=True, slots=True)
class ActionValidator:
    """Request and response validators for one action."""

    name: str
    request_adapter: TypeAdapter | None = None
    response_adapter: TypeAdapter | None = None

    def request(self, input: Any) -> Any:
        return self._check(self.request_adapter or _PASS, input, "request")

    def response(self, output: Any) -> Any:
        return self._check(self.response_adapter or _PASS, output, "response")

    def _check(self, adapter: TypeAdapter, data: Any, half: str) -> Any:
        try:
            value = adapter.validate_python(data)
        except pydantic.ValidationError as e:
            raise ValidationError(
                f"Invalid {self.name} {half}: {e.error_count()} error(s): "
                + "; ".join(
                    f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                    for err in e.errors()
                )
            ) from e
        return adapter.dump_python(value, mode="json")


def _pair(name: str, request: Any, response: Any) -> ActionValidator:
    return ActionValidator(name, TypeAdapter(request), TypeAdapter(response))

_COMMON: dict[str, ActionValidator] = {
    Action.ADDON: _pair(Action.ADDON, AddonRequest, AddonResponse),
    Action.SELFTEST: ActionValidator(Action.SELFTEST),
}

_VALIDATORS: dict[tuple[str, str], ActionValidator] = {
    (AddonType.WORKER, Action.DIRECTORY): _pair(Action.DIRECTORY, DirectoryRequest, DirectoryResponse),
    (AddonType.WORKER, Action.ITEM): _pair(Action.ITEM, ItemRequest, ItemResponse),
    (AddonType.WORKER, Action.SOURCE): _pair(Action.SOURCE, ItemRequest, list[Source]),
    (AddonType.WORKER, Action.SUBTITLE): _pair(Action.SUBTITLE, ItemRequest, list[Subtitle]),
    (AddonType.WORKER, Action.RESOLVE): _pair(
        Action.RESOLVE, ResolveRequest, str | list[str | ResolvedUrl]
    ),
    (AddonType.WORKER, Action.CAPTCHA): _pair(Action.CAPTCHA, CaptchaRequest, str),
    (AddonType.REPOSITORY, Action.REPOSITORY): _pair(
        Action.REPOSITORY, dict[str, Any], list[AddonResponse]
    ),
}


def get_action_validator(addon_type: str, action: str) -> ActionValidator:
    """Validator pair for ``action`` on an addon of ``addon_type``."""
    validator = _VALIDATORS.get((addon_type, action)) or _COMMON.get(action)
    if validator is None:
        logger.debug("No schema for %s/%s, passing data through", addon_type, action)
        return ActionValidator(action)
    return validator
