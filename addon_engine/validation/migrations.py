"""
Versioned Migrations
====================

Adapters that let older clients keep talking to current addons. A migration
replaces the default validator for its action; it is responsible for calling
``ctx.validator`` itself. The request and response halves share
``MigrationContext.data`` so the response can be shaped for the caller that
sent the request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..core.types import Action
from .validators import ActionValidator

if TYPE_CHECKING:
    from ..addons import BasicAddon

logger = logging.getLogger(__name__)

SDK_VERSION = "1.0.0"


@dataclass(slots=True)
class MigrationContext:
    """Per-request state shared by both halves of a migration."""

    addon: BasicAddon
    user: dict[str, Any] | None
    validator: ActionValidator
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Migration:
    request: Callable[[MigrationContext, Any], Any] | None = None
    response: Callable[[MigrationContext, Any, Any], Any] | None = None


# ── addon ────────────────────────────────────────────────────────────────────

def _addon_request(ctx: MigrationContext, input: Any) -> Any:
    # Clients before protocol 2 send a single "en_US" style locale
    if isinstance(input, dict) and "locale" in input and "language" not in input:
        language, _, region = str(input["locale"]).replace("-", "_").partition("_")
        input = {k: v for k, v in input.items() if k != "locale"}
        input.update(language=language.lower(), region=(region or "XX").upper())
        ctx.data["legacy_locale"] = True
    return ctx.validator.request(input)


def _addon_response(ctx: MigrationContext, input: Any, output: Any) -> Any:
    output = ctx.validator.response(output)
    output["sdk_version"] = SDK_VERSION
    if ctx.data.get("legacy_locale"):
        output["locale"] = f"{input['language']}_{input['region']}"
    return output


# ── directory ────────────────────────────────────────────────────────────────

def _directory_request(ctx: MigrationContext, input: Any) -> Any:
    # Page-numbered pagination predates cursors; page 1 has no cursor
    if isinstance(input, dict) and "page" in input and "cursor" not in input:
        page = int(input["page"])
        input = {k: v for k, v in input.items() if k != "page"}
        input["cursor"] = None if page <= 1 else page
        ctx.data["legacy_page"] = page
    return ctx.validator.request(input)


def _directory_response(ctx: MigrationContext, input: Any, output: Any) -> Any:
    output = ctx.validator.response(output)
    page = ctx.data.get("legacy_page")
    if page is not None:
        output["page"] = page
        output["has_more"] = output.get("next_cursor") is not None
    return output

MIGRATIONS: dict[str, Migration] = {
    Action.ADDON: Migration(request=_addon_request, response=_addon_response),
    Action.DIRECTORY: Migration(request=_directory_request, response=_directory_response),
}


def run_request_migration(action: str, ctx: MigrationContext, input: Any) -> Any:
    migration = MIGRATIONS.get(action)
    if migration is not None and migration.request is not None:
        return migration.request(ctx, input)
    return ctx.validator.request(input)


def run_response_migration(action: str, ctx: MigrationContext, input: Any, output: Any) -> Any:
    migration = MIGRATIONS.get(action)
    if migration is not None and migration.response is not None:
        return migration.response(ctx, input, output)
    return ctx.validator.response(output)
