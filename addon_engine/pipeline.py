"""
Addon Request Pipeline
======================

The function invoked once per inbound request. A strict sequential pipeline:

  init middleware → task short-circuit → handler lookup → authentication
  → request migration/validation → cache scoping → context assembly
  → request middleware → handler → response migration/validation
  → request-cache commit → error translation → response middleware
  → recording → send

Authentication (403) and request validation (400) failures end the request
immediately: no handler call, no response middleware, no recording.
Handler-side failures are translated into ``(500, {"error": ...})``.
"""

from __future__ import annotations

import copy
import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from .auth import validate_signature
from .context import ActionHandlerContext, RequestCacheSlot
from .core.config import settings
from .core.exceptions import (
    AddonEngineError,
    AuthError,
    CacheFoundError,
    NothingFoundError,
    error_message,
)
from .core.types import Action, AddonType, SendResponse
from .recorder import RecordData, RequestRecorder
from .tasks import (
    Responder,
    create_task_fetch,
    create_task_notification,
    create_task_recaptcha,
    create_task_toast,
    handle_task,
)
from .telemetry import clear_request_context, set_request_context
from .validation import (
    MigrationContext,
    get_action_validator,
    run_request_migration,
    run_response_migration,
)

if TYPE_CHECKING:
    from .addons import BasicAddon
    from .engine import EngineOptions

logger = logging.getLogger(__name__)

AddonHandler = Callable[..., Awaitable[None]]


def _is_empty(output: Any) -> bool:
    if output is None:
        return True
    return isinstance(output, (list, tuple, dict, str)) and len(output) == 0


def _skips_auth(addon: BasicAddon, action: str, test_mode: bool) -> bool:
    return (
        test_mode
        or settings.SKIP_AUTH
        or action == Action.ADDON
        or (addon.get_type() == AddonType.REPOSITORY and action == Action.REPOSITORY)
    )


def create_addon_handler(
    addon: BasicAddon,
    options: EngineOptions,
    request_recorder: RequestRecorder | None,
) -> AddonHandler:
    """Build the request handler for ``addon``."""

    async def handle(
        *,
        action: str,
        input: Any,
        sig: str | None = None,
        request: Any = None,
        send_response: SendResponse,
    ) -> None:
        set_request_context(
            request_id=uuid.uuid4().hex[:16], addon_id=addon.get_id(), action=action
        )
        responder = Responder(send_response)
        try:
            await _run(addon, options, request_recorder, responder, action, input, sig, request)
        except Exception as e:
            status_code = getattr(e, "status_code", 500)
            if isinstance(e, AddonEngineError) and status_code < 500:
                logger.warning("Rejected %s/%s: %s", addon.get_id(), action, e.detail)
            else:
                logger.exception("Unhandled failure in %s/%s", addon.get_id(), action)
            if responder.is_bound:
                await responder.send(status_code, {"error": error_message(e)})
        finally:
            clear_request_context()

    return handle


async def _run(
    addon: BasicAddon,
    options: EngineOptions,
    request_recorder: RequestRecorder | None,
    responder: Responder,
    action: str,
    input: Any,
    sig: str | None,
    request: Any,
) -> None:
    # Snapshot before middleware or migration touches it
    original_input = copy.deepcopy(input) if request_recorder else None

    for fn in options.middlewares.init:
        input = await fn(addon, action, input)

    if action == Action.TASK:
        await handle_task(cache=options.cache, addon=addon, input=input, send_response=responder.send)
        return

    handler = addon.get_action_handler(action)

    test_mode = options.replay_mode or action == Action.SELFTEST

    try:
        user = None if _skips_auth(addon, action, test_mode) else validate_signature(sig)
    except AuthError as e:
        await responder.send(403, {"error": error_message(e)})
        return

    migration_ctx = MigrationContext(
        addon=addon,
        user=user,
        validator=get_action_validator(addon.get_type(), action),
    )
    try:
        input = run_request_migration(action, migration_ctx, input)
    except Exception as e:  # schema or migration failure
        await responder.send(400, {"error": error_message(e)})
        return

    cache = options.cache.clone(prefix=addon.get_id(), **addon.get_default_cache_options())
    request_cache = RequestCacheSlot(cache)
    ctx = ActionHandlerContext(
        cache=cache,
        request=request,
        user=user,
        request_cache=request_cache,
        fetch=create_task_fetch(test_mode, responder, cache),
        recaptcha=create_task_recaptcha(test_mode, responder, cache),
        toast=create_task_toast(test_mode, responder, cache),
        notification=create_task_notification(test_mode, responder, cache),
    )

    for fn in options.middlewares.request:
        input = await fn(addon, action, ctx, input)

    status_code = 200
    output: Any
    try:
        output = await handler(input, ctx, addon)

        if action in options.result_required_actions and _is_empty(output):
            raise NothingFoundError()

        output = run_response_migration(action, migration_ctx, input, output)

        if request_cache.handle is not None:
            await request_cache.handle.set(output)
    except CacheFoundError as e:
        if e.has_result:
            output = e.result
        else:
            status_code = 500
            output = {"error": e.error}
    except Exception as e:  # handler failure
        if request_cache.handle is not None:
            await request_cache.handle.set_error(e)
        status_code = 500
        output = {"error": error_message(e)}
        if not getattr(e, "no_backtrace_log", False):
            logger.warning("Action %s failed: %s", action, e, exc_info=e)

    for fn in options.middlewares.response:
        output = await fn(addon, action, ctx, input, output)

    if request_recorder:
        await request_recorder.write(
            RecordData(
                addon=addon.get_id(),
                action=action,
                input=original_input,
                output=output,
                status_code=status_code,
            )
        )

    response_id = await responder.send(status_code, output)
    responder.set_send_response(response_id, None)
