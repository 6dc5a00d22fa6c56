"""Handling of ``task`` action requests: the client's answers to tasks."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pydantic

from ..cache import CacheHandler
from ..core.config import settings
from ..core.exceptions import CacheFoundError
from ..core.types import SendResponse
from ..validation.schemas import TaskResult
from .helpers import task_cache

if TYPE_CHECKING:
    from ..addons import BasicAddon

logger = logging.getLogger(__name__)


async def handle_task(
    *,
    cache: CacheHandler,
    addon: BasicAddon,
    input: Any,
    send_response: SendResponse,
) -> None:
    """
    Deliver a task result to the waiting handler and relay its next response.

    The waiting handler may send its final output or another task; either
    way that response goes back to the client on this request.
    """
    tasks = task_cache(cache)

    try:
        result = TaskResult.model_validate(input)
    except pydantic.ValidationError as e:
        await send_response(400, {"error": f"Invalid task result: {e.error_count()} error(s)"})
        return

    marker = await tasks.get(f"wait:{result.id}")
    if not marker or marker.get("addon_id") != addon.get_id():
        logger.warning("Unknown or expired task %s for addon %s", result.id, addon.get_id())
        await send_response(404, {"error": f"Task {result.id} not found"})
        return
    await tasks.delete(f"wait:{result.id}")

    timeout = settings.TASK_TIMEOUT_S
    await tasks.set(f"result:{result.id}", result.model_dump(mode="json"), ttl=timeout * 2)

    try:
        response = await tasks.wait_key(f"response:{result.id}", timeout=timeout, delete=True)
    except TimeoutError:
        logger.warning("No response followed task %s within %.1fs", result.id, timeout)
        await send_response(500, {"error": f"Task {result.id} response timed out"})
        return
    except CacheFoundError as e:
        await send_response(500, {"error": e.error})
        return

    await send_response(response["status_code"], response["body"])
