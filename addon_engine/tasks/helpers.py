"""
Task Helpers
============

Capabilities handed to action handlers through their context. Each helper
suspends the handler, sends a ``Task`` to the client (status 428), and resumes
when the client answers through the ``task`` action.

In test mode (replay or selftest) there is no client to answer: ``fetch``
performs the request directly, ``toast`` and ``notification`` only log and
``recaptcha`` fails.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from ..cache import CacheHandler
from ..core.config import settings
from ..core.exceptions import CacheFoundError, TaskError, TaskTimeoutError
from ..core.types import TaskKind
from ..validation.schemas import Task, TaskResult
from .responder import Responder, forward_to_task

logger = logging.getLogger(__name__)

TASK_STATUS_CODE = 428
TASK_PREFIX = "task"


def task_cache(cache: CacheHandler) -> CacheHandler:
    """Namespace shared by task helpers and the ``task`` action."""
    return cache.clone(prefix=TASK_PREFIX)


async def run_task(
    responder: Responder,
    cache: CacheHandler,
    kind: TaskKind,
    data: dict[str, Any],
) -> dict[str, Any]:
    """Send a task to the client and wait for its result data."""
    tasks = task_cache(cache)
    task = Task(id=uuid.uuid4().hex, kind=kind, data=data)
    timeout = settings.TASK_TIMEOUT_S

    await tasks.set(
        f"wait:{task.id}",
        {"addon_id": cache.options.prefix, "kind": kind},
        ttl=timeout * 2,
    )
    response_id = await responder.send(TASK_STATUS_CODE, task.model_dump(mode="json"),response_id=task.id)
    responder.set_send_response(response_id, forward_to_task(tasks, task.id))

    try:
        raw = await tasks.wait_key(f"result:{task.id}", timeout=timeout, delete=True)
    except TimeoutError as e:
        await tasks.delete(f"wait:{task.id}")
        raise TaskTimeoutError(task.id, kind, timeout) from e
    except CacheFoundError as e:
        raise TaskError(str(e.error), kind) from e

    result = TaskResult.model_validate(raw)
    if result.error:
        raise TaskError(result.error, kind)
    return result.data


def create_task_fetch(
    test_mode: bool, responder: Responder, cache: CacheHandler
) -> Callable[..., Awaitable[dict[str, Any]]]:
    async def fetch(
        url: str,
        *,
        method: str = "GET",
        headers: dict[str, str] | None = None,
        body: str | None = None,
        timeout_s: float = 30.0,
    ) -> dict[str, Any]:
        """Fetch ``url`` from the client's network. Returns status, headers, text, url."""
        if test_mode:
            async with httpx.AsyncClient(timeout=timeout_s, follow_redirects=True) as client:
                response = await client.request(method, url, headers=headers, content=body)
            return {
                "status": response.status_code,
                "headers": dict(response.headers),
                "text": response.text,
                "url": str(response.url),
            }
        return await run_task(
            responder,
            cache,
            TaskKind.FETCH,
            {"url": url, "method": method, "headers": headers or {}, "body": body},
        )

    return fetch


def create_task_recaptcha(
    test_mode: bool, responder: Responder, cache: CacheHandler
) -> Callable[..., Awaitable[str]]:
    async def recaptcha(site_key: str, url: str, version: int = 2, action: str | None = None) -> str:
        """Have the client solve a reCAPTCHA and return its token."""
        if test_mode:
            raise TaskError("Recaptcha tasks are not available in test mode", TaskKind.RECAPTCHA)
        data = await run_task(
            responder,
            cache,
            TaskKind.RECAPTCHA,
            {"site_key": site_key, "url": url, "version": version, "action": action},
        )
        token = data.get("token")
        if not token:
            raise TaskError("Recaptcha task returned no token", TaskKind.RECAPTCHA)
        return str(token)

    return recaptcha


def create_task_toast(
    test_mode: bool, responder: Responder, cache: CacheHandler
) -> Callable[..., Awaitable[None]]:
    async def toast(message: str) -> None:
        """Show a short message on the client."""
        if test_mode:
            logger.info("Toast: %s", message)
            return
        await run_task(responder, cache, TaskKind.TOAST, {"message": message})

    return toast


def create_task_notification(
    test_mode: bool, responder: Responder, cache: CacheHandler
) -> Callable[..., Awaitable[None]]:
    async def notification(title: str, message: str, url: str | None = None) -> None:
        """Show a persistent notification on the client."""
        if test_mode:
            logger.info("Notification: %s - %s", title, message)
            return
        await run_task(
            responder,
            cache,
            TaskKind.NOTIFICATION,
            {"title": title, "message": message, "url": url},
        )

    return notification
