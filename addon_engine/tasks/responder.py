"""
Responder
=========

Owns the transport's send callback for one request. Each send consumes the
callback; a task helper may rebind it so the next response is forwarded to
the client request that answers the task.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from ..cache import CacheHandler
from ..core.exceptions import ConfigurationError, ResponseAlreadySentError
from ..core.types import SendResponse

logger = logging.getLogger(__name__)


class Responder:
    """At-most-once sender around a ``send_response(status, body)`` callback."""

    def __init__(self, send_response: SendResponse | None):
        self._send_response = send_response
        self.last_id: str | None = None

    @property
    def is_bound(self) -> bool:
        return self._send_response is not None

    async def send(self, status_code: int, body: Any, response_id: str | None = None) -> str:
        """
        Send through the bound callback and return the response id.

        The id is the one the transport returns; ``response_id`` (or a fresh
        uuid) is used when the transport returns ``None``.
        """
        if self._send_response is None:
            raise ResponseAlreadySentError()
        send_response, self._send_response = self._send_response, None
        sent_id = await send_response(status_code, body)
        self.last_id = str(sent_id) if sent_id is not None else response_id or uuid.uuid4().hex
        return self.last_id

    def set_send_response(self, response_id: str, send_response: SendResponse | None) -> None:
        """Rebind the callback after response ``response_id``; ``None`` detaches it."""
        if response_id != self.last_id:
            raise ConfigurationError(
                f"Response {response_id} is not the last response sent ({self.last_id})"
            )
        self._send_response = send_response


def forward_to_task(tasks: CacheHandler, task_id: str) -> SendResponse:
    """Callback that hands a response to the request answering ``task_id``."""

    async def _forward(status_code: int, body: Any) -> None:
        logger.debug("Forwarding response %s to task %s", status_code, task_id)
        await tasks.set(f"response:{task_id}", {"status_code": status_code, "body": body})

    return _forward
