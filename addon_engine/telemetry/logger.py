"""
Structured Logger
=================

Log lines tagged with the request they belong to.

The pipeline binds ``request_id``, ``addon_id`` and ``action`` for the
duration of a request; ``RequestContextFilter`` copies them onto every record
and ``StructuredFormatter`` renders either one JSON object per line or a
compact console line.
"""

from __future__ import annotations

import json
import logging
import sys
import traceback
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import Any

from ..core.config import settings


@dataclass(frozen=True, slots=True)
class RequestContext:
    request_id: str | None = None
    addon_id: str | None = None
    action: str | None = None


_EMPTY = RequestContext()
_context: ContextVar[RequestContext] = ContextVar("addon_request_context", default=_EMPTY)


def set_request_context(
    *,
    request_id: str | None = None,
    addon_id: str | None = None,
    action: str | None = None,
) -> None:
    """Bind request fields for log records emitted in this context. ``None`` keeps the current value."""
    current = _context.get()
    _context.set(
        RequestContext(
            request_id=request_id or current.request_id,
            addon_id=addon_id or current.addon_id,
            action=action or current.action,
        )
    )


def clear_request_context() -> None:
    _context.set(_EMPTY)


def get_request_context() -> dict[str, str]:
    return {k: v for k, v in asdict(_context.get()).items() if v is not None}


class RequestContextFilter(logging.Filter):
    """Attaches the bound request context to each record as ``record.request``."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request = get_request_context()
        return True


# ── Formatter ────────────────────────────────────────────────────────────────

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "request",
    "asctime",
}


class StructuredFormatter(logging.Formatter):
    """Renders records as JSON objects or console lines."""

    def __init__(self, *, json_output: bool = True, include_traceback: bool = True):
        super().__init__()
        self.json_output = json_output
        self.include_traceback = include_traceback

    def format(self, record: logging.LogRecord) -> str:
        context = getattr(record, "request", None) or get_request_context()
        message = record.getMessage()
        tb = self._traceback(record)

        if self.json_output:
            entry: dict[str, Any] = {
                "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "message": message,
                "context": context,
            }
            extra = {k: v for k, v in vars(record).items() if k not in _RECORD_ATTRS}
            if extra:
                entry["extra"] = extra
            if record.exc_info and record.exc_info[1] is not None:
                entry["error"] = {
                    "type": type(record.exc_info[1]).__name__,
                    "message": str(record.exc_info[1]),
                }
                if tb:
                    entry["error"]["traceback"] = tb
            return json.dumps(entry, default=str, ensure_ascii=False)

        scope = "/".join(context[k] for k in ("addon_id", "action") if k in context) or "-"
        when = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        line = (
            f"{when} {record.levelname:<7} [{context.get('request_id', '-')[:8]}] "
            f"{scope} {record.name}: {message}"
        )
        if tb:
            line += "\n" + tb
        return line

    def _traceback(self, record: logging.LogRecord) -> str | None:
        if not (self.include_traceback and record.exc_info and record.exc_info[2]):
            return None
        return "".join(traceback.format_exception(*record.exc_info)).rstrip()


# ── Setup ────────────────────────────────────────────────────────────────────

_HANDLER_NAME = "addon_engine"


def setup_logging(*, level: str | None = None, json_output: bool | None = None) -> None:
    """
    Install the addon engine handler on the root logger.

    Safe to call repeatedly; the handler is installed once.

    Args:
        level: Root log level, ``LOG_LEVEL`` when omitted
        json_output: JSON lines instead of console lines; defaults to
            ``LOG_JSON``, or JSON in production when that is unset
    """
    root = logging.getLogger()
    if any(h.get_name() == _HANDLER_NAME for h in root.handlers):
        return

    if json_output is None:
        json_output = settings.LOG_JSON if settings.LOG_JSON is not None else settings.is_production()

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(StructuredFormatter(json_output=json_output))
    root.addHandler(handler)
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))

    for name in ("httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)
