"""Exception classes for the addon engine.

Includes:
- Base exception carrying an HTTP-like status code
- Request failures translated into responses by the pipeline
- Configuration errors raised to the caller at setup time
- The cache replay signal used by the inline request cache
"""

from datetime import UTC, datetime
from typing import Any


class AddonEngineError(Exception):
    """Base exception for all addon engine errors."""

    def __init__(
        self,
        detail: str,
        status_code: int = 500,
        error_code: str = "INTERNAL_ERROR",
        no_backtrace_log: bool = False,
    ):
        self.detail = detail
        self.status_code = status_code
        self.error_code = error_code
        self.no_backtrace_log = no_backtrace_log
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)

    def to_dict(self):
        """Convert exception to dictionary for logging and diagnostics."""
        return {
            "error": self.error_code,
            "detail": self.detail,
            "status_code": self.status_code,
            "timestamp": self.timestamp,
        }


class AuthError(AddonEngineError):
    """Raised when a request signature is missing or invalid."""

    def __init__(self, detail: str = "Invalid signature"):
        super().__init__(detail=detail, status_code=403, error_code="AUTH_FAILED")


class ValidationError(AddonEngineError):
    """Raised when request or response data fails schema validation."""

    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=400, error_code="VALIDATION_ERROR")


class ActionNotFoundError(AddonEngineError):
    """Raised when an addon has no handler for an action."""

    def __init__(self, addon_id: str, action: str):
        super().__init__(
            detail=f'Action "{action}" is not supported by addon "{addon_id}"',
            status_code=404,
            error_code="ACTION_NOT_FOUND",
        )
        self.addon_id = addon_id
        self.action = action


class NothingFoundError(AddonEngineError):
    """Raised when a result-required action produced an empty result."""

    def __init__(self, detail: str = "Nothing found"):
        super().__init__(
            detail=detail,
            status_code=500,
            error_code="NOTHING_FOUND",
            no_backtrace_log=True,
        )


class TaskError(AddonEngineError):
    """Raised when an out-of-band task cannot be completed."""

    def __init__(self, detail: str, kind: str = "unknown"):
        super().__init__(
            detail=detail, status_code=500, error_code=f"TASK_{kind.upper()}_ERROR"
        )
        self.kind = kind


class TaskTimeoutError(TaskError):
    """Raised when the client did not answer a task in time."""

    def __init__(self, task_id: str, kind: str, timeout_s: float):
        super().__init__(
            detail=f"Task {task_id} ({kind}) timed out after {timeout_s}s", kind=kind
        )
        self.task_id = task_id


class ConfigurationError(AddonEngineError):
    """Raised for programming errors in engine setup or addon code."""

    def __init__(self, detail: str):
        super().__init__(detail=detail, status_code=500, error_code="CONFIGURATION_ERROR")


class ResponseAlreadySentError(ConfigurationError):
    """Raised when a responder is asked to send after its callback is gone."""

    def __init__(self, detail: str = "Response was already sent"):
        super().__init__(detail)


# =============================================================================
# CACHE REPLAY SIGNAL
# =============================================================================


class CacheFoundError(Exception):
    """A prior computation for this cache key completed or is in flight.

    Carries either ``result`` (success replay) or ``error`` (failure replay).
    Not an ``AddonEngineError``; the pipeline treats it as a replay.
    """

    _UNSET: Any = object()

    def __init__(self, result: Any = _UNSET, error: Any = None):
        self.result = result
        self.error = error
        super().__init__(
            "Cache hit" if self.has_result else f"Cached error: {error}"
        )

    @property
    def has_result(self) -> bool:
        return self.result is not CacheFoundError._UNSET


def error_message(error: BaseException) -> str:
    """Return the message that goes into a ``{"error": ...}`` response body."""
    if isinstance(error, AddonEngineError):
        return error.detail
    return str(error) or type(error).__name__


__all__ = [
    "ActionNotFoundError",
    "AddonEngineError",
    "AuthError",
    "CacheFoundError",
    "ConfigurationError",
    "NothingFoundError",
    "ResponseAlreadySentError",
    "TaskError",
    "TaskTimeoutError",
    "ValidationError",
    "error_message",
]
