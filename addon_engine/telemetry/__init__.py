"""
Telemetry
=========

Structured logging with per-request context.
"""

from .logger import (
    RequestContextFilter,
    StructuredFormatter,
    clear_request_context,
    get_request_context,
    set_request_context,
    setup_logging,
)

__all__ = [
    "RequestContextFilter",
    "StructuredFormatter",
    "clear_request_context",
    "get_request_context",
    "set_request_context",
    "setup_logging",
]
