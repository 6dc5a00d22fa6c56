"""
Validation & Migration
======================

Default schema validators per action plus versioned migrations for older
clients.
"""

from .migrations import (
    SDK_VERSION,
    MIGRATIONS,
    Migration,
    MigrationContext,
    run_request_migration,
    run_response_migration,
)
from .validators import ActionValidator, get_action_validator

__all__ = [
    "SDK_VERSION",
    "MIGRATIONS",
    "ActionValidator",
    "Migration",
    "MigrationContext",
    "get_action_validator",
    "run_request_migration",
    "run_response_migration",
]
