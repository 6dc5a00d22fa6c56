"""HTTP transport for the engine."""

from .main import create_app
from .routes import create_router

__all__ = ["create_app", "create_router"]
