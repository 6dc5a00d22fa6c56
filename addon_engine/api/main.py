"""
Addon Engine Application
========================

Builds a FastAPI app serving every addon of an engine.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from ..core.config import settings
from ..engine import Engine
from ..telemetry import setup_logging
from .routes import create_router


def create_app(engine: Engine, prefix: str = "") -> FastAPI:
    setup_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        if not engine.frozen:
            engine.initialize()
        yield
        await engine.options.cache.engine.close()

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
    app.state.engine = engine
    app.include_router(create_router(engine), prefix=prefix)
    return app
