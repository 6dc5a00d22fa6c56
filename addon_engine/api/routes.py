"""
Addon HTTP Routes
=================

Thin FastAPI transport for the engine:
- POST /{addon_id}/{action}  → run the action through the addon's handler
- GET  /health               → engine and addon overview

A handler may answer before it finishes (a task is sent with status 428 and
the handler keeps waiting for the client's ``task`` request), so the route
returns on the first send and leaves the handler running in the background.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ..engine import Engine
from ..pipeline import AddonHandler

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-addon-signature"


# ── Request Schemas ──────────────────────────────────────────────────────────

class ActionRequest(BaseModel):
    input: Any = None
    sig: str | None = None


# ── Router ───────────────────────────────────────────────────────────────────

def create_router(engine: Engine) -> APIRouter:
    router = APIRouter(tags=["addons"])
    addons = {addon.get_id(): addon for addon in engine.addons}
    handlers: dict[str, AddonHandler] = {}
    background: set[asyncio.Task] = set()

    def _get_handler(addon_id: str) -> AddonHandler:
        if addon_id not in addons:
            raise HTTPException(status_code=404, detail=f"Unknown addon: {addon_id}")
        if addon_id not in handlers:
            handlers[addon_id] = engine.create_addon_handler(addons[addon_id])
        return handlers[addon_id]

    @router.get("/health")
    async def health():
        return {
            "status": "ok",
            "engine_state": engine.state,
            "addons": sorted(addons),
        }

    @router.post("/{addon_id}/{action}")
    async def dispatch(addon_id: str, action: str, body: ActionRequest, request: Request):
        handler = _get_handler(addon_id)
        sent: asyncio.Future[tuple[int, Any]] = asyncio.get_running_loop().create_future()

        async def send_response(status_code: int, payload: Any) -> None:
            if not sent.done():
                sent.set_result((status_code, payload))

        task = asyncio.create_task(
            handler(
                action=action,
                input=body.input,
                sig=body.sig or request.headers.get(SIGNATURE_HEADER),
                request={
                    "method": request.method,
                    "url": str(request.url),
                    "headers": dict(request.headers),
                },
                send_response=send_response,
            )
        )
        background.add(task)
        task.add_done_callback(background.discard)

        await asyncio.wait({task, sent}, return_when=asyncio.FIRST_COMPLETED)
        if not sent.done():
            logger.error("Handler for %s/%s finished without responding", addon_id, action)
            return JSONResponse(status_code=500, content={"error": "No response"})

        status_code, payload = sent.result()
        return JSONResponse(status_code=status_code, content=payload)

    return router
