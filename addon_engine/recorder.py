"""
Request Recording
=================

Development-only capture of ``(input, output, status_code)`` per request,
stored as JSON Lines, and replay of those captures against an engine in
replay mode. Replays double as regression tests for addons.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import aiofiles

from .core.exceptions import ConfigurationError

if TYPE_CHECKING:
    from .engine import Engine

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class RecordData:
    addon: str
    action: str
    input: Any
    output: Any
    status_code: int


@dataclass(frozen=True, slots=True)
class ReplayMismatch:
    record: RecordData
    status_code: int
    output: Any


class RequestRecorder:
    """Appends one JSON line per recorded request. Truncates ``path`` on creation."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text("", encoding="utf-8")
        self._lock = asyncio.Lock()

    async def write(self, record: RecordData) -> None:
        line = json.dumps(asdict(record), default=str, ensure_ascii=False)
        async with self._lock:
            async with aiofiles.open(self.path, "a", encoding="utf-8") as f:
                await f.write(line + "\n")


async def load_records(path: str | Path) -> list[RecordData]:
    records: list[RecordData] = []
    async with aiofiles.open(path, encoding="utf-8") as f:
        async for line in f:
            if line.strip():
                records.append(RecordData(**json.loads(line)))
    return records


async def replay_records(engine: Engine, records: list[RecordData]) -> list[ReplayMismatch]:
    """Re-run ``records`` through ``engine`` and return the ones that differ."""
    if not engine.options.replay_mode:
        raise ConfigurationError("Replaying records requires replay_mode")

    addons = {addon.get_id(): addon for addon in engine.addons}
    mismatches: list[ReplayMismatch] = []

    for record in records:
        addon = addons.get(record.addon)
        if addon is None:
            raise ConfigurationError(f'Recorded addon "{record.addon}" is not registered')

        sent: list[tuple[int, Any]] = []

        async def capture(status_code: int, body: Any) -> None:
            sent.append((status_code, body))

        handler = engine.create_addon_handler(addon)
        await handler(
            action=record.action,
            input=copy.deepcopy(record.input),
            sig=None,
            request=None,
            send_response=capture,
        )
        status_code, output = sent[-1]
        # Round-trip through JSON so tuples, enums etc. compare like the recording
        output = json.loads(json.dumps(output, default=str))
        if status_code != record.status_code or output != record.output:
            logger.warning("Replay mismatch for %s/%s", record.addon, record.action)
            mismatches.append(ReplayMismatch(record, status_code, output))

    return mismatches
