"""
Append-only writer for the route-metrics event log.

Each record becomes one line `{"ts": <epoch ms>, "type": ..., "entry": ...}`.
Lines are queued on a bounded BatchBuffer and appended by a background
task; while the buffer is full new records are dropped and counted rather
than blocking the caller.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional

import aiofiles
import orjson

from route_metrics.common.header import make_header
from route_metrics.common.config import config_diagnostics
from route_metrics.errors import WriterError
from route_metrics.utils.batch_buffer import BatchBuffer

logger = logging.getLogger(__name__)


class LogWriter:
    def __init__(
        self,
        path: str,
        capacity: int = 1000,
        batch_size: int = 100,
        flush_interval: float = 1.0,
    ):
        self.path = path
        self._capacity = capacity
        self._batch_size = batch_size
        self._flush_interval = flush_interval
        self._buffer: Optional[BatchBuffer[bytes]] = None
        self.write_count = 0
        self.wait_count = 0

    async def open(self) -> "LogWriter":
        # a new log starts empty
        try:
            async with aiofiles.open(self.path, mode="wb"):
                pass
        except OSError as e:
            raise WriterError(f"cannot open log file {self.path}", source=e) from e

        async def append_lines(items: List[bytes]):
            async with aiofiles.open(self.path, mode="ab") as f:
                await f.write(b"".join(items))

        self._buffer = BatchBuffer(
            capacity=self._capacity,
            batch_size=self._batch_size,
            timeout=self._flush_interval,
            flush_callback=append_lines,
        )
        return self

    async def close(self) -> None:
        if self._buffer:
            await self._buffer.close()
            self._buffer = None

    async def __aenter__(self) -> "LogWriter":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def write(self, type: str, entry: Any) -> int:
        """Queue one record. Returns the number of bytes queued, 0 if dropped."""
        if self._buffer is None:
            raise WriterError(f"log file {self.path} is not open")

        self.write_count += 1
        line = orjson.dumps(
            {"ts": int(time.time() * 1000), "type": type, "entry": entry},
            option=orjson.OPT_APPEND_NEWLINE,
        )
        if not self._buffer.try_add(line):
            self.wait_count += 1
            return 0
        return len(line)

    def drain_state(self) -> str:
        return "ready" if self._buffer and not self._buffer.full() else "wait"

    def metrics(self) -> Dict[str, int]:
        return {"write_count": self.write_count, "wait_count": self.wait_count}

    def clear_metrics(self) -> None:
        self.write_count = self.wait_count = 0


def start_log(writer: LogWriter, config: Dict[str, Any], version: str = "1.0.0") -> Dict[str, Any]:
    """
    Write the run header, then any configuration or header diagnostics.
    Returns the header.
    """
    header, header_errors = make_header(version, config)
    writer.write("header", header)

    for diagnostic in config_diagnostics():
        kind, _, detail = diagnostic.partition(" ")
        writer.write(kind, detail)
    if header_errors:
        writer.write("header-errors", ", ".join(header_errors))
        logger.warning(f"Header built with errors: {header_errors}")

    return header
