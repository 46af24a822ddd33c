"""Report output sinks backed by aiofiles."""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

import aiofiles

from route_metrics.errors import WriterError


async def _ensure_dir(path: str) -> None:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


@asynccontextmanager
async def open_output(output: str) -> AsyncIterator:
    """
    Open the report destination. A string of digits is an already-open file
    descriptor (`"1"` is stdout) which is left open on exit; anything else is
    a path, created or truncated.
    """
    try:
        if output.isdigit():
            f = await aiofiles.open(int(output), mode="w", encoding="utf-8", closefd=False)
        else:
            await _ensure_dir(output)
            f = await aiofiles.open(output, mode="w", encoding="utf-8")
    except OSError as e:
        raise WriterError(f"cannot open output {output}", source=e) from e

    try:
        yield f
    finally:
        await f.close()
