"""Bounded async batch buffer used by the log writer."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, List, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BatchBuffer(Generic[T]):
    def __init__(
        self,
        capacity: int,
        batch_size: int,
        timeout: float,
        flush_callback: Callable[[List[T]], Awaitable[None]],
    ) -> None:
        self._queue: asyncio.Queue[object] = asyncio.Queue(maxsize=capacity)
        self._batch_size = batch_size
        self._timeout = timeout
        self._flush_callback = flush_callback
        self._sentinel: object = object()
        self._flush_errors = 0
        self._task = asyncio.create_task(self._run())

    @property
    def flush_errors(self) -> int:
        return self._flush_errors

    async def _run(self) -> None:
        buffer: List[T] = []
        while True:
            try:
                item = await asyncio.wait_for(self._queue.get(), timeout=self._timeout)
            except asyncio.TimeoutError:
                if buffer:
                    await self._flush(buffer)
                    buffer = []
                continue

            if item is self._sentinel:
                if buffer:
                    await self._flush(buffer)
                return

            buffer.append(item)  # type: ignore[arg-type]
            if len(buffer) >= self._batch_size or self._queue.empty():
                await self._flush(buffer)
                buffer = []

    async def _flush(self, items: List[T]) -> None:
        try:
            await self._flush_callback(items)
        except Exception:
            # keep the background task alive; the batch is lost
            self._flush_errors += 1
            logger.exception(f"Failed to flush {len(items)} buffered items")

    async def add(self, item: T) -> None:
        await self._queue.put(item)

    def try_add(self, item: T) -> bool:
        """Queue an item without waiting. False when the buffer is full."""
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            return False
        return True

    def full(self) -> bool:
        return self._queue.full()

    async def close(self) -> None:
        await self._queue.put(self._sentinel)
        await self._task
