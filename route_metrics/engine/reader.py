"""
Streaming line reader for route-metrics logs.

Lines are produced from byte chunks as they arrive, so a record may be split
across any number of chunks. The generator ends with `EOF`, which is never
a real line (an empty line is `""`).
"""
from __future__ import annotations

import logging
import os
from typing import AsyncIterable, AsyncIterator, Optional, Union

import aiofiles

from route_metrics.errors import ReaderError

logger = logging.getLogger(__name__)

EOF = None
DEFAULT_CHUNK_SIZE = 64 * 1024

Source = Union[str, os.PathLike, AsyncIterable[bytes]]


async def iter_file_chunks(path: Union[str, os.PathLike], chunk_size: int = DEFAULT_CHUNK_SIZE) -> AsyncIterator[bytes]:
    async with aiofiles.open(path, mode="rb") as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                return
            yield chunk


class LineReader:
    def __init__(self, source: Source, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.source = source
        self.chunk_size = chunk_size
        self.bytes_read = 0

    @property
    def name(self) -> str:
        if isinstance(self.source, (str, os.PathLike)):
            return os.fspath(self.source)
        return "<stream>"

    def _chunks(self) -> AsyncIterable[bytes]:
        if isinstance(self.source, (str, os.PathLike)):
            return iter_file_chunks(self.source, self.chunk_size)
        return self.source

    async def lines(self) -> AsyncIterator[Optional[str]]:
        """
        Yield each line without its terminating newline, then `EOF`.
        `bytes_read` is complete once `EOF` has been yielded.
        """
        self.bytes_read = 0
        carry = b""

        try:
            async for chunk in self._chunks():
                self.bytes_read += len(chunk)
                ix = chunk.find(b"\n")
                if ix < 0:
                    carry += chunk
                    continue

                yield _decode(carry + chunk[:ix])
                last = ix + 1
                ix = chunk.find(b"\n", last)
                while ix >= 0:
                    yield _decode(chunk[last:ix])
                    last = ix + 1
                    ix = chunk.find(b"\n", last)
                carry = chunk[last:]
        except OSError as e:
            raise ReaderError(f"failed to read {self.name}", source=e) from e

        if carry:
            yield _decode(carry)

        logger.debug(f"Read {self.bytes_read} bytes from {self.name}")
        yield EOF


def _decode(raw: bytes) -> str:
    # splitting on b"\n" never cuts a UTF-8 sequence
    return raw.decode("utf-8", errors="replace")
