import logging
from typing import Any, Dict, List, Optional

import orjson
import pytest

import route_metrics.common.config as config_module


class MemorySink:
    """OutputSink that keeps what was written and records write/flush order."""

    def __init__(self):
        self.events: List[tuple] = []

    async def write(self, data: str) -> int:
        self.events.append(("write", data))
        return len(data)

    async def flush(self) -> None:
        self.events.append(("flush",))

    def getvalue(self) -> str:
        return "".join(e[1] for e in self.events if e[0] == "write")


def record(ts: int, type: str, entry: Any) -> str:
    return orjson.dumps({"ts": ts, "type": type, "entry": entry}).decode()


def metric(ts: int, et, status: int = 200, url: str = "/x", method: str = "GET",
           host: str = "a", port: int = 80, protocol: str = "http") -> str:
    return record(ts, "metrics", {
        "method": method, "protocol": protocol, "host": host, "port": port,
        "url": url, "et": et, "statusCode": status,
    })


def header(ts: int, entry: Optional[Dict[str, Any]] = None) -> str:
    return record(ts, "header", entry if entry is not None else {})


def log_text(*lines: str) -> str:
    return "".join(f"{line}\n" for line in lines)


async def chunked(data: bytes, size: int):
    for i in range(0, len(data), size):
        yield data[i:i + size]


@pytest.fixture
def sink():
    return MemorySink()


@pytest.fixture
def fresh_settings(monkeypatch):
    monkeypatch.setattr(config_module, "_settings", None)
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
