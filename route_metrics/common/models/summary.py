import re
from typing import Any, Dict, List, Optional, Union

import orjson
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr
from pydantic.alias_generators import to_camel

from .record import MetricsEntry

Sample = Union[int, float]
# status code (as a string, the way JSON object keys carry it) -> samples
TimesByStatus = Dict[str, List[Sample]]

ROUTE_SIGNATURE_RE = re.compile(r"^(\S+) [A-Za-z][A-Za-z0-9+.-]*://[^/]+(.+)$")


class RouteProperties(BaseModel):
    method: str
    path: str


def parse_route_signature(signature: str) -> Optional[RouteProperties]:
    """Recover method and path from `"GET https://host:443/path"`."""
    m = ROUTE_SIGNATURE_RE.match(signature)
    if not m:
        return None
    return RouteProperties(method=m.group(1), path=m.group(2))


def status_sort_key(status: str):
    # numeric statuses first, in numeric order
    return (0, int(status), "") if status.isdigit() else (1, 0, status)


class RunSummary(BaseModel):
    """
    Aggregation state of one monitoring run: everything between a header
    record and the next header (or the end of the log).

    Mutable only until `finalize()`; the processor owns it until then.
    """
    header: Any = None
    metrics: Dict[str, TimesByStatus] = Field(default_factory=dict)
    patches: List[Any] = Field(default_factory=list)
    unknown: List[Any] = Field(default_factory=list)
    first_timestamp: int
    last_timestamp: Optional[int] = None
    first_line: int
    last_line: Optional[int] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    _patch_keys: set = PrivateAttr(default_factory=set)

    @property
    def finalized(self) -> bool:
        return self.last_line is not None

    def _check_open(self):
        if self.finalized:
            raise RuntimeError(f"run starting at line {self.first_line} is finalized")

    def add_metric(self, entry: MetricsEntry) -> None:
        self._check_open()
        times_by_status = self.metrics.setdefault(entry.route_signature, {})
        times_by_status.setdefault(str(entry.status_code), []).append(entry.et)

    def add_patch(self, entry: Any) -> bool:
        """Add a patch payload; False if an identical payload was already seen."""
        self._check_open()
        key = orjson.dumps(entry, option=orjson.OPT_SORT_KEYS)
        if key in self._patch_keys:
            return False
        self._patch_keys.add(key)
        self.patches.append(entry)
        return True

    def add_unknown(self, record: Any) -> None:
        self._check_open()
        self.unknown.append(record)

    def finalize(self, last_timestamp: int, last_line: int) -> None:
        self._check_open()
        self.last_timestamp = last_timestamp
        self.last_line = last_line

    @property
    def observation_count(self) -> int:
        return sum(len(times) for by_status in self.metrics.values() for times in by_status.values())

    def sorted_metrics(self) -> List[tuple]:
        """`[(signature, {status: times})]` ordered by signature, statuses ordered numerically."""
        return [
            (key, {s: by_status[s] for s in sorted(by_status, key=status_sort_key)})
            for key, by_status in sorted(self.metrics.items())
        ]

    def key_to_properties(self) -> Dict[str, RouteProperties]:
        index = {}
        for key in self.metrics:
            props = parse_route_signature(key)
            if props:
                index[key] = props
        return index


class OverallInfo(BaseModel):
    """File-level facts handed to a reporter along with the finalized runs."""
    run_summaries: List[RunSummary]
    file: str
    lines_read: int
    bytes_read: int
