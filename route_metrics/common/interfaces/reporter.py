import sys
from typing import Any, List, Literal, Optional, Protocol, TextIO, runtime_checkable
from abc import ABC, abstractmethod

from pydantic import BaseModel, ConfigDict, Field

from route_metrics.common.config.models import DEFAULT_PERCENTILES
from route_metrics.common.models import OverallInfo, Template
from route_metrics.errors import ReporterError

@runtime_checkable
class OutputSink(Protocol):
    """
    Where a report is written. Writes may complete asynchronously; `flush`
    returns once everything written so far has been handed to the OS.
    aiofiles text files satisfy this protocol.
    """
    async def write(self, data: str) -> Any: ...

    async def flush(self) -> None: ...

class ReportOptions(BaseModel):
    template: Optional[Template] = None
    unit: Literal["us", "ms"] = "us"
    percentiles: List[float] = Field(default_factory=lambda: list(DEFAULT_PERCENTILES))

    model_config = ConfigDict(arbitrary_types_allowed=True)

class BaseReporter(ABC):
    """
    Abstract base class for reporters. A reporter renders the finalized runs
    of one log file to a sink; informational text goes to `info_stream`.
    """

    def __init__(self, sink: OutputSink, overall_info: OverallInfo, info_stream: TextIO = None):
        self.sink = sink
        self.overall_info = overall_info
        self.info_stream = info_stream or sys.stdout
        self.run_summaries = overall_info.run_summaries

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    def info(self, text: str) -> None:
        print(text, file=self.info_stream, flush=True)

    def report_overall(self) -> None:
        count = len(self.run_summaries)
        noun = "summary" if count == 1 else "summaries"
        info = self.overall_info
        self.info(
            f"[[read {count} {noun} from {info.lines_read} lines ({info.bytes_read} bytes) in {info.file}]]\n"
        )

    async def write_run(self, text: str) -> None:
        # the sink is shared by every run; a run is complete only once flushed
        try:
            await self.sink.write(text)
            await self.sink.flush()
        except OSError as e:
            raise ReporterError(f"{self.name} reporter failed to write", source=e) from e

    @abstractmethod
    async def report(self, options: ReportOptions) -> Any:
        pass
