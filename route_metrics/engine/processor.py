import logging
import os
from typing import Any, Dict, List, Optional, Type, Union

import orjson
from pydantic import ValidationError

from route_metrics.common.config import load_template
from route_metrics.common.interfaces.reporter import BaseReporter, OutputSink, ReportOptions
from route_metrics.common.models import LogRecord, MetricsEntry, OverallInfo, RecordType, RunSummary
from route_metrics.engine.reader import EOF, LineReader, Source
from route_metrics.errors import RecordError, RecordErrorStats

logger = logging.getLogger(__name__)

INVALID_JSON = "invalid json"
INVALID_LOG_ENTRY = "invalid log entry"
INVALID_METRICS_ENTRY = "invalid metrics entry"
RECORD_BEFORE_HEADER = "record before header"


class LogProcessor:
    """
    Reads a route-metrics log and splits it into runs. A run starts at a
    `header` record and ends at the next header or at the end of the log.

    Malformed lines are tallied in `errors` and skipped; they never end a
    run or move its timestamps.

    Usage:
        processor = LogProcessor(CsvReporter, sink, options)
        await processor.process("route-metrics.log")
        await processor.summarize()
    """

    def __init__(
        self,
        reporter: Type[BaseReporter],
        sink: OutputSink,
        options: Optional[ReportOptions] = None,
        chunk_size: Optional[int] = None,
    ):
        self.reporter = reporter
        self.sink = sink
        self.options = options or ReportOptions()
        self.chunk_size = chunk_size
        self._reset()

    def _reset(self) -> None:
        self.file = ""
        self.line_count = 0
        self.byte_count = 0
        self.errors = RecordErrorStats()

        self.summary: Optional[RunSummary] = None
        self.summaries: List[RunSummary] = []
        self._last_timestamp: Optional[int] = None

    @property
    def awaiting_header(self) -> bool:
        return self.summary is None

    async def process(self, source: Source) -> int:
        """
        Read the whole log. Returns the number of runs found.

        Counters, runs and the error tally start over on every call.
        """
        self._reset()
        reader = LineReader(source) if self.chunk_size is None else LineReader(source, self.chunk_size)
        self.file = reader.name

        async for line in reader.lines():
            if line is EOF:
                self._finalize_summary()
                break
            self.line_count += 1
            self._process_line(line)

        self.byte_count = reader.bytes_read
        logger.info(
            f"Processed {self.file}: {len(self.summaries)} runs, {self.line_count} lines, "
            f"{self.byte_count} bytes, {self.errors.total_errors} malformed"
        )
        return len(self.summaries)

    def _process_line(self, line: str) -> None:
        try:
            record = self._parse(line)
            kind = record.kind

            if kind is RecordType.HEADER:
                if self.summary is not None:
                    self._finalize_summary(new_header=True)
                self._last_timestamp = record.ts
                self.summary = RunSummary(
                    header=record.entry, first_timestamp=record.ts, first_line=self.line_count
                )
                self.summaries.append(self.summary)
                return

            if self.summary is None:
                raise RecordError(RECORD_BEFORE_HEADER, self.line_count)

            if kind is RecordType.METRICS:
                self.summary.add_metric(self._metrics_entry(record))
            elif kind is RecordType.PATCH:
                self.summary.add_patch(record.entry)
            else:
                self.summary.add_unknown(record.model_dump())
            self._last_timestamp = record.ts
        except RecordError as e:
            logger.debug(f"Skipping line {e.line}: {e.message}", extra={"line": e.line})
            self.errors.record(e)

    def _parse(self, line: str) -> LogRecord:
        try:
            raw = orjson.loads(line)
        except orjson.JSONDecodeError as e:
            raise RecordError(INVALID_JSON, self.line_count, source=e) from e
        if not isinstance(raw, dict):
            raise RecordError(INVALID_LOG_ENTRY, self.line_count)
        try:
            return LogRecord.model_validate(raw)
        except ValidationError as e:
            raise RecordError(INVALID_LOG_ENTRY, self.line_count, source=e) from e

    def _metrics_entry(self, record: LogRecord) -> MetricsEntry:
        try:
            return MetricsEntry.model_validate(record.entry)
        except ValidationError as e:
            raise RecordError(INVALID_METRICS_ENTRY, self.line_count, source=e) from e

    def _finalize_summary(self, new_header: bool = False) -> None:
        if self.summary is None:
            return
        # the header that ends a run belongs to the next one
        last_line = self.line_count - 1 if new_header else self.line_count
        self.summary.finalize(self._last_timestamp, last_line)
        self.summary = None

    def overall_info(self) -> OverallInfo:
        return OverallInfo(
            run_summaries=list(self.summaries),
            file=self.file,
            lines_read=self.line_count,
            bytes_read=self.byte_count,
        )

    async def summarize(self, options: Union[ReportOptions, Dict[str, Any], None] = None) -> Any:
        """
        Render every run with the configured reporter. A `template` given as
        a path is loaded here; a bad template raises TemplateError and leaves
        the runs as they were.
        """
        if options is None:
            options = self.options
        elif isinstance(options, dict):
            options = dict(options)
            if isinstance(options.get("template"), (str, os.PathLike)):
                options["template"] = load_template(options["template"])
            options = ReportOptions(**options)

        reporter = self.reporter(self.sink, self.overall_info())
        return await reporter.report(options)
