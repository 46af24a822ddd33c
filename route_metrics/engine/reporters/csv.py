import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from route_metrics.common.interfaces.reporter import BaseReporter, ReportOptions
from route_metrics.common.models import RunSummary, Sample, TimesByStatus
from route_metrics.engine import stats
from route_metrics.engine.template import bucketize

logger = logging.getLogger(__name__)


def f2(n: float) -> str:
    return f"{n:.2f}"


def fmt_sample(value: Sample) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def iso(ts: Optional[int]) -> str:
    if ts is None:
        return "-"
    try:
        dt = datetime.fromtimestamp(ts / 1000, tz=timezone.utc)
    except (ValueError, OverflowError, OSError):
        # outside what datetime can represent
        return str(ts)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CsvReporter(BaseReporter):
    """
    Tabular report: for every run a header line naming the columns and the
    percentiles, then one line per (route or bucket, status):

        name,status,n,mean,stddev,p1,p2,...
    """

    @property
    def name(self) -> str:
        return "csv"

    async def report(self, options: ReportOptions) -> int:
        self.report_overall()
        lines_written = 0

        for s in self.run_summaries:
            self.info(f"[start {iso(s.first_timestamp)}, end {iso(s.last_timestamp)}]")
            self.info(f"[total time measurements {s.observation_count} across {len(s.metrics)} routes]")
            agent = self._agent_patch(s)
            if agent:
                self.info(f"[{agent} loaded]")

            rows = self.rows(s, options)
            header = f"route, status, n, mean, stddev, percentiles: {', '.join(str(p) for p in options.percentiles)}"
            await self.write_run("\n".join([header, *rows]) + "\n\n")
            lines_written += len(rows)

        return lines_written

    @staticmethod
    def _agent_patch(summary: RunSummary) -> Optional[str]:
        # any patch other than the http servers means an agent was loaded
        for p in summary.patches:
            name = p.get("name") if isinstance(p, dict) else None
            if name and not name.startswith("http"):
                return name
        return None

    def rows(self, summary: RunSummary, options: ReportOptions) -> List[str]:
        if options.template is None:
            groups: Dict[str, TimesByStatus] = dict(summary.sorted_metrics())
        else:
            groups = bucketize(summary.metrics, options.template)

        rows = []
        for name, times_by_status in groups.items():
            for status, times in times_by_status.items():
                if options.unit == "ms":
                    times = stats.to_milliseconds(times)
                rows.append(self.format_row(name, status, times, options.percentiles))
        return rows

    @staticmethod
    def format_row(name: str, status: str, times: List[Sample], percentiles: List[float]) -> str:
        described = stats.describe(times)
        values = stats.percentiles(percentiles, times)
        return ",".join([
            name, status, str(described.n), f2(described.mean), f2(described.stddev),
            *(fmt_sample(v) for v in values),
        ])
