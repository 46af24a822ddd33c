import logging
from typing import Any, Dict, List

import orjson

from route_metrics.common.interfaces.reporter import BaseReporter, ReportOptions
from route_metrics.common.models import RunSummary
from route_metrics.engine.template import bucketize

logger = logging.getLogger(__name__)


def summary_document(summary: RunSummary, options: ReportOptions) -> Dict[str, Any]:
    """
    JSON-ready view of a run. `metrics` becomes a list of
    `[signature, {status: times}]` pairs and `meta.keyToProperties` indexes each
    signature's method and path. Samples are the stored values, unconverted.
    """
    doc = summary.model_dump(mode="json", by_alias=True)
    doc["metrics"] = [[key, by_status] for key, by_status in summary.sorted_metrics()]
    doc["meta"] = {
        "keyToProperties": {
            key: props.model_dump() for key, props in summary.key_to_properties().items()
        }
    }
    if options.template is not None:
        doc["buckets"] = [[name, by_status] for name, by_status in bucketize(summary.metrics, options.template).items()]
    return doc


class JsonReporter(BaseReporter):
    """Structured report: every run summary in one pretty-printed JSON array."""

    @property
    def name(self) -> str:
        return "json"

    def report_overall(self) -> None:
        pass

    async def report(self, options: ReportOptions) -> List[Dict[str, Any]]:
        documents = [summary_document(s, options) for s in self.run_summaries]
        text = orjson.dumps(documents, option=orjson.OPT_INDENT_2).decode("utf-8")
        await self.write_run(text + "\n")
        return documents
