import io

import orjson
import pytest

from route_metrics.common.interfaces.reporter import ReportOptions
from route_metrics.common.models import Template
from route_metrics.engine.processor import LogProcessor
from route_metrics.engine.reporters import CsvReporter, JsonReporter, get_reporter
from route_metrics.errors import ReporterError

from conftest import header, log_text, metric, record

CSV_HEADER = "route, status, n, mean, stddev, percentiles: 0.5, 0.7, 0.8, 0.9, 0.95"

TEMPLATE = Template.from_dict({
    "version": "1.0.0",
    "routes": [
        {"name": "items", "method": "GET", "regex": "^/items/"},
        {"name": "root", "method": "GET", "pattern": "/"},
    ],
})


async def processed(text: str, sink, reporter=CsvReporter) -> LogProcessor:
    async def source():
        yield text.encode()

    processor = LogProcessor(reporter, sink)
    await processor.process(source())
    return processor


@pytest.mark.asyncio
async def test_csv_single_route(sink):
    processor = await processed(log_text(header(1), metric(2, 1000), metric(3, 3000)), sink)

    rows = await CsvReporter(sink, processor.overall_info(), io.StringIO()).report(ReportOptions())

    assert rows == 1
    assert sink.getvalue() == (
        f"{CSV_HEADER}\n"
        "GET http://a:80/x,200,2,2000.00,1000.00,1000,3000,3000,3000,3000\n\n"
    )


@pytest.mark.asyncio
async def test_csv_rows_sorted_by_route_then_status(sink):
    text = log_text(
        header(1),
        metric(2, 10, url="/b"),
        metric(3, 20, url="/a", status=500),
        metric(4, 30, url="/a", status=200),
    )
    processor = await processed(text, sink)

    await CsvReporter(sink, processor.overall_info(), io.StringIO()).report(
        ReportOptions(percentiles=[0.5])
    )

    assert sink.getvalue().splitlines() == [
        "route, status, n, mean, stddev, percentiles: 0.5",
        "GET http://a:80/a,200,1,30.00,0.00,30",
        "GET http://a:80/a,500,1,20.00,0.00,20",
        "GET http://a:80/b,200,1,10.00,0.00,10",
        "",
    ]


@pytest.mark.asyncio
async def test_csv_milliseconds_leave_samples_untouched(sink):
    processor = await processed(log_text(header(1), metric(2, 1499), metric(3, 2500)), sink)

    await CsvReporter(sink, processor.overall_info(), io.StringIO()).report(
        ReportOptions(unit="ms", percentiles=[0.5, 1])
    )

    assert "GET http://a:80/x,200,2,2.00,1.00,1,3" in sink.getvalue()
    assert processor.summaries[0].metrics["GET http://a:80/x"]["200"] == [1499, 2500]


@pytest.mark.asyncio
async def test_csv_template_buckets(sink):
    text = log_text(
        header(1),
        metric(2, 100, url="/items/1"),
        metric(3, 300, url="/items/2"),
        metric(4, 50, url="/"),
        metric(5, 70, url="/other"),
    )
    processor = await processed(text, sink)

    await CsvReporter(sink, processor.overall_info(), io.StringIO()).report(
        ReportOptions(template=TEMPLATE, percentiles=[0.5])
    )

    assert sink.getvalue().splitlines()[1:4] == [
        "items,200,2,200.00,100.00,100",
        "root,200,1,50.00,0.00,50",
        "GET http://a:80/other,200,1,70.00,0.00,70",
    ]


@pytest.mark.asyncio
async def test_each_run_is_flushed_before_the_next(sink):
    text = log_text(header(1), metric(2, 10), header(3), metric(4, 20))
    processor = await processed(text, sink)

    await CsvReporter(sink, processor.overall_info(), io.StringIO()).report(ReportOptions())

    assert [e[0] for e in sink.events] == ["write", "flush", "write", "flush"]
    assert ",10,10," in sink.events[0][1]
    assert ",20,20," in sink.events[2][1]


@pytest.mark.asyncio
async def test_csv_banner_and_run_info(sink):
    text = log_text(
        header(1_600_000_000_000),
        record(1_600_000_000_001, "patch", {"name": "http"}),
        record(1_600_000_000_002, "patch", {"name": "some-agent"}),
        metric(1_600_000_000_500, 10),
        metric(1_600_000_000_900, 20, url="/y"),
    )
    processor = await processed(text, sink)
    info = io.StringIO()

    await CsvReporter(sink, processor.overall_info(), info).report(ReportOptions())

    lines = info.getvalue().splitlines()
    assert lines[0] == f"[[read 1 summary from 5 lines ({len(text.encode())} bytes) in <stream>]]"
    assert "[start 2020-09-13T12:26:40.000Z, end 2020-09-13T12:26:40.900Z]" in lines
    assert "[total time measurements 2 across 2 routes]" in lines
    assert "[some-agent loaded]" in lines


@pytest.mark.asyncio
async def test_banner_defaults_to_stdout(sink, capsys):
    processor = await processed(log_text(header(1), metric(2, 10), header(3)), sink)

    await CsvReporter(sink, processor.overall_info()).report(ReportOptions())

    assert "[[read 2 summaries from 3 lines" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_json_round_trips_the_summaries(sink):
    text = log_text(
        header(1, {"version": "1.0.0"}),
        metric(2, 1000),
        metric(3, 3000, status=404, url="/items/7"),
        record(4, "patch", {"name": "http"}),
    )
    processor = await processed(text, sink, JsonReporter)

    documents = await processor.summarize({"template": TEMPLATE})

    assert orjson.loads(sink.getvalue()) == documents
    doc = documents[0]
    assert doc["header"] == {"version": "1.0.0"}
    assert doc["firstTimestamp"] == 1
    assert doc["lastTimestamp"] == 4
    assert doc["firstLine"] == 1
    assert doc["lastLine"] == 4
    assert doc["patches"] == [{"name": "http"}]
    assert doc["metrics"] == [
        ["GET http://a:80/items/7", {"404": [3000]}],
        ["GET http://a:80/x", {"200": [1000]}],
    ]
    assert doc["meta"]["keyToProperties"]["GET http://a:80/items/7"] == {
        "method": "GET", "path": "/items/7"
    }
    assert doc["buckets"] == [
        ["items", {"404": [3000]}],
        ["GET http://a:80/x", {"200": [1000]}],
    ]


@pytest.mark.asyncio
async def test_json_without_template_has_no_buckets(sink):
    processor = await processed(log_text(header(1), metric(2, 5)), sink, JsonReporter)

    documents = await processor.summarize()

    assert "buckets" not in documents[0]
    assert sink.events[-1] == ("flush",)


def test_unknown_reporter_falls_back_to_csv():
    reporter, diagnostics = get_reporter("xml")

    assert reporter is CsvReporter
    assert diagnostics == ["invalid-config-values CSI_RM_REPORTER=xml"]
    assert get_reporter("json") == (JsonReporter, [])


class BrokenSink:
    async def write(self, data):
        raise OSError("disk full")

    async def flush(self):
        pass


@pytest.mark.asyncio
async def test_sink_failure_raises_reporter_error(sink):
    processor = await processed(log_text(header(1), metric(2, 10)), sink)

    with pytest.raises(ReporterError, match="csv reporter failed to write"):
        await CsvReporter(BrokenSink(), processor.overall_info(), io.StringIO()).report(ReportOptions())


@pytest.mark.asyncio
async def test_unrepresentable_timestamps_print_raw(sink):
    far = 10**17
    processor = await processed(log_text(header(far), metric(far + 1, 5)), sink)
    info = io.StringIO()

    rows = await CsvReporter(sink, processor.overall_info(), info).report(ReportOptions())

    assert rows == 1
    assert f"[start {far}, end {far + 1}]" in info.getvalue().splitlines()
    assert "GET http://a:80/x,200,1,5.00,0.00,5,5,5,5,5" in sink.getvalue()
