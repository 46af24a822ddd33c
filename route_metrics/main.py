import asyncio
import logging
from typing import List, Optional

import click

from route_metrics.common.config import config_diagnostics, get_settings, load_template
from route_metrics.common.interfaces.reporter import ReportOptions
from route_metrics.common.storage import open_output
from route_metrics.engine.processor import LogProcessor
from route_metrics.engine.reporters import REPORTERS, get_reporter
from route_metrics.errors import ConfigError, RouteMetricsError
from route_metrics.utils.logger import setup_logging

logger = logging.getLogger("route_metrics.main")


def _parse_percentiles(value: Optional[str]) -> Optional[List[float]]:
    if value is None:
        return None
    try:
        ps = [float(p) for p in value.split(",") if p.strip()]
    except ValueError:
        raise click.BadParameter(f"not a comma separated list of numbers: {value}")
    if not ps or any(not 0 <= p <= 1 for p in ps):
        raise click.BadParameter("percentiles must be numbers between 0 and 1")
    return ps


def _log_record_errors(processor: LogProcessor) -> None:
    for message, lines in processor.errors.lines_by_message.items():
        shown = ", ".join(str(n) for n in lines[:10])
        more = f" (+{len(lines) - 10} more)" if len(lines) > 10 else ""
        logger.warning(f"{len(lines)} malformed lines ({message}): {shown}{more}")


async def run_report(
    file: str,
    reporter_name: str,
    output: str,
    options: ReportOptions,
) -> LogProcessor:
    reporter, diagnostics = get_reporter(reporter_name)
    for diagnostic in diagnostics:
        logger.warning(diagnostic)

    async with open_output(output) as sink:
        processor = LogProcessor(reporter, sink, options)
        await processor.process(file)
        await processor.summarize()

    _log_record_errors(processor)
    return processor


@click.group()
def cli():
    """Summarize per-route latency from route-metrics logs."""
    try:
        settings = get_settings()
    except ConfigError as e:
        raise click.ClickException(str(e))
    setup_logging(
        level=settings.logging.level,
        format_type=settings.logging.format,
        app_name=settings.app_name,
    )
    for diagnostic in config_diagnostics():
        logger.warning(diagnostic)


@cli.command()
@click.argument("file", required=False)
@click.option("--reporter", help=f"Report format: {', '.join(REPORTERS)}")
@click.option("--output", help="Output path, or a file descriptor number (1 is stdout)")
@click.option("--template", type=click.Path(dir_okay=False), help="Route bucket template (.json or .toml)")
@click.option("--unit", type=click.Choice(["us", "ms"]), help="Elapsed time unit for the report")
@click.option("--percentiles", help="Comma separated percentiles, e.g. 0.5,0.9,0.99")
def report(file, reporter, output, template, unit, percentiles):
    """Reads FILE (default: the configured log file) and writes a latency report."""
    config = get_settings().log_processor

    template_path = template or config.template
    try:
        options = ReportOptions(
            template=load_template(template_path) if template_path else None,
            unit=unit or config.unit,
            percentiles=_parse_percentiles(percentiles) or config.percentiles,
        )
        asyncio.run(run_report(
            file or config.log_file,
            reporter or config.reporter,
            output or config.output,
            options,
        ))
    except RouteMetricsError as e:
        logger.error(str(e))
        raise click.ClickException(str(e))


@cli.command("validate-template")
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
def validate_template(file):
    """Checks that FILE is a loadable route bucket template."""
    try:
        template = load_template(file)
    except RouteMetricsError as e:
        raise click.ClickException(str(e))
    click.echo(f"{file}: {len(template.routes)} routes")
    for route in template.routes:
        rule = f"pattern {route.pattern}" if route.pattern else f"regex {route.regex.pattern}"
        click.echo(f"  {route.name}: {route.method} {rule}")


def main():
    cli(prog_name="route-metrics")


if __name__ == "__main__":
    main()
