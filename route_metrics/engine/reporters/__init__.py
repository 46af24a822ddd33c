"""
Reporter registry. Reporters are selected by name once at startup; an
unknown name falls back to the CSV reporter with a diagnostic.
"""
import logging
from typing import Dict, List, Tuple, Type

from route_metrics.common.config.models import ENV_PREFIX
from route_metrics.common.interfaces.reporter import BaseReporter

from .csv import CsvReporter
from .json import JsonReporter

logger = logging.getLogger(__name__)

DEFAULT_REPORTER = "csv"

REPORTERS: Dict[str, Type[BaseReporter]] = {
    "csv": CsvReporter,
    "json": JsonReporter,
}


def get_reporter(name: str) -> Tuple[Type[BaseReporter], List[str]]:
    """Returns the reporter class for `name` and any diagnostics produced choosing it."""
    reporter = REPORTERS.get(name)
    if reporter is not None:
        return reporter, []

    diagnostic = f"invalid-config-values {ENV_PREFIX}REPORTER={name}"
    logger.warning(f"Unknown reporter {name!r}, falling back to {DEFAULT_REPORTER}")
    return REPORTERS[DEFAULT_REPORTER], [diagnostic]


__all__ = ["CsvReporter", "JsonReporter", "REPORTERS", "DEFAULT_REPORTER", "get_reporter"]
