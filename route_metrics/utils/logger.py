import logging
import json
import sys
from typing import Any, Dict
from datetime import datetime, timezone

class JsonFormatter(logging.Formatter):
    """
    Formatter that renders each LogRecord as one JSON object per line.
    """

    def __init__(self, app_name: str = "route-metrics", **kwargs):
        super().__init__(**kwargs)
        self.app_name = app_name

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "app": self.app_name,
        }

        if hasattr(record, "line"):
            log_entry["line"] = record.line

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)

def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    app_name: str = "route-metrics",
    stream=None,
):
    """
    Configures the root logger with the specified format.

    Logs go to stderr unless another stream is given; stdout is left to
    the report itself.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)

    if format_type.lower() == "json":
        formatter = JsonFormatter(app_name=app_name)
        handler.setFormatter(formatter)
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
        handler.setFormatter(formatter)

    root_logger.addHandler(handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
