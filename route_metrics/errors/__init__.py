from .error import (
    RouteMetricsError, ConfigError, TemplateError, ReaderError, ReporterError, WriterError,
    RecordError
)
from .error_stats import RecordErrorStats
