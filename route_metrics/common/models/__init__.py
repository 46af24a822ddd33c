from .record import RecordType, LogRecord, MetricsEntry
from .summary import (
    Sample, TimesByStatus, RouteProperties, RunSummary, OverallInfo, parse_route_signature,
    status_sort_key
)
from .template import TEMPLATE_VERSION, Template, TemplateRoute
