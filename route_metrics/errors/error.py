from typing import Optional


class RouteMetricsError(Exception):
    """Base error for route-metrics"""
    def __init__(self, message: str = None, source: Exception = None):
        self.message = message
        self.source = source
        super().__init__(self.__str__())

    def __str__(self):
        msg = self.message or self.__class__.__name__
        if self.source:
            return f"{msg}: {self.source}"
        return msg

class ConfigError(RouteMetricsError):
    pass

class TemplateError(RouteMetricsError):
    pass

class ReaderError(RouteMetricsError):
    pass

class ReporterError(RouteMetricsError):
    pass

class WriterError(RouteMetricsError):
    pass

class RecordError(RouteMetricsError):
    """A log line that could not be classified. Carries its 1-based line number."""
    def __init__(self, message: str, line: int, source: Optional[Exception] = None):
        self.line = line
        super().__init__(message, source)
