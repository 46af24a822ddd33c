"""Offline latency summaries for route-metrics event logs."""

__version__ = "1.0.0"
