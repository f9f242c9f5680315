"""Observability helpers for reqmetrics."""

from .loop_lag import EventLoopLagMonitor
from .metrics import RequestMetricsCollector
from .middleware import RequestMetricsMiddleware
from .wiring import install_metrics

__all__ = [
    "EventLoopLagMonitor",
    "RequestMetricsCollector",
    "RequestMetricsMiddleware",
    "install_metrics",
]
