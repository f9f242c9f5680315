"""Attach request metrics to a FastAPI application."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from ..config import DEFAULT_METRICS_PATH, normalise_path
from ..utils.errors import MetricsConfigurationError
from .metrics import RequestMetricsCollector
from .middleware import RequestMetricsMiddleware
from .router import build_router

logger = logging.getLogger("reqmetrics.metrics")


def install_metrics(
    app: FastAPI,
    collector: RequestMetricsCollector,
    *,
    metrics_path: str = DEFAULT_METRICS_PATH,
    group_paths: bool = False,
) -> RequestMetricsCollector:
    """Register the metrics middleware and scrape route, then start collection.

    Must be called once per application while it is being built.
    """

    if getattr(app.state, "metrics_collector", None) is not None:
        raise MetricsConfigurationError(
            "already_installed",
            "Request metrics are already installed on this application",
        )

    metrics_path = normalise_path(metrics_path)
    if not collector.is_excluded(metrics_path):
        logger.warning(
            "Scrape path %s is not excluded; scrapes will be counted as requests",
            metrics_path,
        )

    app.state.metrics_collector = collector
    app.add_middleware(
        RequestMetricsMiddleware, collector=collector, group_paths=group_paths
    )
    app.include_router(build_router(metrics_path))
    collector.start()
    return collector


__all__ = ["install_metrics"]
