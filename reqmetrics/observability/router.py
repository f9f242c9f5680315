"""Prometheus scrape route for the request metrics collector."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from ..config import DEFAULT_METRICS_PATH
from .metrics import RequestMetricsCollector


def get_collector(request: Request) -> RequestMetricsCollector:
    """Return the collector installed on the serving application."""

    return request.app.state.metrics_collector


def build_router(path: str = DEFAULT_METRICS_PATH) -> APIRouter:
    """Return a router serving the text exposition of the collector at ``path``."""

    router = APIRouter(tags=["metrics"])

    @router.get(path, include_in_schema=False)
    def read_metrics(
        collector: RequestMetricsCollector = Depends(get_collector),
    ) -> Response:
        """Render every registered metric for a Prometheus scrape."""

        body, content_type = collector.render_metrics()
        return Response(content=body, media_type=content_type)

    return router


__all__ = ["build_router", "get_collector"]
