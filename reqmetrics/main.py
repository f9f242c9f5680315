"""reqmetrics host application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .config import Settings, get_settings
from .middleware import RequestIdMiddleware
from .observability import (
    EventLoopLagMonitor,
    RequestMetricsCollector,
    install_metrics,
)
from .routers import health, observability

logger = logging.getLogger("uvicorn.error")

ROUTERS: Iterable = (
    health.router,
    observability.router,
)


async def handle_unexpected_exception(
    request: Request, exc: Exception
) -> JSONResponse:
    """Ensure unexpected exceptions return a JSON payload."""

    logger.exception(
        "Unhandled exception while processing %s %s (request_id=%s)",
        request.method,
        request.url.path,
        getattr(request.state, "request_id", "-"),
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error"},
    )


def build_collector(settings: Settings) -> RequestMetricsCollector:
    """Return a collector configured from ``settings`` with its own registry."""

    return RequestMetricsCollector(
        prefix=settings.metrics_prefix,
        excluded_paths=settings.excluded_paths(),
        default_collectors=settings.metrics_default_collectors,
    )


def create_app(
    settings: Settings | None = None,
    collector: RequestMetricsCollector | None = None,
) -> FastAPI:
    """Build the FastAPI application with request metrics installed."""

    settings = settings or get_settings()
    if collector is None:
        collector = build_collector(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "[reqmetrics] Serving Prometheus metrics at %s", settings.metrics_path
        )
        if collector.event_loop_lag is None:
            yield
            return
        async with EventLoopLagMonitor(
            collector.event_loop_lag, settings.metrics_loop_lag_interval
        ):
            yield

    app = FastAPI(title="reqmetrics", version=__version__, lifespan=lifespan)
    install_metrics(
        app,
        collector,
        metrics_path=settings.metrics_path,
        group_paths=settings.metrics_group_paths,
    )
    # Outermost, so the request id is set before metrics are recorded.
    app.add_middleware(RequestIdMiddleware)

    for router in ROUTERS:
        app.include_router(router)

    app.add_exception_handler(Exception, handle_unexpected_exception)
    return app


app = create_app()

__all__ = ["app", "build_collector", "create_app"]
