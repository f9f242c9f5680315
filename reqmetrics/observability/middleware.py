"""ASGI middleware feeding request metrics into a collector."""

from __future__ import annotations

import logging
from time import perf_counter

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.routing import Match
from starlette.types import ASGIApp

from ..middleware.request_context import get_request_id
from .metrics import RequestMetricsCollector

logger = logging.getLogger("reqmetrics.metrics")


def _elapsed_ms(start: float) -> float:
    return (perf_counter() - start) * 1000.0


def _route_template(request: Request) -> str:
    """Return the path template of the route serving ``request``."""

    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return request.url.path


class RequestMetricsMiddleware(BaseHTTPMiddleware):
    """Count each request on arrival and time it once the response is sent.

    With ``group_paths`` the path label is the matched route template
    (``/items/{item_id}``) rather than the concrete URL path.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        collector: RequestMetricsCollector,
        group_paths: bool = False,
    ) -> None:
        super().__init__(app)
        self._collector = collector
        self._group_paths = group_paths

    async def dispatch(self, request: Request, call_next):
        method = request.method
        path = _route_template(request) if self._group_paths else request.url.path
        collector = self._collector

        start = perf_counter()
        request_id = get_request_id("-")

        def finish(status_code: int) -> None:
            elapsed_ms = _elapsed_ms(start)
            collector.on_request_end(method, path, status_code, elapsed_ms)
            logger.debug(
                "%s %s %s %.1fms request_id=%s",
                method,
                path,
                status_code,
                elapsed_ms,
                request_id,
            )

        collector.on_request_start(method, path)
        try:
            response = await call_next(request)
        except Exception:
            finish(500)
            raise

        body_iterator = getattr(response, "body_iterator", None)
        if body_iterator is None:
            finish(response.status_code)
            return response

        async def observed_body():
            try:
                async for chunk in body_iterator:
                    yield chunk
            finally:
                finish(response.status_code)

        response.body_iterator = observed_body()
        return response


__all__ = ["RequestMetricsMiddleware"]
