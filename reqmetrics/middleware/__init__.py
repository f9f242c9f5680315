"""ASGI middleware utilities for the reqmetrics host application."""

from .request_context import RequestIdLogFilter, RequestIdMiddleware, get_request_id

__all__ = ["RequestIdLogFilter", "RequestIdMiddleware", "get_request_id"]
