"""Request identifiers carried through a context variable for log correlation."""

from __future__ import annotations

import contextvars
import logging
import re
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

REQUEST_ID_HEADER = "X-Request-ID"

_REQUEST_ID: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "reqmetrics_request_id", default=None
)

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def get_request_id(default: str | None = None) -> str | None:
    """Return the identifier of the request being served, if any."""

    value = _REQUEST_ID.get()
    return value if value is not None else default


def _accept_request_id(value: str | None) -> str:
    if value and _REQUEST_ID_PATTERN.match(value):
        return value
    return uuid.uuid4().hex


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Echo a safe request identifier on every response.

    Inbound identifiers that are not 1-64 characters of ``[A-Za-z0-9._-]`` are
    replaced with a generated one.
    """

    def __init__(self, app: ASGIApp, header_name: str = REQUEST_ID_HEADER) -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next):
        request_id = _accept_request_id(request.headers.get(self.header_name))
        request.state.request_id = request_id
        token = _REQUEST_ID.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _REQUEST_ID.reset(token)
        response.headers[self.header_name] = request_id
        return response


class RequestIdLogFilter(logging.Filter):
    """Stamp log records with the current request id (``-`` outside requests)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id("-")
        return True


__all__ = [
    "REQUEST_ID_HEADER",
    "RequestIdLogFilter",
    "RequestIdMiddleware",
    "get_request_id",
]
