"""Logging setup for the reqmetrics service."""

from __future__ import annotations

import logging
import os
import sys

from ..middleware.request_context import RequestIdLogFilter

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] | %(message)s"


def configure_logging(default_level: str = "INFO") -> logging.Logger:
    """Log to stdout with the request id of the current request on every line.

    ``LOG_LEVEL`` overrides ``default_level``; unknown names fall back to INFO.
    """

    level_name = os.getenv("LOG_LEVEL", default_level).upper()
    level = getattr(logging, level_name, logging.INFO)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdLogFilter())
    logging.basicConfig(level=level, handlers=[handler], force=True)
    logging.getLogger("reqmetrics").setLevel(level)
    return logging.getLogger("reqmetrics")


__all__ = ["LOG_FORMAT", "configure_logging"]
