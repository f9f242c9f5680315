from __future__ import annotations

from typing import Any, Dict


class MetricsConfigurationError(Exception):
    """Raised when request metrics are wired up inconsistently at startup."""

    def __init__(self, code: str, message: str, extra: Dict[str, Any] | None = None):
        super().__init__(message)
        self.code = code
        self.extra = extra or {}


__all__ = ["MetricsConfigurationError"]
