"""Routes that expose operational observability data as JSON."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from reqmetrics import __version__
from ..observability.metrics import RequestMetricsCollector
from ..observability.router import get_collector

router = APIRouter(prefix="/api", tags=["observability"])


@router.get("/status")
def read_status(
    collector: RequestMetricsCollector = Depends(get_collector),
) -> dict[str, object]:
    """Return the application version alongside the request metrics snapshot."""

    return {
        "app": {"version": __version__},
        "metrics": {
            "started": collector.started,
            "excluded_paths": list(collector.excluded_paths),
            **collector.snapshot(),
        },
    }


__all__ = ["router"]
