"""Liveness check that also reports whether metrics collection is running."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..observability.metrics import RequestMetricsCollector
from ..observability.router import get_collector


class HealthResponse(BaseModel):
    ok: bool
    metrics_started: bool


router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse, summary="Service health status")
def read_health(
    collector: RequestMetricsCollector = Depends(get_collector),
) -> HealthResponse:
    return HealthResponse(ok=True, metrics_started=collector.started)


__all__ = ["router", "HealthResponse", "read_health"]
