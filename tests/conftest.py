"""Test configuration for reqmetrics."""

from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Generator

PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from prometheus_client import CollectorRegistry  # noqa: E402

from reqmetrics.config import Settings, reset_settings_cache  # noqa: E402
from reqmetrics.observability import RequestMetricsCollector  # noqa: E402

_METRICS_ENV = (
    "METRICS_PATH",
    "METRICS_EXCLUDED_PATHS",
    "METRICS_PREFIX",
    "METRICS_GROUP_PATHS",
    "METRICS_DEFAULT_COLLECTORS",
    "METRICS_LOOP_LAG_INTERVAL",
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Provide isolated configuration for each test."""

    for name in _METRICS_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture()
def registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture()
def collector(registry: CollectorRegistry) -> RequestMetricsCollector:
    return RequestMetricsCollector(registry)


def add_demo_routes(app: FastAPI) -> FastAPI:
    """Register a few routes exercised by the endpoint tests."""

    @app.get("/foo")
    def read_foo() -> dict[str, bool]:
        time.sleep(0.015)
        return {"ok": True}

    @app.get("/items/{item_id}")
    def read_item(item_id: int) -> dict[str, int]:
        return {"item_id": item_id}

    @app.get("/boom")
    def explode() -> None:
        raise RuntimeError("boom")

    return app


def build_app(
    collector: RequestMetricsCollector, settings: Settings | None = None
) -> FastAPI:
    from reqmetrics.main import create_app

    return add_demo_routes(create_app(settings or Settings(), collector))


@pytest.fixture()
def app(collector: RequestMetricsCollector) -> FastAPI:
    return build_app(collector)


@pytest.fixture()
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Return a test client for an application wired to the test collector."""

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def app_factory():
    """Return a builder for applications with custom settings."""

    return build_app
