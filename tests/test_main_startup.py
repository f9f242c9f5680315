"""Tests for application assembly in ``reqmetrics.main``."""

from __future__ import annotations

from fastapi.testclient import TestClient

from reqmetrics.main import create_app


def test_create_app_builds_collector_from_environment(monkeypatch):
    monkeypatch.setenv("METRICS_PREFIX", "svc")
    monkeypatch.setenv("METRICS_EXCLUDED_PATHS", "/api/health")
    monkeypatch.setenv("METRICS_DEFAULT_COLLECTORS", "false")

    app = create_app()
    collector = app.state.metrics_collector

    assert collector.prefix == "svc"
    assert collector.excluded_paths == ("/metrics", "/api/health")

    with TestClient(app) as client:
        client.get("/api/health")
        client.get("/api/status")
        body = client.get("/metrics").text

    assert 'svc_paths_taken_total{path="/api/status"} 1.0' in body
    assert "/api/health" not in body
    assert "python_info" not in body


def test_startup_announces_metrics_path(app, caplog):
    with caplog.at_level("INFO", logger="uvicorn.error"):
        with TestClient(app):
            pass

    assert any(
        "Serving Prometheus metrics at /metrics" in record.getMessage()
        for record in caplog.records
    )


def test_configure_logging_returns_package_logger(monkeypatch):
    import logging

    from reqmetrics.middleware import RequestIdLogFilter
    from reqmetrics.utils.logging import configure_logging

    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    monkeypatch.setenv("LOG_LEVEL", "warning")
    try:
        logger = configure_logging()

        assert logger.name == "reqmetrics"
        assert logger.getEffectiveLevel() == logging.WARNING
        handler = root.handlers[0]
        assert "%(request_id)s" in handler.formatter._fmt
        assert any(isinstance(f, RequestIdLogFilter) for f in handler.filters)
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
        logging.getLogger("reqmetrics").setLevel(logging.NOTSET)


def test_create_app_accepts_relative_paths_from_environment(monkeypatch):
    monkeypatch.setenv("METRICS_PATH", "stats")
    monkeypatch.setenv("METRICS_EXCLUDED_PATHS", "healthz")
    monkeypatch.setenv("METRICS_DEFAULT_COLLECTORS", "false")

    app = create_app()
    collector = app.state.metrics_collector

    assert collector.excluded_paths == ("/stats", "/healthz")
    with TestClient(app) as client:
        assert client.get("/stats").status_code == 200
        assert client.get("/metrics").status_code == 404


def test_startup_samples_event_loop_lag(app, collector, registry):
    with TestClient(app) as client:
        body = client.get("/metrics").text

    assert collector.event_loop_lag is not None
    assert "# TYPE reqmetrics_event_loop_lag_seconds gauge" in body
    assert registry.get_sample_value("reqmetrics_event_loop_lag_seconds") >= 0.0
