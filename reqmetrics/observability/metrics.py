"""Request metrics collection backed by ``prometheus_client``."""

from __future__ import annotations

import logging
import re
from threading import Lock
from typing import Dict, Iterable, Iterator, Tuple

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    GCCollector,
    Gauge,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)
from prometheus_client.samples import Sample
from prometheus_summary import Summary

from ..config import DEFAULT_METRICS_PATH, DEFAULT_METRICS_PREFIX, normalise_path
from ..utils.errors import MetricsConfigurationError

logger = logging.getLogger("reqmetrics.metrics")

_METRIC_NAME_PATTERN = re.compile(r"^[a-zA-Z_:][a-zA-Z0-9_:]*$")

REQUEST_LABELS = ("method",)
PATH_LABELS = ("path",)
RESPONSE_LABELS = ("method", "path", "status")

# (quantile, allowed rank error) targets of the response-time summary.
DEFAULT_INVARIANTS = ((0.5, 0.05), (0.9, 0.01), (0.99, 0.001))
DEFAULT_MAX_AGE_SECONDS = 600
DEFAULT_AGE_BUCKETS = 5


class RequestMetricsCollector:
    """Own the per-request metrics of one application and render them for scrapes.

    Three metrics are registered in ``registry`` (a fresh
    :class:`~prometheus_client.CollectorRegistry` when omitted):

    * ``<prefix>_requests_total{method}`` counts requests per HTTP method.
    * ``<prefix>_paths_taken_total{path}`` counts requests per URL path.
    * ``<prefix>_response_time_milliseconds{method,path,status}`` is a summary
      of response times with 0.5, 0.9 and 0.99 quantiles over a sliding
      ten minute window.

    :meth:`start` adds the process collectors and an
    ``<prefix>_event_loop_lag_seconds`` gauge.

    Requests to any of ``excluded_paths`` are not recorded, so scraping the
    collector does not inflate its own numbers.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        *,
        prefix: str = DEFAULT_METRICS_PREFIX,
        excluded_paths: Iterable[str] = (DEFAULT_METRICS_PATH,),
        default_collectors: bool = True,
        invariants: Tuple[Tuple[float, float], ...] = DEFAULT_INVARIANTS,
        max_age_seconds: int = DEFAULT_MAX_AGE_SECONDS,
    ) -> None:
        if not _METRIC_NAME_PATTERN.match(prefix or ""):
            raise MetricsConfigurationError(
                "invalid_prefix",
                f"Metric prefix {prefix!r} is not a valid Prometheus metric name",
                {"prefix": prefix},
            )
        self._registry = registry if registry is not None else CollectorRegistry()
        self._prefix = prefix
        self._excluded = _validate_excluded_paths(excluded_paths)
        self._default_collectors = default_collectors
        self._invariants = tuple(invariants)
        self._max_age_seconds = max_age_seconds
        self.event_loop_lag: Gauge | None = None
        self._start_lock = Lock()
        self._started = False
        self._create_metrics()

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def excluded_paths(self) -> Tuple[str, ...]:
        return self._excluded

    @property
    def started(self) -> bool:
        """Whether :meth:`start` has registered the process-level collectors."""

        return self._started

    def _create_metrics(self) -> None:
        created = []
        try:
            self.requests = self._register(
                Counter, "requests", "Number of requests by HTTP method", REQUEST_LABELS
            )
            created.append(self.requests)
            self.paths_taken = self._register(
                Counter, "paths_taken", "Number of requests by URL path", PATH_LABELS
            )
            created.append(self.paths_taken)
            self.responses = self._register(
                Summary,
                "response_time_milliseconds",
                "Response time in milliseconds",
                RESPONSE_LABELS,
                invariants=self._invariants,
                max_age_seconds=self._max_age_seconds,
                age_buckets=DEFAULT_AGE_BUCKETS,
            )
        except MetricsConfigurationError:
            for metric in created:
                self._registry.unregister(metric)
            raise

    def _register(self, factory, suffix: str, documentation: str, labelnames, **kwargs):
        name = f"{self._prefix}_{suffix}"
        try:
            return factory(
                name, documentation, labelnames, registry=self._registry, **kwargs
            )
        except ValueError as exc:
            raise MetricsConfigurationError(
                "duplicate_metric", str(exc), {"metric": name}
            ) from exc

    def is_excluded(self, path: str) -> bool:
        """Return ``True`` when requests to ``path`` must not be recorded."""

        return (path.rstrip("/") or "/") in self._excluded

    def on_request_start(self, method: str, path: str) -> None:
        """Count an inbound request by method and by path."""

        if self.is_excluded(path):
            return
        self.requests.labels(method=method.upper()).inc()
        self.paths_taken.labels(path=path).inc()

    def on_request_end(
        self,
        method: str,
        path: str,
        status_code: int,
        elapsed_ms: float,
    ) -> None:
        """Record the response time of a completed request."""

        if self.is_excluded(path):
            return
        self.responses.labels(
            method=method.upper(), path=path, status=str(status_code)
        ).observe(max(float(elapsed_ms), 0.0))

    def render_metrics(self) -> Tuple[bytes, str]:
        """Return the text exposition of the registry and its content type."""

        return generate_latest(self._registry), CONTENT_TYPE_LATEST

    def start(self) -> None:
        """Begin collecting process-level default metrics.

        Calling this more than once has no further effect.
        """

        with self._start_lock:
            if self._started:
                logger.debug("Default metric collection already started")
                return
            if self._default_collectors:
                self._register_default_collectors()
            self._started = True
        logger.info(
            "Collecting request metrics with prefix %r (excluded paths: %s)",
            self._prefix,
            ", ".join(self._excluded),
        )

    def _register_default_collectors(self) -> None:
        try:
            ProcessCollector(registry=self._registry)
            PlatformCollector(registry=self._registry)
            GCCollector(registry=self._registry)
            self.event_loop_lag = Gauge(
                f"{self._prefix}_event_loop_lag_seconds",
                "Delay of event loop wake-ups beyond their scheduled time",
                registry=self._registry,
            )
        except ValueError as exc:
            raise MetricsConfigurationError(
                "duplicate_metric",
                f"Default collectors are already registered: {exc}",
            ) from exc

    def reset(self) -> None:
        """Drop all recorded request data (useful for tests)."""

        for metric in (self.requests, self.paths_taken, self.responses):
            self._registry.unregister(metric)
        self._create_metrics()

    def snapshot(self) -> Dict[str, object]:
        """Return a JSON-friendly view of the recorded request metrics."""

        requests_by_method = {
            sample.labels["method"]: int(sample.value)
            for sample in _samples(self.requests, "_total")
        }
        paths_taken = {
            sample.labels["path"]: int(sample.value)
            for sample in _samples(self.paths_taken, "_total")
        }

        responses: Dict[str, Dict[str, float | int]] = {}
        for sample in _samples(self.responses, "_count", "_sum"):
            labels = sample.labels
            key = f"{labels['method']} {labels['path']} {labels['status']}"
            stats = responses.setdefault(key, {"count": 0, "sum_ms": 0.0})
            if sample.name.endswith("_count"):
                stats["count"] = int(sample.value)
            else:
                stats["sum_ms"] = sample.value
        for stats in responses.values():
            count = stats["count"]
            stats["avg_ms"] = stats["sum_ms"] / count if count else 0.0

        return {
            "requests_by_method": requests_by_method,
            "paths_taken": paths_taken,
            "responses": responses,
        }


def _samples(metric, *suffixes: str) -> Iterator[Sample]:
    for family in metric.collect():
        for sample in family.samples:
            if sample.name.endswith(suffixes):
                yield sample


def _validate_excluded_paths(paths: Iterable[str]) -> Tuple[str, ...]:
    if isinstance(paths, str):
        paths = (paths,)
    validated = []
    for path in paths:
        if not path.startswith("/"):
            raise MetricsConfigurationError(
                "invalid_excluded_path",
                f"Excluded path {path!r} must start with '/'",
                {"path": path},
            )
        validated.append(normalise_path(path))
    return tuple(dict.fromkeys(validated))


__all__ = [
    "PATH_LABELS",
    "REQUEST_LABELS",
    "RESPONSE_LABELS",
    "RequestMetricsCollector",
]
