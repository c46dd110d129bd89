"""Prometheus metrics for outbound fetches and store operations."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, TypeVar

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, generate_latest

if TYPE_CHECKING:
    from prometheus_client.registry import Collector

logger = structlog.get_logger(__name__)

_C = TypeVar("_C", Counter, Histogram)

HTTP_DURATION_BUCKETS = (0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0)
DB_DURATION_BUCKETS = (0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0)


def _register(
    registry: CollectorRegistry, kind: type[_C], name: str, *args: Any, **kwargs: Any
) -> _C:
    """Create a collector, or return the one already registered under ``name``."""
    try:
        return kind(name, *args, registry=registry, **kwargs)
    except ValueError:
        existing: Collector | None = registry._names_to_collectors.get(name)  # noqa: SLF001
        if not isinstance(existing, kind):
            raise
        logger.debug("metric_already_registered", name=name)
        return existing


class MetricsSink:
    """Records request and query timings into a Prometheus registry.

    Constructing several sinks against the same registry is safe: each one
    reuses the collectors registered by the first.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

        self.http_request_duration = _register(
            self.registry,
            Histogram,
            "http_request_duration_seconds",
            "Duration of outbound HTTP requests in seconds",
            ["method", "status"],
            buckets=HTTP_DURATION_BUCKETS,
        )
        self.http_requests_total = _register(
            self.registry,
            Counter,
            "http_requests_total",
            "Total number of outbound HTTP requests",
            ["method", "status"],
        )
        self.db_query_duration = _register(
            self.registry,
            Histogram,
            "database_query_duration_seconds",
            "Duration of database queries in seconds",
            ["operation"],
            buckets=DB_DURATION_BUCKETS,
        )
        self.db_queries_total = _register(
            self.registry,
            Counter,
            "database_queries_total",
            "Total number of database queries",
            ["operation"],
        )

        self._http_min_ms = math.inf
        self._http_max_ms = 0.0
        self._db_min_ms = math.inf
        self._db_max_ms = 0.0

    def record_http_request(self, duration_ms: float, status: int) -> None:
        """Record one outbound fetch; status 0 means no response was received."""
        labels = {"method": "GET", "status": str(status)}
        self.http_request_duration.labels(**labels).observe(duration_ms / 1000)
        self.http_requests_total.labels(**labels).inc()
        self._http_min_ms = min(self._http_min_ms, duration_ms)
        self._http_max_ms = max(self._http_max_ms, duration_ms)

    def record_database_query(self, duration_ms: float, operation: str) -> None:
        """Record one store operation."""
        self.db_query_duration.labels(operation=operation).observe(duration_ms / 1000)
        self.db_queries_total.labels(operation=operation).inc()
        self._db_min_ms = min(self._db_min_ms, duration_ms)
        self._db_max_ms = max(self._db_max_ms, duration_ms)
        logger.debug("database_query_recorded", operation=operation, duration_ms=duration_ms)

    def summary(self) -> dict[str, float | None]:
        """Return min/max timings observed by this sink, in milliseconds."""
        return {
            "http_min_ms": None if math.isinf(self._http_min_ms) else self._http_min_ms,
            "http_max_ms": self._http_max_ms,
            "db_min_ms": None if math.isinf(self._db_min_ms) else self._db_min_ms,
            "db_max_ms": self._db_max_ms,
        }

    def render(self) -> bytes:
        """Return the registry in Prometheus text exposition format."""
        return generate_latest(self.registry)
