import pytest
from prometheus_client import CollectorRegistry

from urlfetcher.metrics.sink import MetricsSink


@pytest.mark.unit
class TestMetricsSink:
    def test_registration_is_idempotent(self) -> None:
        registry = CollectorRegistry()
        first = MetricsSink(registry=registry)
        second = MetricsSink(registry=registry)
        assert second.http_requests_total is first.http_requests_total
        assert second.db_query_duration is first.db_query_duration

    def test_records_http_request(self) -> None:
        registry = CollectorRegistry()
        sink = MetricsSink(registry=registry)
        sink.record_http_request(120.0, 200)
        sink.record_http_request(30.0, 0)
        assert registry.get_sample_value(
            "http_requests_total", {"method": "GET", "status": "200"}
        ) == 1.0
        assert registry.get_sample_value(
            "http_requests_total", {"method": "GET", "status": "0"}
        ) == 1.0
        summary = sink.summary()
        assert summary["http_min_ms"] == 30.0
        assert summary["http_max_ms"] == 120.0

    def test_records_database_query(self) -> None:
        registry = CollectorRegistry()
        sink = MetricsSink(registry=registry)
        sink.record_database_query(4.0, "save_fetch_results")
        assert registry.get_sample_value(
            "database_queries_total", {"operation": "save_fetch_results"}
        ) == 1.0
        assert registry.get_sample_value(
            "database_query_duration_seconds_count", {"operation": "save_fetch_results"}
        ) == 1.0

    def test_summary_empty(self) -> None:
        sink = MetricsSink(registry=CollectorRegistry())
        assert sink.summary()["http_min_ms"] is None
        assert sink.summary()["db_min_ms"] is None

    def test_render_exposition(self) -> None:
        sink = MetricsSink(registry=CollectorRegistry())
        sink.record_http_request(10.0, 404)
        assert b"http_request_duration_seconds_bucket" in sink.render()
