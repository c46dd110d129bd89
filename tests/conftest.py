"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from prometheus_client import CollectorRegistry
from sqlalchemy.ext.asyncio import create_async_engine

from urlfetcher.metrics.sink import MetricsSink
from urlfetcher.storage.database import init_db
from urlfetcher.storage.repositories.url_fetches import UrlFetchRepository
from urlfetcher.web.app import create_app


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Default upstream: 200 text/html echoing the requested URL."""
    return httpx.Response(
        200,
        headers={"content-type": "text/html; charset=utf-8", "x-upstream": "mock"},
        text=f"<html>\n\t<body>{request.url}</body>\n</html>",
    )


@pytest.fixture()
def metrics() -> MetricsSink:
    """Metrics sink backed by a private registry."""
    return MetricsSink(registry=CollectorRegistry())


@pytest.fixture()
async def async_engine():
    """In-memory SQLite engine with the url_fetches schema created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    await init_db(engine)
    yield engine
    await engine.dispose()


@pytest.fixture()
def repository(async_engine, metrics: MetricsSink) -> UrlFetchRepository:
    return UrlFetchRepository(async_engine, metrics)


@pytest.fixture()
def upstream() -> dict[str, Callable[[httpx.Request], httpx.Response]]:
    """Mutable holder for the mock upstream handler used by the app."""
    return {"handler": echo_handler}


@pytest.fixture()
def app(async_engine, metrics: MetricsSink, upstream):
    """Create a fresh app wired to SQLite and a mock upstream."""
    transport = httpx.MockTransport(lambda request: upstream["handler"](request))
    return create_app(engine=async_engine, metrics=metrics, transport=transport)


@pytest.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
