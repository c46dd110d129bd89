"""FastAPI dependency injection and service wiring."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Request

from urlfetcher.fetching.client import FetchClient
from urlfetcher.fetching.orchestrator import BatchFetcher
from urlfetcher.security.validator import UrlValidator
from urlfetcher.service import UrlFetcherService
from urlfetcher.storage.repositories.url_fetches import UrlFetchRepository

if TYPE_CHECKING:
    import httpx
    from sqlalchemy.ext.asyncio import AsyncEngine

    from urlfetcher.config.settings import Settings
    from urlfetcher.metrics.sink import MetricsSink


def build_service(
    engine: AsyncEngine,
    metrics: MetricsSink,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> UrlFetcherService:
    """Assemble the fetch pipeline from settings."""
    client = FetchClient(
        metrics,
        timeout_seconds=settings.fetch_timeout_seconds,
        max_redirects=settings.fetch_max_redirects,
        user_agent=settings.fetch_user_agent,
        transport=transport,
    )
    return UrlFetcherService(
        validator=UrlValidator(),
        fetcher=BatchFetcher(client, concurrency=settings.fetch_concurrency),
        repository=UrlFetchRepository(engine, metrics),
        max_urls_per_request=settings.max_urls_per_request,
    )


def get_service(request: Request) -> UrlFetcherService:
    return request.app.state.url_fetcher_service  # type: ignore[no-any-return]


def get_metrics(request: Request) -> MetricsSink:
    return request.app.state.metrics  # type: ignore[no-any-return]


def get_db_engine(request: Request) -> AsyncEngine:
    return request.app.state.engine  # type: ignore[no-any-return]
