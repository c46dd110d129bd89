"""Single-URL HTTP GET with bounded timeout and redirects."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import httpx
import structlog

from urlfetcher.models.results import FetchFailure, FetchResult, FetchSuccess

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from urlfetcher.metrics.sink import MetricsSink

logger = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = "URL-Fetcher-Service/1.0"


def _describe_exception(exc: BaseException) -> str:
    message = str(exc)
    return f"{type(exc).__name__}: {message}" if message else type(exc).__name__


class FetchClient:
    """Issues one GET per URL; every HTTP status counts as a response."""

    def __init__(
        self,
        metrics: MetricsSink,
        timeout_seconds: float = 5.0,
        max_redirects: int = 3,
        user_agent: str = DEFAULT_USER_AGENT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._metrics = metrics
        self._timeout = timeout_seconds
        self._max_redirects = max_redirects
        self._user_agent = user_agent
        self._transport = transport

    @asynccontextmanager
    async def session(self) -> AsyncIterator[httpx.AsyncClient]:
        """Yield an httpx client configured with this fetcher's limits."""
        async with httpx.AsyncClient(
            follow_redirects=True,
            max_redirects=self._max_redirects,
            timeout=self._timeout,
            headers={"User-Agent": self._user_agent},
            transport=self._transport,
        ) as client:
            yield client

    async def fetch(self, url: str, client: httpx.AsyncClient | None = None) -> FetchResult:
        """Fetch ``url``, reusing ``client`` when given."""
        if client is None:
            async with self.session() as own_client:
                return await self._fetch(url, own_client)
        return await self._fetch(url, client)

    async def _fetch(self, url: str, client: httpx.AsyncClient) -> FetchResult:
        start = time.perf_counter()
        # Set once headers arrive so a failed body read keeps the status.
        status: int | None = None
        try:
            async with client.stream("GET", url) as response:
                status = response.status_code
                await response.aread()
        except httpx.HTTPError as e:
            self._metrics.record_http_request(_elapsed_ms(start), status or 0)
            error = _describe_exception(e)
            logger.error("fetch_failed", url=url, status=status, error=error)
            return FetchFailure(url=url, error=error, status=status)

        self._metrics.record_http_request(_elapsed_ms(start), response.status_code)
        headers = dict(response.headers)
        logger.debug("fetch_completed", url=url, status=response.status_code)
        return FetchSuccess(
            url=url,
            status=response.status_code,
            headers=headers,
            body=response.text,
            content_type=headers.get("content-type"),
        )


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000
