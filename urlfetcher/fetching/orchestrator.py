"""Concurrent fan-out/fan-in over a batch of URLs."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import structlog

from urlfetcher.models.results import FetchFailure, FetchResult

if TYPE_CHECKING:
    from urlfetcher.fetching.client import FetchClient

logger = structlog.get_logger(__name__)


class BatchFetcher:
    """Fetches every URL concurrently and waits for all of them to settle.

    Output order matches input order. A failure for one URL is reported
    inline as a ``FetchFailure`` and never cancels the other fetches.
    """

    def __init__(self, client: FetchClient, concurrency: int | None = None) -> None:
        self._client = client
        self._concurrency = concurrency

    async def fetch_all(self, urls: list[str]) -> list[FetchResult]:
        if not urls:
            return []

        semaphore = asyncio.Semaphore(self._concurrency) if self._concurrency else None

        async with self._client.session() as http:

            async def _one(url: str) -> FetchResult:
                if semaphore is None:
                    return await self._client.fetch(url, http)
                async with semaphore:
                    return await self._client.fetch(url, http)

            settled = await asyncio.gather(
                *(_one(url) for url in urls), return_exceptions=True
            )

        results: list[FetchResult] = []
        for url, outcome in zip(urls, settled, strict=True):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.error("fetch_task_failed", url=url, error=str(outcome))
                results.append(FetchFailure(url=url, error=str(outcome) or type(outcome).__name__))
            else:
                results.append(outcome)

        failed = sum(1 for r in results if isinstance(r, FetchFailure))
        logger.info("batch_fetch_done", total=len(results), failed=failed)
        return results
