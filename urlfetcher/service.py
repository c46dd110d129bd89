"""Write and read paths over the validator, fetcher and repository."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from urlfetcher.exceptions import UrlValidationError
from urlfetcher.models.results import FetchSuccess
from urlfetcher.security.sanitizer import sanitize_data

if TYPE_CHECKING:
    from datetime import datetime

    from urlfetcher.fetching.orchestrator import BatchFetcher
    from urlfetcher.models.api import PaginatedRecords, UrlFetchRecord
    from urlfetcher.models.results import FetchResult
    from urlfetcher.security.validator import UrlValidator
    from urlfetcher.storage.repositories.url_fetches import UrlFetchRepository

logger = structlog.get_logger(__name__)


def sanitize_result(result: FetchResult) -> FetchResult:
    """Clean the captured response of a successful fetch; failures pass through."""
    if not isinstance(result, FetchSuccess):
        return result
    return result.model_copy(
        update={
            "headers": sanitize_data(result.headers),
            "body": sanitize_data(result.body),
            "content_type": sanitize_data(result.content_type),
        }
    )


class UrlFetcherService:
    """Validates, fetches, sanitizes and persists URL batches."""

    def __init__(
        self,
        validator: UrlValidator,
        fetcher: BatchFetcher,
        repository: UrlFetchRepository,
        max_urls_per_request: int = 100,
    ) -> None:
        self._validator = validator
        self._fetcher = fetcher
        self._repository = repository
        self._max_urls = max_urls_per_request

    async def fetch_urls(self, urls: list[str]) -> list[UrlFetchRecord]:
        """Fetch and store every URL, or none of them if any fails validation."""
        logger.info("fetch_urls_started", count=len(urls))
        if len(urls) > self._max_urls:
            msg = f"Maximum {self._max_urls} URLs allowed per request"
            raise UrlValidationError(msg)

        batch = self._validator.validate_urls(urls)
        if batch.has_invalid:
            logger.warning(
                "batch_rejected",
                invalid=[f"{item['url']} ({item['error']})" for item in batch.invalid_urls],
            )
            raise UrlValidationError(
                "Some URLs failed security validation",
                invalid_urls=batch.invalid_urls,
                valid_count=len(batch.valid_urls),
            )
        if not batch.valid_urls:
            msg = "No valid URLs provided after security validation"
            raise UrlValidationError(msg)

        results = await self._fetcher.fetch_all(batch.valid_urls)
        saved = await self._repository.save_results([sanitize_result(r) for r in results])
        logger.info("fetch_urls_done", saved=len(saved), validated=len(batch.valid_urls))
        return saved

    async def get_url_fetches_with_pagination(
        self,
        page: int = 1,
        limit: int = 10,
        status: int | None = None,
        url: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> PaginatedRecords:
        logger.info("url_fetches_page_requested", page=page, limit=limit)
        return await self._repository.query_page(
            page=page,
            limit=limit,
            status=status,
            url_pattern=url,
            start_date=start_date,
            end_date=end_date,
        )

    async def get_url_fetch_by_id(self, fetch_id: int) -> UrlFetchRecord | None:
        logger.info("url_fetch_requested", id=fetch_id)
        return await self._repository.get_by_id(fetch_id)

    async def get_all_url_fetches(self) -> list[UrlFetchRecord]:
        return await self._repository.list_all()

    async def get_url_fetches_by_url(self, url: str) -> list[UrlFetchRecord]:
        return await self._repository.list_by_url(url)
