"""Database-backed URL fetch repository using SQLModel + AsyncSession."""

from __future__ import annotations

import math
import time
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from urlfetcher.exceptions import StorageError
from urlfetcher.models.api import PaginatedRecords, UrlFetchRecord
from urlfetcher.models.database import UrlFetch, _utc_now
from urlfetcher.models.results import FetchFailure, FetchSuccess
from urlfetcher.storage.errors import handle_database_error

if TYPE_CHECKING:
    from collections.abc import Generator, Sequence
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncEngine

    from urlfetcher.metrics.sink import MetricsSink
    from urlfetcher.models.results import FetchResult

logger = structlog.get_logger(__name__)

_UPSERT_DIALECTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

_UPDATED_COLUMNS = ("response_status", "response_headers", "response_body", "content_type", "fetched_at")


def _row_values(result: FetchResult) -> dict[str, Any]:
    """Map a fetch result onto url_fetches column values."""
    match result:
        case FetchSuccess():
            return {
                "url": result.url,
                "response_status": result.status,
                "response_headers": result.headers,
                "response_body": result.body,
                "content_type": result.content_type,
            }
        case FetchFailure():
            return {
                "url": result.url,
                "response_status": result.status,
                "response_headers": None,
                "response_body": None,
                "content_type": None,
            }
    msg = f"Unsupported fetch result: {type(result).__name__}"
    raise TypeError(msg)


class UrlFetchRepository:
    """Store for fetch results keyed by URL.

    Writes go through a single ``INSERT ... ON CONFLICT (url) DO UPDATE``
    statement per URL, so concurrent writers never read-then-write.
    """

    def __init__(self, engine: AsyncEngine, metrics: MetricsSink) -> None:
        self._engine = engine
        self._metrics = metrics

    @contextmanager
    def _track(self, operation: str) -> Generator[None, None, None]:
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            handle_database_error(e, operation)
        finally:
            self._metrics.record_database_query((time.perf_counter() - start) * 1000, operation)

    def _insert(self) -> Any:
        dialect = self._engine.dialect.name
        insert = _UPSERT_DIALECTS.get(dialect)
        if insert is None:
            msg = f"Upsert is not supported for dialect {dialect!r}"
            raise StorageError(msg)
        return insert

    async def save_results(self, results: Sequence[FetchResult]) -> list[UrlFetchRecord]:
        """Upsert each result and return the row state after the write."""
        insert = self._insert()
        table = UrlFetch.__table__
        saved: list[UrlFetchRecord] = []

        with self._track("save_fetch_results"):
            async with AsyncSession(self._engine) as session:
                for result in results:
                    values = _row_values(result)
                    values["fetched_at"] = _utc_now()
                    stmt = insert(table).values(**values)
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[table.c.url],
                        set_={name: stmt.excluded[name] for name in _UPDATED_COLUMNS},
                    ).returning(*table.c)
                    row = (await session.execute(stmt)).one()
                    saved.append(UrlFetchRecord.model_validate(dict(row._mapping)))
                await session.commit()

        logger.info("url_fetches_upserted", count=len(saved))
        return saved

    async def query_page(
        self,
        page: int = 1,
        limit: int = 10,
        status: int | None = None,
        url_pattern: str | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
    ) -> PaginatedRecords:
        """Return one page of records matching every given filter."""
        page = max(page, 1)
        limit = max(limit, 1)

        conditions: list[Any] = []
        if status is not None:
            conditions.append(col(UrlFetch.response_status) == status)
        if url_pattern:
            conditions.append(col(UrlFetch.url).regexp_match(url_pattern))
        if start_date is not None:
            conditions.append(col(UrlFetch.fetched_at) >= start_date)
        if end_date is not None:
            conditions.append(col(UrlFetch.fetched_at) <= end_date)

        count_stmt = select(func.count()).select_from(UrlFetch).where(*conditions)
        data_stmt = (
            select(UrlFetch)
            .where(*conditions)
            .order_by(col(UrlFetch.fetched_at).desc(), col(UrlFetch.id).desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )

        with self._track("get_url_fetches_pagination"):
            async with AsyncSession(self._engine) as session:
                total_items = (await session.execute(count_stmt)).scalar_one()
                rows = (await session.execute(data_stmt)).scalars().all()

        total_pages = math.ceil(total_items / limit)
        logger.info(
            "url_fetches_page_retrieved",
            page=page,
            total_pages=total_pages,
            total_items=total_items,
            returned=len(rows),
        )
        return PaginatedRecords(
            data=[UrlFetchRecord.model_validate(row) for row in rows],
            page=page,
            limit=limit,
            total_pages=total_pages,
            total_items=total_items,
        )

    async def get_by_id(self, fetch_id: int) -> UrlFetchRecord | None:
        """Return the record with ``fetch_id``, or None if it does not exist."""
        with self._track("get_url_fetch_by_id"):
            async with AsyncSession(self._engine) as session:
                record = await session.get(UrlFetch, fetch_id)
        if record is None:
            return None
        return UrlFetchRecord.model_validate(record)

    async def list_all(self) -> list[UrlFetchRecord]:
        """Return every record, most recently fetched first."""
        stmt = select(UrlFetch).order_by(col(UrlFetch.fetched_at).desc())
        with self._track("get_all_url_fetches"):
            async with AsyncSession(self._engine) as session:
                rows = (await session.execute(stmt)).scalars().all()
        return [UrlFetchRecord.model_validate(row) for row in rows]

    async def list_by_url(self, url: str) -> list[UrlFetchRecord]:
        """Return records whose URL equals ``url`` exactly."""
        stmt = (
            select(UrlFetch)
            .where(col(UrlFetch.url) == url)
            .order_by(col(UrlFetch.fetched_at).desc())
        )
        with self._track("get_url_fetches_by_url"):
            async with AsyncSession(self._engine) as session:
                rows = (await session.execute(stmt)).scalars().all()
        return [UrlFetchRecord.model_validate(row) for row in rows]
