"""URL fetch API routes."""

from __future__ import annotations

import re
import time
from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException

from urlfetcher.config.settings import get_settings
from urlfetcher.models.api import CreateUrlFetchRequest
from urlfetcher.service import UrlFetcherService
from urlfetcher.web.dependencies import get_service

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/v1/url-fetches", tags=["url-fetches"])


def _parse_int(value: str | None, default: int | None) -> int | None:
    """Lenient integer parsing; anything unparseable falls back to ``default``."""
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_date(value: str | None, name: str) -> datetime | None:
    """Parse an ISO-8601 date into naive UTC to match the fetched_at column."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: expected an ISO-8601 date") from e
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed


@router.post("", status_code=201)
async def create_url_fetches(
    body: CreateUrlFetchRequest,
    service: UrlFetcherService = Depends(get_service),
) -> dict[str, Any]:
    start = time.monotonic()
    records = await service.fetch_urls(body.urls)
    processing_time = round((time.monotonic() - start) * 1000)
    logger.info("url_fetches_created", count=len(records), processing_time_ms=processing_time)
    return {
        "message": f"Successfully fetched {len(records)} URLs",
        "data": [r.model_dump(mode="json") for r in records],
        "count": len(records),
        "processingTime": processing_time,
    }


@router.get("")
async def list_url_fetches(
    page: str | None = None,
    limit: str | None = None,
    status: str | None = None,
    url: str | None = None,
    startDate: str | None = None,  # noqa: N803
    endDate: str | None = None,  # noqa: N803
    service: UrlFetcherService = Depends(get_service),
) -> dict[str, Any]:
    settings = get_settings()
    page_num = _parse_int(page, 1) or 1
    page_limit = _parse_int(limit, settings.default_page_limit) or settings.default_page_limit
    page_limit = min(page_limit, settings.max_page_limit)

    if url:
        try:
            re.compile(url)
        except re.error as e:
            raise HTTPException(status_code=400, detail=f"Invalid url filter: {e}") from e

    result = await service.get_url_fetches_with_pagination(
        page=page_num,
        limit=page_limit,
        status=_parse_int(status, None),
        url=url or None,
        start_date=_parse_date(startDate, "startDate"),
        end_date=_parse_date(endDate, "endDate"),
    )
    return {
        "message": "Successfully retrieved URL fetches",
        "data": [r.model_dump(mode="json") for r in result.data],
        "count": len(result.data),
        "pagination": {
            "page": result.page,
            "limit": result.limit,
            "totalPages": result.total_pages,
            "totalItems": result.total_items,
        },
    }


@router.get("/{fetch_id}")
async def get_url_fetch(
    fetch_id: str,
    service: UrlFetcherService = Depends(get_service),
) -> dict[str, Any]:
    try:
        parsed_id = int(fetch_id)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail="Invalid ID format. ID must be a valid integer.",
        ) from e

    record = await service.get_url_fetch_by_id(parsed_id)
    return {
        "message": "URL fetch found" if record else "URL fetch not found",
        "data": record.model_dump(mode="json") if record else None,
    }
