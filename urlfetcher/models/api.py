"""API request/response schemas for FastAPI endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CreateUrlFetchRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    urls: list[str] = Field(min_length=1, max_length=100)


class UrlFetchRecord(BaseModel):
    """Persisted fetch result in its snake_case wire shape."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    url: str
    response_status: int | None = None
    response_headers: dict[str, Any] | None = None
    response_body: str | None = None
    content_type: str | None = None
    fetched_at: datetime


class PaginatedRecords(BaseModel):
    data: list[UrlFetchRecord]
    page: int
    limit: int
    total_pages: int
    total_items: int
