"""SQLModel database table models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Index, Integer, Text, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    """Return current UTC time as naive datetime for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class UrlFetch(SQLModel, table=True):
    __tablename__ = "url_fetches"
    __table_args__ = (
        Index("idx_url", "url"),
        Index("idx_status", "response_status"),
        Index("idx_fetched_at", text("fetched_at DESC")),
    )

    id: int | None = Field(default=None, primary_key=True)
    url: str = Field(sa_column=Column(Text, nullable=False, unique=True))
    response_status: int | None = Field(default=None, sa_column=Column(Integer, nullable=True))
    response_headers: dict[str, Any] | None = Field(
        default=None,
        sa_column=Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True),
    )
    response_body: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    content_type: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    fetched_at: datetime = Field(
        default_factory=_utc_now,
        sa_column=Column(DateTime, nullable=False, default=_utc_now),
    )
