"""Transient fetch results passed from the orchestrator to persistence."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class FetchSuccess(BaseModel):
    """A response was received. Non-2xx statuses are still successes."""

    kind: Literal["success"] = Field(default="success")
    url: str
    status: int
    headers: dict[str, Any] = Field(default_factory=dict)
    body: str | None = None
    content_type: str | None = None


class FetchFailure(BaseModel):
    """Transport-level failure: DNS, refused connection, timeout, TLS, redirects."""

    kind: Literal["failure"] = Field(default="failure")
    url: str
    error: str = Field(description="Human-readable failure reason")
    status: int | None = Field(default=None, description="Set only if a response was partially available")


# Tagged union: exactly one of success or failure per attempted URL
FetchResult = FetchSuccess | FetchFailure
