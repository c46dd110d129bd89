"""Health check endpoint logic."""

from __future__ import annotations

import time
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import text

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


async def check_health(engine: AsyncEngine) -> dict[str, object]:
    """Return application health status with DB probe."""
    start = time.perf_counter()
    db_status = "disconnected"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception as exc:
        logger.warning("health_check_db_failed", error=str(exc))

    response_time_ms = round((time.perf_counter() - start) * 1000, 2)
    if db_status == "connected":
        logger.debug("health_check_passed", response_time_ms=response_time_ms)

    return {
        "status": "healthy" if db_status == "connected" else "unhealthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "database": {
            "status": db_status,
            "response_time_ms": response_time_ms,
        },
    }
