"""Health and Prometheus metrics routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy.ext.asyncio import AsyncEngine

from urlfetcher.metrics.sink import MetricsSink
from urlfetcher.web.dependencies import get_db_engine, get_metrics
from urlfetcher.web.health import check_health

router = APIRouter(tags=["system"])


@router.get("/health")
async def health(engine: AsyncEngine = Depends(get_db_engine)) -> dict[str, object]:
    return await check_health(engine)


@router.get("/metrics")
async def metrics(sink: MetricsSink = Depends(get_metrics)) -> Response:
    return Response(content=sink.render(), media_type=CONTENT_TYPE_LATEST)
