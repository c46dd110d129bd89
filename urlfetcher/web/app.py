"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from urlfetcher.config.logging import setup_logging
from urlfetcher.config.settings import get_settings
from urlfetcher.exceptions import ServiceUnavailableError, UrlValidationError
from urlfetcher.metrics.sink import MetricsSink
from urlfetcher.storage.database import get_engine, init_db
from urlfetcher.web.dependencies import build_service
from urlfetcher.web.middleware import RequestIDMiddleware
from urlfetcher.web.routes.system import router as system_router
from urlfetcher.web.routes.url_fetches import router as url_fetches_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    import httpx
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)


def create_app(
    engine: AsyncEngine | None = None,
    metrics: MetricsSink | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()
    setup_logging(log_level=settings.log_level, debug=settings.debug)

    if engine is None:
        engine = get_engine()
    if metrics is None:
        metrics = MetricsSink()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if settings.init_db_on_startup:
            await init_db(app.state.engine)
        yield

    app = FastAPI(
        title="URL Fetcher",
        description="Validates, fetches and stores batches of URLs",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.engine = engine
    app.state.metrics = metrics
    app.state.url_fetcher_service = build_service(engine, metrics, settings, transport=transport)

    @app.exception_handler(UrlValidationError)
    async def url_validation_handler(request: Request, exc: UrlValidationError) -> JSONResponse:
        content: dict[str, object] = {"message": exc.message}
        if exc.invalid_urls:
            content.update(
                invalidUrls=exc.invalid_urls,
                validUrlsCount=exc.valid_count,
                invalidUrlsCount=len(exc.invalid_urls),
            )
        return JSONResponse(status_code=400, content=content)

    @app.exception_handler(ServiceUnavailableError)
    async def service_unavailable_handler(
        request: Request, exc: ServiceUnavailableError
    ) -> JSONResponse:
        return JSONResponse(status_code=503, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Validation failed", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    app.add_middleware(RequestIDMiddleware)

    app.include_router(system_router)
    app.include_router(url_fetches_router)

    logger.info("app_created")
    return app
