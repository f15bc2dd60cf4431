"""
FastAPI Application Factory

Creates and configures the reporting API application.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
import structlog

from gold_analytics.config import get_settings
from gold_analytics.engine import DatasetStore, ReportEngine
from gold_analytics.errors import (
    EmptyAggregationError,
    InvalidRequestError,
    NotFoundError,
    ReportingError,
)
from gold_analytics.serving.api.middleware import RequestLoggingMiddleware
from gold_analytics.serving.api.routes import catalog_router, health_router, reports_router

logger = structlog.get_logger(__name__)

ERROR_STATUS = {
    NotFoundError: 404,
    InvalidRequestError: 422,
    EmptyAggregationError: 422,
}


async def reporting_error_handler(request: Request, exc: ReportingError) -> JSONResponse:
    """Map reporting errors onto HTTP status codes"""
    status_code = ERROR_STATUS.get(type(exc), 500)
    logger.warning(
        "Report request failed",
        path=request.url.path,
        error=type(exc).__name__,
        message=exc.message,
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(exc.to_dict()))


def create_api_app(store: Optional[DatasetStore] = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        store: Dataset store to serve; loaded from settings on startup when omitted

    Returns:
        Configured FastAPI app instance
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "engine", None) is None:
            try:
                app.state.engine = ReportEngine(DatasetStore.from_directory())
            except NotFoundError as e:
                logger.warning("Dataset store not loaded", error=e.message)
        yield
        logger.info("Shutting down...")

    app = FastAPI(
        title="Gold Analytics Reporting API",
        description="Key metrics, magnitude analysis and rankings over the gold star schema",
        version=settings.version,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    if store is not None:
        app.state.engine = ReportEngine(store)

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(ReportingError, reporting_error_handler)

    app.include_router(health_router, prefix="/api/v1", tags=["Health"])
    app.include_router(reports_router, prefix="/api/v1/reports", tags=["Reports"])
    app.include_router(catalog_router, prefix="/api/v1/catalog", tags=["Catalog"])

    return app
