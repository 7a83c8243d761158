"""FastAPI application serving the metrics API and browser page."""

import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse

from .. import __version__
from ..client import MetricsStoreClient
from ..config import ServerConfig
from ..errors import (
    PROBLEM_CONTENT_TYPE,
    ErrorHandler,
    MetricsBrowserError,
    get_logger,
    log_error,
    log_operation,
)
from .routes import router


logger = get_logger(__name__)

INDEX_PAGE = Path(__file__).resolve().parent.parent / "static" / "index.html"


def create_app(
    config: Optional[ServerConfig] = None,
    store: Optional[MetricsStoreClient] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Server configuration; loaded from the environment when omitted
        store: Store client to use; built from the configured connection
            string when omitted. Without either, store-backed endpoints
            answer with a configuration error.
    """
    config = config or ServerConfig.from_env()
    if store is None and config.is_configured:
        store = MetricsStoreClient.from_connection_string(config.require_connection_string())

    index_html = INDEX_PAGE.read_text(encoding="utf-8")

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log_operation(logger, "server_started", store_configured=store is not None)
        yield
        if store is not None:
            store.close()
        log_operation(logger, "server_stopped")

    app = FastAPI(
        title="Metrics Browser",
        description="Read-only browser for CPU, memory and ping metrics in Azure Table Storage",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.store = store

    app.include_router(router)

    @app.get("/", response_class=HTMLResponse, include_in_schema=False)
    def index() -> HTMLResponse:
        return HTMLResponse(index_html)

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=uuid.uuid4().hex,
            path=request.url.path,
        )
        try:
            return await call_next(request)
        finally:
            structlog.contextvars.clear_contextvars()

    @app.exception_handler(MetricsBrowserError)
    async def metrics_error_handler(request: Request, exc: MetricsBrowserError) -> JSONResponse:
        log_error(logger, exc, operation=exc.context.operation or request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorHandler.to_problem(exc),
            media_type=PROBLEM_CONTENT_TYPE,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        store_error = ErrorHandler.handle_store_error(exc, operation=request.url.path)
        log_error(logger, store_error, operation=request.url.path)
        return JSONResponse(
            status_code=500,
            content=ErrorHandler.to_problem(store_error),
            media_type=PROBLEM_CONTENT_TYPE,
        )

    return app
