from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings, Settings
from .core.logging import FileLogSink, init_logging, request_context_middleware
from .core import errors
from .models.endpoints import load_endpoints
from .routers import health, rates, stats
from .services.http_client import AsyncHttpClient
from .services.rates.taptap import TapTapSendScraper
from .services.scheduler import PollingScheduler
from .services.tracker import CallTracker


def create_app(
    settings_override: Settings | None = None,
    *,
    tracker: Optional[CallTracker] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Application factory.

    settings_override: pass an already constructed Settings instance for tests
    to isolate environment (e.g., polling disabled, temp log file). Falls back to
    cached get_settings(). ``tracker`` and ``transport`` let tests inject state
    and a fake upstream.
    """
    settings = settings_override or get_settings()
    # Initialize logging early
    init_logging(debug=settings.debug)

    endpoints = load_endpoints(settings.endpoints_file)
    tracker = tracker or CallTracker(block_limit=settings.block_log_limit)
    client = AsyncHttpClient(timeout=settings.http_timeout_seconds, transport=transport)
    scraper = TapTapSendScraper(
        client, str(settings.rates_url), sample_amount=settings.fee_sample_amount
    )
    scheduler = PollingScheduler(
        endpoints,
        client,
        scraper,
        tracker,
        interval_seconds=settings.poll_interval_seconds,
        popular_base=settings.popular_base_currency,
        popular_currencies=settings.popular_currencies,
    )
    sink = (
        FileLogSink(settings.log_file, max_queue=settings.log_queue_size)
        if settings.log_file
        else None
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if sink is not None:
            sink.start()
        if settings.polling_enabled:
            scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            await client.aclose()
            if sink is not None:
                sink.stop()

    app = FastAPI(
        title=settings.app_name,
        debug=settings.debug,
        version=settings.version,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.tracker = tracker
    app.state.scheduler = scheduler

    # Middleware (request id / structured logging)
    app.middleware("http")(request_context_middleware)

    # Error handlers
    app.add_exception_handler(StarletteHTTPException, errors.http_error_handler)
    app.add_exception_handler(RequestValidationError, errors.validation_error_handler)
    app.add_exception_handler(Exception, errors.server_error_handler)

    # Routers
    app.include_router(health.router)
    app.include_router(stats.router)
    app.include_router(rates.router)

    @app.get("/")
    async def root():
        return {"message": settings.app_name, "version": settings.version}

    return app


app = create_app()
