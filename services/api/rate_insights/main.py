"""FastAPI application entry point."""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from prometheus_client import CONTENT_TYPE_LATEST
from sqlalchemy.engine import Engine
from starlette.responses import Response

from rate_insights.config import APIConfig, load_config
from rate_insights.context import ServiceContext
from rate_insights.database import (
    Base,
    check_db_connection,
    create_db_engine,
    create_session_factory,
)
from rate_insights.errors import (
    InsightServiceError,
    server_error_handler,
    service_error_handler,
    validation_error_handler,
)
from rate_insights.fetcher import RateFetcher
from rate_insights.metrics import MetricsSampler, ServiceMetrics
from rate_insights.routers import health, insights, users
from rate_insights.routing import route_template

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Paths excluded from request metrics
UNINSTRUMENTED_PATHS = {"/metrics"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Lifespan context manager for startup and shutdown events.

    Startup:
    - Check database connectivity, then create tables if it is reachable
    - Start background metric samplers

    Shutdown:
    - Cancel samplers
    - Close the HTTP session and dispose of the engine
    """
    context: ServiceContext = app.state.context

    # Startup
    logger.info("Starting Federal Funds Rate Insights API")

    if check_db_connection(context.engine):
        logger.info("Connected to database")
        if context.config.create_tables:
            Base.metadata.create_all(bind=context.engine)
    else:
        logger.warning("Database connection failed - API may not function properly")

    sampler = MetricsSampler(
        context.metrics,
        uptime_interval=context.config.uptime_interval_seconds,
        system_interval=context.config.system_metrics_interval_seconds,
    )
    await sampler.start()

    yield

    # Shutdown
    logger.info("Shutting down Federal Funds Rate Insights API")
    await sampler.stop()
    context.fetcher.close()
    if context.owns_engine:
        context.engine.dispose()
        context.metrics.db_open_connections.set(0)
        logger.info("Disconnected from database")


def create_app(
    config: Optional[APIConfig] = None,
    engine: Optional[Engine] = None,
    fetcher: Optional[RateFetcher] = None,
) -> FastAPI:
    """
    Build the application and its service context.

    Args:
        config: Configuration; loaded from the environment when omitted
        engine: Database engine; created from `config.database_url` when omitted
        fetcher: Rate fetcher; created from `config` when omitted

    Returns:
        Configured FastAPI application
    """
    config = config or load_config()
    owns_engine = engine is None
    engine = engine or create_db_engine(config)

    metrics = ServiceMetrics()
    metrics.instrument_engine(engine)

    context = ServiceContext(
        config=config,
        engine=engine,
        session_factory=create_session_factory(engine),
        metrics=metrics,
        fetcher=fetcher or RateFetcher(config),
        owns_engine=owns_engine,
    )

    app = FastAPI(
        title=config.api_title,
        version=config.api_version,
        description=config.api_description,
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_exception_handler(InsightServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, server_error_handler)

    # Request logging and metrics middleware
    @app.middleware("http")
    async def logging_and_metrics_middleware(request: Request, call_next):
        """
        Middleware to log requests and collect Prometheus metrics.

        Metrics are labelled with the matched route template so dynamic
        path segments (e.g. an email) never become label values.
        """
        if request.url.path in UNINSTRUMENTED_PATHS:
            return await call_next(request)

        # Filled in by TemplatedRoute once a route matches
        request.state.route_path = None

        start_time = time.perf_counter()
        request_id = f"{int(time.time() * 1000)}-{id(request)}"

        logger.info(f"Request started: {request.method} {request.url.path} [{request_id}]")

        try:
            response = await call_next(request)
        except Exception:
            _record_request(request, 500, time.perf_counter() - start_time)
            raise

        duration = time.perf_counter() - start_time
        _record_request(request, response.status_code, duration)

        logger.info(
            f"Request completed: {request.method} {request.url.path} "
            f"[{request_id}] - {response.status_code} - {duration:.3f}s"
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{duration:.3f}s"

        return response

    def _record_request(request: Request, status_code: int, duration: float) -> None:
        path = route_template(request)
        # Unmatched paths are not instrumented
        if path is None:
            return
        metrics.record_http(path, request.method, status_code, duration)

    # Prometheus metrics endpoint
    @app.get("/metrics", include_in_schema=False)
    async def prometheus_metrics():
        """
        Prometheus metrics endpoint.

        Returns:
            Metrics from the service registry in text format
        """
        return Response(
            content=metrics.render(),
            media_type=CONTENT_TYPE_LATEST
        )

    # Include routers
    app.include_router(health.router)
    app.include_router(insights.router)
    app.include_router(users.router)

    return app


def main() -> None:
    """Run the service with uvicorn."""
    import uvicorn

    config = load_config()
    uvicorn.run(
        create_app(config),
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower()
    )


if __name__ == "__main__":
    main()
