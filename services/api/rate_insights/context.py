"""Per-application service context injected into request handlers."""

from dataclasses import dataclass

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from rate_insights.config import APIConfig
from rate_insights.fetcher import RateFetcher
from rate_insights.metrics import ServiceMetrics


@dataclass
class ServiceContext:
    """Resources owned by one application instance."""
    config: APIConfig
    engine: Engine
    session_factory: sessionmaker
    metrics: ServiceMetrics
    fetcher: RateFetcher
    # Engines passed in by the caller are left for the caller to dispose
    owns_engine: bool = True


def get_context(request: Request) -> ServiceContext:
    """Dependency returning the context of the running application."""
    return request.app.state.context
