"""Health check endpoint."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from rate_insights.routing import TemplatedRoute

router = APIRouter(tags=["health"], route_class=TemplatedRoute)


@router.get("/health", response_class=PlainTextResponse)
def health_check() -> str:
    """Liveness probe; answers `ok` while the process is serving."""
    return "ok"
