"""Main FastAPI application for the Anchor scheduler."""
from fastapi import FastAPI, Request

from anchor.api.routes.blocks import router as blocks_router
from anchor.api.routes.calendar import router as calendar_router
from anchor.api.routes.days import router as days_router
from anchor.api.routes.jobs import router as jobs_router
from anchor.api.routes.stats import router as stats_router
from anchor.core.config import settings
from anchor.core.logging import configure_logging
from anchor.core.middleware import RequestIDMiddleware
from anchor.db.session import create_tables
from anchor.observability.client import init_opik
from anchor.observability.tracing import trace

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestIDMiddleware)
app.include_router(blocks_router)
app.include_router(days_router)
app.include_router(stats_router)
app.include_router(calendar_router)
app.include_router(jobs_router)


@app.on_event("startup")
async def startup() -> None:
    """Initialize observability and, when configured, the schema."""
    init_opik()
    if settings.auto_create_tables:
        create_tables()


@app.get("/health", tags=["health"], summary="Readiness probe")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can probe the API."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
