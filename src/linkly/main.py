"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded as SlowAPIRateLimitExceeded

from linkly.api.redirect import router as redirect_router
from linkly.api.v1.router import build_router as build_v1_router
from linkly.core.config import Settings, get_settings
from linkly.core.exceptions import LinklyError
from linkly.core.observability import RequestContextMiddleware, setup_observability
from linkly.core.rate_limit import create_limiter
from linkly.services.demo import seed_demo_links
from linkly.services.resolution import ResolutionService

logger = structlog.get_logger()


async def linkly_error_handler(request: Request, exc: LinklyError) -> JSONResponse:
    """Render core errors as JSON with their HTTP status."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


def create_app(
    settings: Settings | None = None,
    service: ResolutionService | None = None,
) -> FastAPI:
    """Build the application.

    Every application owns its own ResolutionService, so separate apps
    never share links, clicks or rate limit state, and each applies the
    management limits from its own settings.
    """
    settings = settings or get_settings()
    if service is None:
        service = ResolutionService.from_settings(settings)
        if settings.seed_demo_links:
            seed_demo_links(service.store, owner=settings.default_owner)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup and shutdown events."""
        logger.info("Starting Linkly", version=settings.app_version)
        yield
        logger.info(
            "Shutting down Linkly",
            links=len(service.store),
            clicks=len(service.aggregator),
        )

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="URL Shortener with Analytics",
        lifespan=lifespan,
    )
    app.state.service = service

    # Logging, tracing, metrics, Sentry
    setup_observability(app, settings)

    limiter = create_limiter()
    app.state.limiter = limiter
    app.add_exception_handler(SlowAPIRateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(LinklyError, linkly_error_handler)

    app.add_middleware(RequestContextMiddleware)

    app.include_router(build_v1_router(limiter, settings))

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        """Root endpoint."""
        return {"message": "Welcome to Linkly", "version": settings.app_version}

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    # Must come last: /{alias} matches any single path segment
    app.include_router(redirect_router)

    return app


app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    settings = get_settings()
    uvicorn.run("linkly.main:app", host=settings.host, port=settings.port)
