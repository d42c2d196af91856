"""API v1 router aggregating all v1 endpoints."""

from fastapi import APIRouter
from slowapi import Limiter

from linkly.api.v1.links import build_router as build_links_router
from linkly.core.config import Settings


async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


def build_router(limiter: Limiter, settings: Settings) -> APIRouter:
    """Assemble the /api/v1 router for one application."""
    router = APIRouter(prefix="/api/v1")
    router.include_router(build_links_router(limiter, settings))
    router.add_api_route("/health", health_check, methods=["GET"])
    return router
