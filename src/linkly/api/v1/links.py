"""Link management and analytics endpoints."""

from datetime import date
from typing import Annotated

import structlog
from fastapi import APIRouter, Query, Request, status
from slowapi import Limiter

from linkly.api.redirect import RESERVED_ALIASES
from linkly.core.config import Settings
from linkly.core.deps import Service
from linkly.core.exceptions import ConflictError
from linkly.core.observability import record_link_operation
from linkly.schemas.analytics import AnalyticsSummary
from linkly.schemas.link import Link, LinkCreate, LinkListResponse, LinkUpdate

logger = structlog.get_logger()


async def create_link(
    request: Request,
    link_data: LinkCreate,
    service: Service,
) -> Link:
    """Create a new short link.

    If `alias` is provided it is used as is. Otherwise a random alias
    is generated. Aliases that collide with fixed routes are refused.
    """
    if link_data.alias in RESERVED_ALIASES:
        raise ConflictError(link_data.alias, f"Alias '{link_data.alias}' is reserved")

    link = service.create_link(link_data)
    record_link_operation("create")
    return link


async def list_links(request: Request, service: Service) -> LinkListResponse:
    """List all links, newest first."""
    links = service.list_links()
    return LinkListResponse(items=links, total=len(links))


async def get_link(request: Request, link_id: str, service: Service) -> Link:
    """Get a specific link by ID."""
    return service.get_link(link_id)


async def update_link(
    request: Request,
    link_id: str,
    link_data: LinkUpdate,
    service: Service,
) -> Link:
    """Enable or disable a link."""
    if link_data.active is None:
        return service.get_link(link_id)

    link = service.set_link_active(link_id, link_data.active)
    record_link_operation("update")
    return link


async def delete_link(request: Request, link_id: str, service: Service) -> None:
    """Delete a link. Deleting an unknown link succeeds."""
    if service.delete_link(link_id):
        record_link_operation("delete")


async def get_link_analytics(
    request: Request,
    link_id: str,
    service: Service,
    start_date: Annotated[date | None, Query(description="First day to include (UTC)")] = None,
    end_date: Annotated[date | None, Query(description="Last day to include (UTC)")] = None,
) -> AnalyticsSummary:
    """Get click analytics for a link."""
    summary = service.summarize(link_id, start=start_date, end=end_date)
    logger.debug("Summary fetched", link_id=link_id, total_clicks=summary.total_clicks)
    return summary


def build_router(limiter: Limiter, settings: Settings) -> APIRouter:
    """Wire the link endpoints to an application's limiter and limits."""
    router = APIRouter(prefix="/links", tags=["links"])
    api_limit = limiter.limit(settings.management_rate_limit)

    router.add_api_route(
        "",
        limiter.limit(settings.create_link_rate_limit)(create_link),
        methods=["POST"],
        response_model=Link,
        status_code=status.HTTP_201_CREATED,
    )
    router.add_api_route(
        "", api_limit(list_links), methods=["GET"], response_model=LinkListResponse
    )
    router.add_api_route("/{link_id}", api_limit(get_link), methods=["GET"], response_model=Link)
    router.add_api_route(
        "/{link_id}", api_limit(update_link), methods=["PATCH"], response_model=Link
    )
    router.add_api_route(
        "/{link_id}",
        api_limit(delete_link),
        methods=["DELETE"],
        status_code=status.HTTP_204_NO_CONTENT,
    )
    router.add_api_route(
        "/{link_id}/analytics",
        api_limit(get_link_analytics),
        methods=["GET"],
        response_model=AnalyticsSummary,
    )
    return router
