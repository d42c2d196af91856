"""Redirect endpoint for short links."""

import structlog
from fastapi import APIRouter, Request, status
from fastapi.responses import RedirectResponse

from linkly.core.deps import Service
from linkly.core.exceptions import NotFoundError, RateLimitExceeded
from linkly.core.observability import record_redirect
from linkly.core.rate_limit import get_real_client_ip
from linkly.schemas.click import ClickDetails, DeviceType

logger = structlog.get_logger()

router = APIRouter(tags=["redirect"])

UNKNOWN = "Unknown"
DIRECT_REFERRER = "direct"

# Single-segment paths served by fixed routes, which /{alias} never reaches
RESERVED_ALIASES = frozenset({"health", "metrics", "docs", "redoc", "openapi.json"})


def guess_device(user_agent: str | None) -> DeviceType:
    """Classify a User-Agent string into a device category."""
    if not user_agent:
        return DeviceType.OTHER

    ua = user_agent.lower()
    if "ipad" in ua or "tablet" in ua:
        return DeviceType.TABLET
    # Android tablets leave "Mobile" out of their UA
    if "android" in ua and "mobi" not in ua:
        return DeviceType.TABLET
    if "mobi" in ua or "iphone" in ua:
        return DeviceType.MOBILE
    if any(marker in ua for marker in ("windows", "macintosh", "x11", "linux", "cros")):
        return DeviceType.DESKTOP
    return DeviceType.OTHER


def click_details_from_request(request: Request) -> ClickDetails:
    """Build click metadata from request headers.

    Country comes from the CF-IPCountry header set by Cloudflare when
    the service runs behind it.
    """
    user_agent = request.headers.get("User-Agent")
    return ClickDetails(
        country=request.headers.get("CF-IPCountry") or UNKNOWN,
        city=UNKNOWN,
        device=guess_device(user_agent),
        referrer=request.headers.get("Referer") or DIRECT_REFERRER,
        user_agent=user_agent or "",
    )


@router.get("/{alias}")
async def redirect_to_original(
    request: Request,
    alias: str,
    service: Service,
) -> RedirectResponse:
    """Redirect an alias to its original URL.

    Answers 404 for unknown, disabled and expired links, and 429 when
    the client is over its limit and enforcement is on.
    """
    client_key = get_real_client_ip(request)

    try:
        original_url = service.visit_or_raise(
            client_key,
            alias,
            click_details_from_request(request),
        )
    except NotFoundError:
        logger.info("Redirect failed - link not found", alias=alias)
        record_redirect(status.HTTP_404_NOT_FOUND)
        raise
    except RateLimitExceeded:
        record_redirect(status.HTTP_429_TOO_MANY_REQUESTS)
        raise

    logger.info("Redirect", alias=alias, client_key=client_key)
    record_redirect(status.HTTP_302_FOUND)

    return RedirectResponse(url=original_url, status_code=status.HTTP_302_FOUND)
