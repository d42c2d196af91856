"""Demo links for a fresh dashboard."""

from datetime import timedelta

import structlog

from linkly.core.clock import utc_now
from linkly.core.exceptions import ConflictError
from linkly.schemas.link import Link
from linkly.services.link_store import DEFAULT_OWNER, LinkStore

logger = structlog.get_logger()

DEMO_LINKS = [
    ("1", "https://react.dev/reference/react", "react-docs", 10),
    ("2", "https://tailwindcss.com/docs", "tailwind-cheat", 5),
]


def seed_demo_links(store: LinkStore, owner: str = DEFAULT_OWNER) -> list[Link]:
    """Add the demo links to a store, skipping any whose id or alias is taken."""
    now = utc_now()
    added = []
    for link_id, url, alias, age_days in DEMO_LINKS:
        link = Link(
            id=link_id,
            original_url=url,
            alias=alias,
            created_at=now - timedelta(days=age_days),
            active=True,
            owner=owner,
        )
        try:
            added.append(store.add(link))
        except ConflictError:
            logger.debug("Demo link already present", alias=alias)

    logger.info("Demo links seeded", count=len(added))
    return added
