"""Resolution service: the "visit a short link" hot path plus link management."""

from datetime import date

import structlog

from linkly.aggregators.click_aggregator import ClickAggregator, ClickSource
from linkly.core.config import Settings
from linkly.core.exceptions import NotFoundError, RateLimitExceeded
from linkly.core.observability import record_rate_limit_denial
from linkly.core.rate_limit import TokenBucketLimiter
from linkly.schemas.analytics import AnalyticsSummary
from linkly.schemas.click import ClickDetails
from linkly.schemas.link import Link, LinkCreate
from linkly.services.link_store import LinkStore

logger = structlog.get_logger()


class ResolutionService:
    """Composes the rate limiter, link store and click aggregator.

    With ``enforce_rate_limit`` off, a client over its limit is logged
    and still served. With it on, the visit fails with RateLimitExceeded
    before anything is looked up or recorded.
    """

    def __init__(
        self,
        store: LinkStore,
        limiter: TokenBucketLimiter,
        aggregator: ClickAggregator,
        enforce_rate_limit: bool = False,
    ):
        self.store = store
        self.limiter = limiter
        self.aggregator = aggregator
        self.enforce_rate_limit = enforce_rate_limit

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        source: ClickSource | None = None,
    ) -> "ResolutionService":
        """Build a service with fresh, empty state configured from settings."""
        store = LinkStore(
            alias_length=settings.alias_length,
            alias_max_attempts=settings.alias_max_attempts,
            default_owner=settings.default_owner,
        )
        limiter = TokenBucketLimiter(
            capacity=settings.rate_limit_capacity,
            window_seconds=settings.rate_limit_window_seconds,
        )
        aggregator = ClickAggregator(store, source=source)
        return cls(store, limiter, aggregator, enforce_rate_limit=settings.enforce_rate_limit)

    def _admit(self, client_key: str) -> None:
        if self.limiter.check_and_consume(client_key):
            return

        record_rate_limit_denial(self.enforce_rate_limit)
        logger.warning(
            "Rate limit exceeded",
            client_key=client_key,
            enforced=self.enforce_rate_limit,
        )
        if self.enforce_rate_limit:
            raise RateLimitExceeded(client_key)

    def visit(
        self,
        client_key: str,
        alias: str,
        overrides: ClickDetails | None = None,
    ) -> str | None:
        """Resolve an alias for a client and record the click.

        Returns:
            The original URL, or None if the alias does not resolve.
            Nothing is recorded for a miss.

        Raises:
            RateLimitExceeded: The client is over its limit and
                enforcement is on.
        """
        self._admit(client_key)

        link = self.store.resolve(alias)
        if link is None:
            return None

        self.aggregator.record(link, overrides)
        return link.original_url

    def visit_or_raise(
        self,
        client_key: str,
        alias: str,
        overrides: ClickDetails | None = None,
    ) -> str:
        """Like visit, but a miss raises NotFoundError."""
        original_url = self.visit(client_key, alias, overrides)
        if original_url is None:
            raise NotFoundError("Link not found")
        return original_url

    # Link management

    def create_link(self, link_data: LinkCreate, owner: str | None = None) -> Link:
        return self.store.create(
            original_url=link_data.original_url,
            alias=link_data.alias,
            expires_at=link_data.expires_at,
            owner=owner,
        )

    def list_links(self) -> list[Link]:
        return self.store.list_all()

    def get_link(self, link_id: str) -> Link:
        link = self.store.get(link_id)
        if link is None:
            raise NotFoundError("Link not found")
        return link

    def set_link_active(self, link_id: str, active: bool) -> Link:
        return self.store.set_active(link_id, active)

    def delete_link(self, link_id: str) -> bool:
        return self.store.delete(link_id)

    def summarize(
        self,
        link_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> AnalyticsSummary:
        """Analytics for a stored link.

        Raises:
            NotFoundError: No link has that id.
        """
        self.get_link(link_id)
        return self.aggregator.summarize(link_id, start=start, end=end)
