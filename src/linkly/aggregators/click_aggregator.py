"""Click log and on-demand analytics aggregation."""

import random
import threading
import uuid
from collections import Counter
from datetime import date
from typing import Iterable, Protocol

import structlog

from linkly.core.clock import Clock, as_utc, utc_now
from linkly.core.observability import record_click_recorded
from linkly.schemas.analytics import (
    AnalyticsSummary,
    CountryClicks,
    DateClicks,
    DeviceClicks,
    ReferrerClicks,
)
from linkly.schemas.click import ClickDetails, ClickEvent, DeviceType
from linkly.schemas.link import Link
from linkly.services.link_store import LinkStore

logger = structlog.get_logger()

DEMO_COUNTRIES = ["USA", "UK", "DE", "FR", "JP", "BR"]
DEMO_DEVICES = [DeviceType.DESKTOP, DeviceType.MOBILE, DeviceType.TABLET]
DEMO_REFERRERS = ["google.com", "twitter.com", "direct", "linkedin.com"]
DEMO_CITY = "Unknown"
DEMO_USER_AGENT = "Mozilla/5.0..."


class ClickSource(Protocol):
    """Supplies click metadata the caller did not provide."""

    def details(self) -> ClickDetails:
        """Return a fully populated ClickDetails."""
        ...


class RandomClickSource:
    """Simulated visitors drawn from a fixed demo distribution."""

    def __init__(self, rng: random.Random | None = None):
        self._rng = rng or random.Random()

    def details(self) -> ClickDetails:
        return ClickDetails(
            country=self._rng.choice(DEMO_COUNTRIES),
            city=DEMO_CITY,
            device=self._rng.choice(DEMO_DEVICES),
            referrer=self._rng.choice(DEMO_REFERRERS),
            user_agent=DEMO_USER_AGENT,
        )


def _percentage(count: int, total: int) -> float:
    return round(count / total * 100, 1) if total > 0 else 0.0


def _ranked(counts: Counter) -> list[tuple[str, int]]:
    """Breakdown entries by descending count, ties by key."""
    return sorted(counts.items(), key=lambda item: (-item[1], item[0]))


class ClickAggregator:
    """Append-only click log with summaries computed at query time.

    Summaries are never cached; each call recomputes from a snapshot of
    the log taken under the append lock.

    Usage:
        aggregator = ClickAggregator(store)
        aggregator.record_click("react-docs")
        summary = aggregator.summarize(link.id)
    """

    def __init__(
        self,
        store: LinkStore,
        source: ClickSource | None = None,
        clock: Clock = utc_now,
    ):
        """Initialize the aggregator.

        Args:
            store: Link store used to look up aliases (read only).
            source: Fills in click metadata missing from overrides.
            clock: Source of the current UTC time.
        """
        self._store = store
        self._source = source or RandomClickSource()
        self._clock = clock
        self._events: list[ClickEvent] = []
        self._lock = threading.Lock()

    def record_click(self, alias: str, overrides: ClickDetails | None = None) -> ClickEvent | None:
        """Append a click for the link holding ``alias``.

        Unknown aliases are ignored.

        Returns:
            The recorded event, or None if no link has the alias.
        """
        link = self._store.get_by_alias(alias)
        if link is None:
            logger.debug("Click ignored - unknown alias", alias=alias)
            return None
        return self.record(link, overrides)

    def record(self, link: Link, overrides: ClickDetails | None = None) -> ClickEvent:
        """Append a click for an already resolved link.

        Override fields that are None or empty fall back to the click source.
        """
        given = {}
        if overrides is not None:
            given = {key: value for key, value in overrides.model_dump().items() if value}
        fields = {**self._source.details().model_dump(), **given}

        event = ClickEvent(
            id=uuid.uuid4().hex,
            link_id=link.id,
            timestamp=self._clock(),
            **fields,
        )

        with self._lock:
            self._events.append(event)

        record_click_recorded()
        logger.debug("Click recorded", link_id=link.id, alias=link.alias, device=event.device.value)
        return event

    def clicks_for(self, link_id: str) -> list[ClickEvent]:
        """Clicks on a link in the order they were recorded."""
        with self._lock:
            snapshot = list(self._events)
        return [event for event in snapshot if event.link_id == link_id]

    def summarize(
        self,
        link_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> AnalyticsSummary:
        """Compute summary statistics for a link.

        Args:
            link_id: Link to summarize.
            start: First UTC day to include (inclusive).
            end: Last UTC day to include (inclusive).
        """
        events = self.clicks_for(link_id)
        if start is not None or end is not None:
            events = [
                event for event in events
                if _in_range(as_utc(event.timestamp).date(), start, end)
            ]

        return summarize_events(link_id, events)

    def __len__(self) -> int:
        return len(self._events)


def _in_range(day: date, start: date | None, end: date | None) -> bool:
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def summarize_events(link_id: str, events: Iterable[ClickEvent]) -> AnalyticsSummary:
    """Aggregate click events into an AnalyticsSummary.

    The result does not depend on the order of ``events``.
    """
    by_date: Counter = Counter()
    by_device: Counter = Counter()
    by_country: Counter = Counter()
    by_referrer: Counter = Counter()
    total = 0

    for event in events:
        total += 1
        by_date[as_utc(event.timestamp).date().isoformat()] += 1
        by_device[event.device.value] += 1
        by_country[event.country] += 1
        by_referrer[event.referrer] += 1

    return AnalyticsSummary(
        link_id=link_id,
        total_clicks=total,
        clicks_by_date=[
            DateClicks(date=day, clicks=clicks) for day, clicks in sorted(by_date.items())
        ],
        clicks_by_device=[
            DeviceClicks(name=name, value=value) for name, value in _ranked(by_device)
        ],
        clicks_by_country=[
            CountryClicks(country=country, clicks=clicks, percentage=_percentage(clicks, total))
            for country, clicks in _ranked(by_country)
        ],
        clicks_by_referrer=[
            ReferrerClicks(referrer=referrer, clicks=clicks, percentage=_percentage(clicks, total))
            for referrer, clicks in _ranked(by_referrer)
        ],
    )
