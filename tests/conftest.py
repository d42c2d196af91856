"""Shared fixtures."""

import random
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from linkly.aggregators.click_aggregator import ClickAggregator, RandomClickSource
from linkly.core.config import Settings
from linkly.core.rate_limit import TokenBucketLimiter
from linkly.main import create_app
from linkly.schemas.click import ClickDetails, DeviceType
from linkly.services.link_store import LinkStore
from linkly.services.resolution import ResolutionService

START = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeMonotonic:
    """Monotonic seconds that only move when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FixedClickSource:
    """Click source returning the same visitor every time."""

    def details(self) -> ClickDetails:
        return ClickDetails(
            country="NL",
            city="Amsterdam",
            device=DeviceType.DESKTOP,
            referrer="direct",
            user_agent="pytest",
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def store(clock: FakeClock) -> LinkStore:
    return LinkStore(clock=clock)


@pytest.fixture
def rate_limiter(monotonic: FakeMonotonic) -> TokenBucketLimiter:
    return TokenBucketLimiter(capacity=3, window_seconds=1.0, clock=monotonic)


@pytest.fixture
def aggregator(store: LinkStore, clock: FakeClock) -> ClickAggregator:
    return ClickAggregator(store, source=FixedClickSource(), clock=clock)


@pytest.fixture
def service(
    store: LinkStore,
    rate_limiter: TokenBucketLimiter,
    aggregator: ClickAggregator,
) -> ResolutionService:
    return ResolutionService(store, rate_limiter, aggregator)


@pytest.fixture
def seeded_source() -> RandomClickSource:
    return RandomClickSource(random.Random(42))


@pytest.fixture
def settings() -> Settings:
    return Settings(rate_limit_capacity=100, rate_limit_window_seconds=60.0)


@pytest.fixture
def client(settings: Settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client
