"""Tests for the resolution service."""

from datetime import timedelta

import pytest

from linkly.core.config import Settings
from linkly.core.exceptions import NotFoundError, RateLimitExceeded
from linkly.schemas.click import ClickDetails
from linkly.schemas.link import LinkCreate
from linkly.services.resolution import ResolutionService

from conftest import START


def test_visit_returns_url_and_records_click(service, store):
    link = store.create("https://example.com/target", alias="go")

    assert service.visit("client", "go") == "https://example.com/target"
    assert len(service.aggregator.clicks_for(link.id)) == 1


def test_visit_passes_overrides(service, store):
    link = store.create("https://example.com", alias="go")

    service.visit("client", "go", ClickDetails(country="BR"))

    assert service.aggregator.clicks_for(link.id)[0].country == "BR"


def test_click_credited_to_the_resolved_link(service, store, monkeypatch):
    old = store.create("https://example.com/old", alias="swap")
    resolve = store.resolve

    def resolve_then_replace(alias):
        # The alias moves to a new link right after it resolved
        link = resolve(alias)
        store.delete(link.id)
        store.create("https://example.com/new", alias=alias)
        return link

    monkeypatch.setattr(store, "resolve", resolve_then_replace)

    assert service.visit("client", "swap") == "https://example.com/old"
    assert len(service.aggregator.clicks_for(old.id)) == 1
    assert len(service.aggregator) == 1


def test_visit_miss_has_no_side_effects(service, store):
    store.create("https://example.com", alias="go")

    assert service.visit("client", "nope") is None
    assert len(service.aggregator) == 0


def test_visit_expired_or_inactive_link(service, store):
    store.create("https://example.com", alias="old", expires_at=START - timedelta(seconds=1))
    disabled = store.create("https://example.com", alias="off")
    store.set_active(disabled.id, False)

    assert service.visit("client", "old") is None
    assert service.visit("client", "off") is None
    assert len(service.aggregator) == 0


def test_visit_or_raise(service, store):
    store.create("https://example.com", alias="go")

    assert service.visit_or_raise("client", "go") == "https://example.com"
    with pytest.raises(NotFoundError):
        service.visit_or_raise("client", "nope")


def test_denied_visit_proceeds_when_not_enforced(service, store):
    store.create("https://example.com", alias="go")

    results = [service.visit("client", "go") for _ in range(5)]

    assert results == ["https://example.com"] * 5
    assert len(service.aggregator) == 5
    assert service.limiter.remaining("client") == 0


def test_denied_visit_raises_when_enforced(store, rate_limiter, aggregator):
    service = ResolutionService(store, rate_limiter, aggregator, enforce_rate_limit=True)
    store.create("https://example.com", alias="go")

    for _ in range(3):
        service.visit("client", "go")

    with pytest.raises(RateLimitExceeded) as exc_info:
        service.visit("client", "go")

    assert exc_info.value.client_key == "client"
    assert len(aggregator) == 3
    # Another client is unaffected
    assert service.visit("other", "go") == "https://example.com"


def test_enforced_denial_resets_after_window(store, rate_limiter, aggregator, monotonic):
    service = ResolutionService(store, rate_limiter, aggregator, enforce_rate_limit=True)
    store.create("https://example.com", alias="go")
    for _ in range(3):
        service.visit("client", "go")

    monotonic.advance(1.5)

    assert service.visit("client", "go") == "https://example.com"


def test_management_facade(service):
    link = service.create_link(LinkCreate(original_url="https://example.com", alias="m"))

    assert service.get_link(link.id) == link
    assert service.list_links() == [link]
    assert service.set_link_active(link.id, False).active is False
    assert service.delete_link(link.id) is True
    with pytest.raises(NotFoundError):
        service.get_link(link.id)


def test_summarize_unknown_link(service):
    with pytest.raises(NotFoundError):
        service.summarize("missing")


def test_summarize_after_visits(service, store):
    link = store.create("https://example.com", alias="go")
    service.visit("a", "go")
    service.visit("b", "go")

    summary = service.summarize(link.id)

    assert summary.total_clicks == 2
    assert summary.clicks_by_date[0].date == "2024-01-01"


def test_from_settings_builds_isolated_state():
    settings = Settings(rate_limit_capacity=2, rate_limit_window_seconds=30, alias_length=9)
    first = ResolutionService.from_settings(settings)
    second = ResolutionService.from_settings(settings)

    link = first.store.create("https://example.com")

    assert len(link.alias) == 9
    assert first.limiter.capacity == 2
    assert first.limiter.window_seconds == 30
    assert second.store.resolve(link.alias) is None
