"""Tests for the per-client fixed-window limiter."""

import threading

import pytest
from starlette.requests import Request

from linkly.core.rate_limit import TokenBucketLimiter, get_real_client_ip


def test_allows_capacity_then_denies(rate_limiter):
    results = [rate_limiter.check_and_consume("alice") for _ in range(4)]

    assert results == [True, True, True, False]


def test_window_reset_restores_full_capacity(rate_limiter, monotonic):
    for _ in range(3):
        rate_limiter.check_and_consume("alice")
    assert rate_limiter.check_and_consume("alice") is False

    monotonic.advance(1.001)

    assert rate_limiter.check_and_consume("alice") is True
    assert rate_limiter.remaining("alice") == 2


def test_no_refill_before_window_has_fully_elapsed(rate_limiter, monotonic):
    for _ in range(3):
        rate_limiter.check_and_consume("alice")

    # Exactly one window later is not yet past it
    monotonic.advance(1.0)
    assert rate_limiter.check_and_consume("alice") is False

    monotonic.advance(0.5)
    assert rate_limiter.check_and_consume("alice") is True


def test_window_restarts_at_reset_time(rate_limiter, monotonic):
    rate_limiter.check_and_consume("alice")
    monotonic.advance(5.0)
    for _ in range(3):
        assert rate_limiter.check_and_consume("alice") is True
    assert rate_limiter.check_and_consume("alice") is False

    # New window began at the reset, not at the original start
    monotonic.advance(0.9)
    assert rate_limiter.check_and_consume("alice") is False


def test_clients_have_independent_buckets(rate_limiter):
    for _ in range(3):
        rate_limiter.check_and_consume("alice")

    assert rate_limiter.check_and_consume("alice") is False
    assert rate_limiter.check_and_consume("bob") is True
    assert len(rate_limiter) == 2


def test_remaining_does_not_consume(rate_limiter):
    assert rate_limiter.remaining("carol") == 3
    assert len(rate_limiter) == 0

    rate_limiter.check_and_consume("carol")
    assert rate_limiter.remaining("carol") == 2
    assert rate_limiter.remaining("carol") == 2


def test_reset_forgets_client(rate_limiter):
    for _ in range(3):
        rate_limiter.check_and_consume("alice")

    rate_limiter.reset("alice")

    assert rate_limiter.check_and_consume("alice") is True
    rate_limiter.reset("nobody")


@pytest.mark.parametrize("capacity, window", [(0, 1.0), (1, 0), (1, -5)])
def test_rejects_invalid_configuration(capacity, window):
    with pytest.raises(ValueError):
        TokenBucketLimiter(capacity=capacity, window_seconds=window)


def test_concurrent_consumers_never_exceed_capacity(monotonic):
    limiter = TokenBucketLimiter(capacity=100, window_seconds=60.0, clock=monotonic)
    allowed = []
    allowed_lock = threading.Lock()

    def worker():
        count = sum(1 for _ in range(50) if limiter.check_and_consume("shared"))
        with allowed_lock:
            allowed.append(count)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(allowed) == 100
    assert limiter.remaining("shared") == 0


def _request(headers: dict[str, str], client=("10.0.0.9", 1234)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in headers.items()],
        "client": client,
    }
    return Request(scope)


def test_client_ip_prefers_forwarded_for():
    request = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1", "X-Real-IP": "198.51.100.2"})

    assert get_real_client_ip(request) == "203.0.113.7"


def test_client_ip_falls_back_to_real_ip_then_peer():
    assert get_real_client_ip(_request({"X-Real-IP": "198.51.100.2"})) == "198.51.100.2"
    assert get_real_client_ip(_request({})) == "10.0.0.9"
