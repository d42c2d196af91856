"""Rate limiting for the redirect hot path and the management API.

Redirects go through ``TokenBucketLimiter``, an in-process per-client
bucket that is refilled in full once its window has elapsed. Management
endpoints are throttled with slowapi.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Callable

import structlog
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

logger = structlog.get_logger()

DEFAULT_CAPACITY = 100
DEFAULT_WINDOW_SECONDS = 60.0


@dataclass
class TokenBucket:
    """Rate limiting state for a single client key."""

    client_key: str
    tokens_remaining: int
    window_started_at: float
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


class TokenBucketLimiter:
    """Per-client admission control with a fixed refill window.

    Each client starts with ``capacity`` tokens. Every admitted request
    takes one token. Tokens are not trickled back: once more than
    ``window_seconds`` have passed since the window started, the bucket
    is refilled completely and a new window begins.

    A denial never blocks. Callers decide what to do with it.

    Usage:
        limiter = TokenBucketLimiter(capacity=100, window_seconds=60)
        if not limiter.check_and_consume("203.0.113.7"):
            ...
    """

    def __init__(
        self,
        capacity: int = DEFAULT_CAPACITY,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the limiter.

        Args:
            capacity: Tokens available to a client per window.
            window_seconds: Length of a window in seconds.
            clock: Monotonic time source in seconds.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.capacity = capacity
        self.window_seconds = window_seconds
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}
        # Guards the bucket registry only; consuming uses the bucket's own lock
        self._registry_lock = threading.Lock()

    def _get_bucket(self, client_key: str) -> TokenBucket:
        bucket = self._buckets.get(client_key)
        if bucket is not None:
            return bucket
        with self._registry_lock:
            bucket = self._buckets.get(client_key)
            if bucket is None:
                bucket = TokenBucket(
                    client_key=client_key,
                    tokens_remaining=self.capacity,
                    window_started_at=self._clock(),
                )
                self._buckets[client_key] = bucket
                logger.debug("Rate limit bucket created", client_key=client_key)
            return bucket

    def _refill_if_due(self, bucket: TokenBucket, now: float) -> None:
        if now - bucket.window_started_at > self.window_seconds:
            bucket.tokens_remaining = self.capacity
            bucket.window_started_at = now

    def check_and_consume(self, client_key: str) -> bool:
        """Take one token for the client if any are left.

        Returns:
            True if the request is allowed, False if the client is exhausted.
        """
        bucket = self._get_bucket(client_key)
        with bucket.lock:
            self._refill_if_due(bucket, self._clock())
            if bucket.tokens_remaining > 0:
                bucket.tokens_remaining -= 1
                return True
            return False

    def remaining(self, client_key: str) -> int:
        """Tokens the client could still use right now, without consuming any."""
        bucket = self._buckets.get(client_key)
        if bucket is None:
            return self.capacity
        with bucket.lock:
            if self._clock() - bucket.window_started_at > self.window_seconds:
                return self.capacity
            return bucket.tokens_remaining

    def reset(self, client_key: str) -> None:
        """Forget the bucket of a client."""
        with self._registry_lock:
            self._buckets.pop(client_key, None)

    def __len__(self) -> int:
        return len(self._buckets)


def get_real_client_ip(request: Request) -> str:
    """Get the real client IP address, handling proxies.

    Checks X-Forwarded-For and X-Real-IP headers before falling back
    to the direct client address.
    """
    # X-Forwarded-For is "client, proxy1, proxy2"
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    return get_remote_address(request)


def create_limiter() -> Limiter:
    """Build a slowapi limiter with its own in-memory counters.

    Each application gets one, so limits never carry over between apps.
    """
    return Limiter(
        key_func=get_real_client_ip,
        storage_uri="memory://",
        strategy="fixed-window",
    )
