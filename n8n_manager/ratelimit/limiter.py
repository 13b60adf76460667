"""Token bucket rate limiter with in-memory storage."""

import threading
import time
from typing import NamedTuple

from pydantic import BaseModel, Field

from n8n_manager.config import Settings


class RateLimitConfig(BaseModel):
    """Configuration for rate limiting.

    Attributes:
        max_requests: Requests allowed per window (also the burst size).
        window_seconds: Length of the refill window.
    """

    max_requests: int = Field(default=60, gt=0, description="Requests per window")
    window_seconds: float = Field(default=60.0, gt=0, description="Window length in seconds")

    @property
    def tokens_per_second(self) -> float:
        """Calculate token refill rate."""
        return self.max_requests / self.window_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimitConfig":
        return cls(
            max_requests=settings.RATE_LIMIT_MAX,
            window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
        )


class RateLimitResult(NamedTuple):
    """Result of a rate limit check.

    Attributes:
        allowed: Whether the request is allowed.
        limit: The rate limit.
        remaining: Remaining requests in window.
        retry_after: Seconds to wait if denied (0 if allowed).
    """

    allowed: bool
    limit: int
    remaining: int
    retry_after: float = 0.0


class TokenBucket:
    """Thread-safe token bucket rate limiter.

    Tokens are added at a constant rate up to ``max_requests``.
    Each request consumes one token. If no tokens available, request is denied.
    """

    def __init__(self, config: RateLimitConfig, clock=time.monotonic):
        self.config = config
        self._clock = clock
        self.tokens = float(config.max_requests)
        self.last_update = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        """Refill tokens based on elapsed time."""
        now = self._clock()
        elapsed = now - self.last_update
        self.tokens = min(
            self.config.max_requests,
            self.tokens + elapsed * self.config.tokens_per_second,
        )
        self.last_update = now

    def consume(self, tokens: int = 1) -> RateLimitResult:
        """Try to consume tokens from the bucket.

        Args:
            tokens: Number of tokens to consume.

        Returns:
            RateLimitResult with allow/deny status and metadata.
        """
        with self._lock:
            self._refill()

            if self.tokens >= tokens:
                self.tokens -= tokens
                return RateLimitResult(
                    allowed=True,
                    limit=self.config.max_requests,
                    remaining=int(self.tokens),
                )

            tokens_needed = tokens - self.tokens
            return RateLimitResult(
                allowed=False,
                limit=self.config.max_requests,
                remaining=0,
                retry_after=tokens_needed / self.config.tokens_per_second,
            )


class RateLimiter:
    """Multi-key rate limiter using token buckets.

    One bucket per key, created on first use with the limiter's config.
    """

    def __init__(self, config: RateLimitConfig | None = None, clock=time.monotonic):
        self.config = config or RateLimitConfig()
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def check(self, key: str) -> RateLimitResult:
        """Consume one request for ``key``.

        Args:
            key: Rate limit key, e.g. ``"tools/call"``.

        Returns:
            RateLimitResult with status and remaining budget.
        """
        with self._lock:
            if key not in self._buckets:
                self._buckets[key] = TokenBucket(self.config, clock=self._clock)
            bucket = self._buckets[key]
        return bucket.consume()
