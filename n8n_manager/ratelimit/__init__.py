"""Rate limiting module - Token bucket implementation."""

from .limiter import (
    RateLimitConfig,
    RateLimitResult,
    TokenBucket,
    RateLimiter,
)
from .exceptions import RateLimitExceededError


__all__ = [
    "RateLimitConfig",
    "RateLimitResult",
    "TokenBucket",
    "RateLimiter",
    "RateLimitExceededError",
]
