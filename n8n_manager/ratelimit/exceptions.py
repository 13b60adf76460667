"""Rate limit exceptions."""

from n8n_manager.errors.exceptions import ErrorKind, McpToolError


class RateLimitExceededError(McpToolError):
    """Raised when the local request budget is exhausted.

    Attributes:
        limit: The rate limit that was exceeded.
        retry_after: Seconds until request can be retried.
    """

    def __init__(self, limit: int, window_seconds: float, retry_after: float):
        super().__init__(
            ErrorKind.RATE_LIMIT_ERROR,
            f"Rate limit exceeded ({limit} requests per {window_seconds:g}s). "
            f"Retry after {retry_after:.1f}s",
        )
        self.limit = limit
        self.retry_after = retry_after
