"""Exceptions raised by the n8n API gateway."""

from typing import Any

from n8n_manager.exceptions import N8nManagerError

TRANSIENT_STATUS_CODES = frozenset({429, 503, 504})


class N8nRequestError(N8nManagerError):
    """Base exception for failed calls to the n8n instance or a webhook.

    Attributes:
        method: HTTP method of the failed request.
        url: Target URL of the failed request.
        status_code: HTTP status if a response was received, else None.
    """

    status_code: int | None = None

    def __init__(self, message: str, method: str, url: str, code: str | None = None):
        super().__init__(message=message, code=code)
        self.method = method.upper()
        self.url = url

    @property
    def is_transient(self) -> bool:
        """Whether resending the same request may succeed."""
        return False


class N8nApiError(N8nRequestError):
    """Raised when the remote side answers with a non-2xx status.

    Attributes:
        status_code: HTTP status code.
        reason: HTTP reason phrase.
        payload: Decoded JSON body, or raw text when the body is not JSON.
    """

    def __init__(
        self,
        method: str,
        url: str,
        status_code: int,
        reason: str = "",
        payload: Any = None,
    ):
        self.status_code = status_code
        self.reason = reason
        self.payload = payload
        detail = self.api_message or reason
        super().__init__(
            message=f"{method.upper()} {url} returned {status_code}: {detail}",
            method=method,
            url=url,
            code="N8N_API_ERROR",
        )

    @property
    def api_message(self) -> str | None:
        """Message supplied by the remote payload, if any."""
        if isinstance(self.payload, dict):
            message = self.payload.get("message")
            if isinstance(message, str) and message:
                return message
        if isinstance(self.payload, str) and self.payload.strip():
            return self.payload.strip()[:200]
        return None

    @property
    def is_transient(self) -> bool:
        return self.status_code in TRANSIENT_STATUS_CODES


class N8nTransportError(N8nRequestError):
    """Raised when no HTTP response was received at all.

    Attributes:
        reason: Description of the transport failure.
    """

    def __init__(self, method: str, url: str, reason: str, code: str = "N8N_TRANSPORT_ERROR"):
        super().__init__(
            message=f"{method.upper()} {url} failed: {reason}",
            method=method,
            url=url,
            code=code,
        )
        self.reason = reason

    @property
    def is_transient(self) -> bool:
        return True


class N8nConnectionError(N8nTransportError):
    """Raised when the host cannot be resolved or refuses the connection."""

    def __init__(self, method: str, url: str, reason: str = "Connection failed"):
        super().__init__(method, url, reason, code="N8N_UNAVAILABLE")


class N8nTimeoutError(N8nTransportError):
    """Raised when the remote side does not respond in time.

    Attributes:
        timeout_seconds: Timeout that was exceeded.
    """

    def __init__(self, method: str, url: str, timeout_seconds: float | None):
        reason = f"timed out after {timeout_seconds}s" if timeout_seconds else "timed out"
        super().__init__(method, url, reason, code="N8N_TIMEOUT")
        self.timeout_seconds = timeout_seconds


class InvalidResponseError(N8nRequestError):
    """Raised when a 2xx response cannot be interpreted."""

    def __init__(self, method: str, url: str, detail: str):
        super().__init__(
            message=f"Unexpected response from {method.upper()} {url}: {detail}",
            method=method,
            url=url,
            code="N8N_INVALID_RESPONSE",
        )
        self.detail = detail
