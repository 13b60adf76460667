"""Base exceptions and the fixed error taxonomy."""

from enum import Enum
from typing import Any

from n8n_manager.exceptions import N8nManagerError


class ErrorKind(str, Enum):
    """Kinds every failure is classified into before reaching the host."""

    INVALID_PARAMS = "InvalidParams"
    INTERNAL_ERROR = "InternalError"
    AUTHENTICATION_ERROR = "AuthenticationError"
    AUTHORIZATION_ERROR = "AuthorizationError"
    NOT_FOUND = "NotFound"
    RATE_LIMIT_ERROR = "RateLimitError"
    NETWORK_ERROR = "NetworkError"
    TIMEOUT_ERROR = "TimeoutError"
    API_ERROR = "ApiError"


class McpToolError(N8nManagerError):
    """Raised with an explicit error kind, e.g. by argument validation.

    Attributes:
        kind: Classified error kind, passed through unchanged.
        data: Optional opaque detail payload.
    """

    def __init__(self, kind: ErrorKind, message: str, data: Any | None = None):
        super().__init__(message=message, code=kind.value)
        self.kind = kind
        self.data = data


class ToolNotFoundError(McpToolError):
    """Raised when a tool call names a tool that is not registered."""

    def __init__(self, tool_name: str):
        super().__init__(ErrorKind.NOT_FOUND, f"Tool not found: {tool_name}")
        self.tool_name = tool_name
