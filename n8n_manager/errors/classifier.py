"""Map any caught failure to an ErrorEnvelope with a redacted message."""

import re

import httpx
import structlog
from pydantic import ValidationError

from n8n_manager.gateway.exceptions import (
    InvalidResponseError,
    N8nApiError,
    N8nConnectionError,
    N8nTimeoutError,
    N8nTransportError,
)

from .exceptions import ErrorKind, McpToolError
from .schemas import ErrorEnvelope

logger = structlog.get_logger(__name__)

REDACTED = "[REDACTED]"
DEFAULT_UPDATE_METHODS = ("PUT", "PATCH")
GENERIC_API_MESSAGE = "An error occurred while communicating with n8n"
UNEXPECTED_MESSAGE = "An unexpected error occurred"
SETTINGS_REQUIRED_MESSAGE = (
    "Workflow settings are required. The n8n API requires a settings object "
    "with executionOrder, saveData options, etc."
)

# a value runs to the next whitespace, quote or separator; the marker itself is never a value
_SECRET_VALUE = rf"(?!{re.escape(REDACTED)})[^\s\"',;&]+"
_REDACTIONS = [
    (re.compile(r"X-N8N-API-KEY:\s*\S+", re.IGNORECASE), f"X-N8N-API-KEY: {REDACTED}"),
    (re.compile(rf"api[_-]?key[\"\s:=]+[\"']?{_SECRET_VALUE}[\"']?", re.IGNORECASE), f"api_key: {REDACTED}"),
    (re.compile(rf"Bearer\s+{_SECRET_VALUE}", re.IGNORECASE), f"Bearer {REDACTED}"),
]


def sanitize_error_message(message: str) -> str:
    """Replace API keys and bearer tokens in a message with a fixed marker.

    Idempotent: the marker itself never matches a secret pattern.
    """
    for pattern, replacement in _REDACTIONS:
        message = pattern.sub(replacement, message)
    return message


def format_validation_error(exc: ValidationError) -> str:
    """Render every failing field of a pydantic ValidationError."""
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
        problems.append(f"{location}: {error.get('msg', 'invalid value')}")
    return "Invalid parameters: " + "; ".join(problems)


def _classify_http_status(
    status: int,
    method: str,
    url: str,
    reason: str,
    api_message: str | None,
    update_methods: tuple[str, str],
) -> tuple[ErrorKind, str]:
    if status == 400:
        if api_message and "settings" in api_message:
            return ErrorKind.INVALID_PARAMS, SETTINGS_REQUIRED_MESSAGE
        return ErrorKind.INVALID_PARAMS, api_message or "Bad request. The request parameters are invalid."
    if status == 401:
        return ErrorKind.AUTHENTICATION_ERROR, "Authentication failed. Please check your n8n API key."
    if status == 403:
        return ErrorKind.AUTHORIZATION_ERROR, "You do not have permission to perform this action."
    if status == 404:
        return ErrorKind.NOT_FOUND, api_message or "The requested resource was not found."
    if status == 405:
        primary, secondary = update_methods
        message = (
            "Method not allowed. The n8n instance does not support "
            f"{method or 'this method'} for this endpoint."
        )
        if "/workflows" in url and method == secondary:
            message += (
                f" Some n8n instances require {primary} method for workflow "
                f"updates instead of {secondary}."
            )
        return ErrorKind.API_ERROR, message
    if status == 429:
        return ErrorKind.RATE_LIMIT_ERROR, "Rate limit exceeded. Please try again later."
    if status in (500, 502, 503, 504):
        return ErrorKind.API_ERROR, f"n8n server error: {reason or 'Internal server error'}"
    return ErrorKind.API_ERROR, api_message or GENERIC_API_MESSAGE


def _classify(
    error: BaseException, update_methods: tuple[str, str]
) -> tuple[ErrorKind, str, object | None]:
    if isinstance(error, McpToolError):
        return error.kind, error.message, error.data

    if isinstance(error, ValidationError):
        return ErrorKind.INVALID_PARAMS, format_validation_error(error), None

    if isinstance(error, N8nApiError):
        kind, message = _classify_http_status(
            error.status_code,
            error.method,
            error.url,
            error.reason,
            error.api_message,
            update_methods,
        )
        return kind, message, error.payload

    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        api_message = None
        try:
            body = response.json()
            if isinstance(body, dict) and isinstance(body.get("message"), str):
                api_message = body["message"]
        except ValueError:
            pass
        kind, message = _classify_http_status(
            response.status_code,
            error.request.method,
            str(error.request.url),
            response.reason_phrase,
            api_message,
            update_methods,
        )
        return kind, message, None

    if isinstance(error, (N8nTimeoutError, httpx.TimeoutException)):
        return ErrorKind.TIMEOUT_ERROR, "Request timed out. Please try again.", None

    if isinstance(error, (N8nConnectionError, httpx.ConnectError)):
        return (
            ErrorKind.NETWORK_ERROR,
            "Unable to connect to n8n instance. Please check your API URL.",
            None,
        )

    if isinstance(error, N8nTransportError):
        return ErrorKind.API_ERROR, error.reason or GENERIC_API_MESSAGE, None

    if isinstance(error, InvalidResponseError):
        return ErrorKind.API_ERROR, error.message, None

    return ErrorKind.INTERNAL_ERROR, str(error) or UNEXPECTED_MESSAGE, None


def classify_error(
    error: BaseException,
    update_methods: tuple[str, str] = DEFAULT_UPDATE_METHODS,
) -> ErrorEnvelope:
    """Classify a caught failure into an ErrorEnvelope.

    Explicit kinds pass through, HTTP failures are mapped by status code,
    transport failures by cause, and anything else becomes InternalError.
    The resulting message is always redacted.

    Args:
        error: The caught exception.
        update_methods: Primary and secondary workflow update verbs, used to
            phrase the hint on a 405 from the secondary verb.

    Returns:
        ErrorEnvelope with kind, redacted message and optional detail.
    """
    kind, message, detail = _classify(error, update_methods)
    envelope = ErrorEnvelope(kind=kind, message=sanitize_error_message(message), detail=detail)

    try:
        logger.error(
            "tool_error",
            kind=kind.value,
            error_type=type(error).__name__,
            error=sanitize_error_message(str(error)),
        )
    except Exception:
        pass

    return envelope
