"""Errors module - taxonomy, classification and redaction."""

from .exceptions import ErrorKind, N8nManagerError, McpToolError, ToolNotFoundError
from .schemas import ErrorEnvelope
from .classifier import classify_error, format_validation_error, sanitize_error_message


__all__ = [
    # Exceptions
    "ErrorKind",
    "N8nManagerError",
    "McpToolError",
    "ToolNotFoundError",
    # Schemas
    "ErrorEnvelope",
    # Classifier
    "classify_error",
    "format_validation_error",
    "sanitize_error_message",
]
