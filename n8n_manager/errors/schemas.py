"""Pydantic schema for classified errors."""

from typing import Any

from pydantic import BaseModel, Field

from .exceptions import ErrorKind


class ErrorEnvelope(BaseModel):
    """A classified failure, ready to be rendered as a tool result.

    Attributes:
        kind: Error kind from the fixed taxonomy.
        message: Redacted, human-readable message.
        detail: Optional opaque payload (never rendered to the host).
    """

    kind: ErrorKind = Field(..., description="Classified error kind")
    message: str = Field(..., description="Redacted error message")
    detail: Any | None = Field(default=None, description="Opaque error detail")
