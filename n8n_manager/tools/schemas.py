"""Pydantic models validating tool arguments."""

from typing import Any

import httpx
from pydantic import BaseModel, Field, field_validator

from n8n_manager.gateway.schemas import (
    ExecutionStatus,
    WebhookRequest,
    WorkflowConnections,
    WorkflowNode,
    WorkflowSettings,
)

MAX_LIMIT = 100


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class NoParams(BaseModel):
    """Tools that take no arguments."""


class IdParams(BaseModel):
    id: str = Field(..., min_length=1, description="Resource ID")


class PageArgs(BaseModel):
    """Shared pagination arguments. An empty cursor means the first page."""

    limit: int = Field(default=MAX_LIMIT, ge=1, le=MAX_LIMIT)
    cursor: str | None = None

    @field_validator("cursor", mode="before")
    @classmethod
    def _empty_cursor_is_first_page(cls, value: Any) -> Any:
        return _blank_to_none(value)


# Workflows


class NodeInput(WorkflowNode):
    """Node supplied by the caller; unlike fetched nodes it must carry an id."""

    id: str = Field(..., min_length=1)


class CreateWorkflowParams(BaseModel):
    name: str = Field(..., min_length=1, max_length=128)
    nodes: list[NodeInput]
    connections: WorkflowConnections
    settings: WorkflowSettings = Field(default_factory=WorkflowSettings)


class UpdateWorkflowParams(BaseModel):
    id: str = Field(..., min_length=1)
    name: str | None = Field(default=None, min_length=1, max_length=128)
    nodes: list[NodeInput] | None = None
    connections: WorkflowConnections | None = None
    active: bool | None = None
    settings: WorkflowSettings | None = None

    def changes(self) -> dict[str, Any]:
        """Caller-supplied fields, serialized for the API."""
        return self.model_dump(mode="json", exclude={"id"}, exclude_none=True)

    @property
    def is_full_replace(self) -> bool:
        return self.nodes is not None and self.connections is not None


class ListWorkflowsParams(PageArgs):
    active: bool | None = None
    tags: list[str] | None = None
    projectId: str | None = None
    excludePinnedData: bool = True
    instance: str | None = None


# Executions


class TriggerWebhookParams(WebhookRequest):
    @field_validator("webhookUrl")
    @classmethod
    def _check_webhook_url(cls, value: str) -> str:
        try:
            url = httpx.URL(value)
        except httpx.InvalidURL as exc:
            raise ValueError(f"Invalid webhook URL: {exc}") from exc
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError("Invalid webhook URL: expected an absolute http(s) URL")
        return value


class GetExecutionParams(IdParams):
    includeData: bool = False


class ListExecutionsParams(PageArgs):
    workflowId: str | None = None
    projectId: str | None = None
    status: ExecutionStatus | None = None
    includeData: bool = False


# Tags and credentials


class CreateTagParams(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)


class UpdateTagParams(IdParams):
    name: str = Field(..., min_length=1, max_length=50)


class ListCredentialsParams(PageArgs):
    type: str | None = None


# System


class HealthCheckParams(BaseModel):
    instance: str | None = None
