"""Pydantic schemas mirroring n8n public API records."""

from datetime import datetime
from enum import Enum
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

T = TypeVar("T")


class RemoteRecord(BaseModel):
    """Base for records returned by n8n.

    Unknown fields are kept so a fetched record can be sent back whole.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    @field_validator("id", "workflowId", mode="before", check_fields=False)
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        # n8n returns some identifiers as integers
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class Tag(RemoteRecord):
    """Workflow tag."""

    id: str | None = None
    name: str
    createdAt: str | None = None
    updatedAt: str | None = None
    usageCount: int | None = None


class WorkflowNode(RemoteRecord):
    """A single node in a workflow graph."""

    id: str | None = None
    name: str
    type: str
    typeVersion: float
    position: tuple[float, float]
    parameters: dict[str, Any] = Field(default_factory=dict)
    credentials: dict[str, Any] | None = None
    disabled: bool | None = None
    notes: str | None = None


class ConnectionTarget(BaseModel):
    """Endpoint of an edge between two nodes."""

    model_config = ConfigDict(extra="allow")

    node: str
    type: str
    index: int


# source node name -> connection type (e.g. "main") -> output index -> targets
WorkflowConnections = dict[str, dict[str, list[list[ConnectionTarget]]]]


class WorkflowSettings(BaseModel):
    """Workflow-level execution settings."""

    model_config = ConfigDict(extra="allow")

    executionOrder: Literal["v0", "v1"] = "v1"
    timezone: str | None = None
    saveDataErrorExecution: Literal["all", "none"] = "all"
    saveDataSuccessExecution: Literal["all", "none"] = "all"
    saveManualExecutions: bool = True
    saveExecutionProgress: bool = True
    executionTimeout: int | None = None
    errorWorkflow: str | None = None


class Workflow(RemoteRecord):
    """n8n workflow. ``id`` is absent only on create-time input."""

    id: str | None = None
    name: str
    nodes: list[WorkflowNode] = Field(default_factory=list)
    connections: dict[str, Any] = Field(default_factory=dict)
    active: bool = False
    settings: dict[str, Any] | None = None
    staticData: dict[str, Any] | None = None
    tags: list[Tag] | None = None
    createdAt: str | None = None
    updatedAt: str | None = None
    versionId: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_from_names(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [{"name": item} if isinstance(item, str) else item for item in value]
        return value

    @property
    def tag_names(self) -> list[str]:
        return [tag.name for tag in self.tags or []]


class ExecutionStatus(str, Enum):
    """Execution status filter values accepted by the list endpoint."""

    SUCCESS = "success"
    ERROR = "error"
    WAITING = "waiting"


class Execution(RemoteRecord):
    """Workflow execution record."""

    id: str
    finished: bool = False
    mode: str | None = None
    retryOf: str | None = None
    retrySuccessId: str | None = None
    status: str | None = None
    startedAt: datetime | None = None
    stoppedAt: datetime | None = None
    workflowId: str | None = None
    workflowName: str | None = None
    waitTill: datetime | None = None
    data: dict[str, Any] | None = None

    @field_validator("retryOf", "retrySuccessId", mode="before")
    @classmethod
    def _coerce_reference(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @property
    def duration_seconds(self) -> float | None:
        if self.startedAt is None or self.stoppedAt is None:
            return None
        return (self.stoppedAt - self.startedAt).total_seconds()


class Credential(RemoteRecord):
    """Stored credential. ``data`` is write-only on the n8n side."""

    id: str | None = None
    name: str
    type: str
    data: dict[str, Any] | None = None
    createdAt: str | None = None
    updatedAt: str | None = None


class PaginatedPage(BaseModel, Generic[T]):
    """One page of a cursor-paginated listing.

    Attributes:
        data: Records on this page.
        nextCursor: Opaque cursor for the next page; None on the last page.
    """

    data: list[T] = Field(default_factory=list)
    nextCursor: str | None = None


class WorkflowListParams(BaseModel):
    """Query for listing workflows. ``cursor`` is forwarded verbatim."""

    limit: int = Field(default=100, ge=1, le=100)
    cursor: str | None = None
    active: bool | None = None
    tags: list[str] | None = None
    projectId: str | None = None
    excludePinnedData: bool | None = None

    def to_query(self) -> dict[str, Any]:
        query = self.model_dump(exclude_none=True)
        if not query.get("cursor"):
            query.pop("cursor", None)
        if "tags" in query:
            query["tags"] = ",".join(query["tags"])
        return query


class ExecutionListParams(BaseModel):
    """Query for listing executions. ``cursor`` is forwarded verbatim."""

    limit: int = Field(default=100, ge=1, le=100)
    cursor: str | None = None
    workflowId: str | None = None
    projectId: str | None = None
    status: ExecutionStatus | None = None
    includeData: bool | None = None

    def to_query(self) -> dict[str, Any]:
        query = self.model_dump(mode="json", exclude_none=True)
        if not query.get("cursor"):
            query.pop("cursor", None)
        return query


class PageParams(BaseModel):
    """Plain limit/cursor query used by tags and credentials."""

    limit: int = Field(default=100, ge=1, le=100)
    cursor: str | None = None
    type: str | None = None

    def to_query(self) -> dict[str, Any]:
        query = self.model_dump(exclude_none=True)
        if not query.get("cursor"):
            query.pop("cursor", None)
        return query


class WebhookRequest(BaseModel):
    """Direct call to a workflow's webhook trigger URL."""

    webhookUrl: str
    httpMethod: Literal["GET", "POST", "PUT", "DELETE"] = "POST"
    data: dict[str, Any] | None = None
    headers: dict[str, str] | None = None
    waitForResponse: bool = True


class HealthCheckResponse(BaseModel):
    """Outcome of a connectivity check; never raised as an error."""

    status: Literal["ok", "error"]
    timestamp: str
    error: str | None = None
