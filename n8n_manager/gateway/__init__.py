"""Gateway module - authenticated access to the n8n REST API."""

from .schemas import (
    Credential,
    Execution,
    ExecutionListParams,
    ExecutionStatus,
    HealthCheckResponse,
    PageParams,
    PaginatedPage,
    Tag,
    WebhookRequest,
    Workflow,
    WorkflowListParams,
    WorkflowNode,
    WorkflowSettings,
)
from .exceptions import (
    InvalidResponseError,
    N8nApiError,
    N8nConnectionError,
    N8nRequestError,
    N8nTimeoutError,
    N8nTransportError,
)
from .cache import ResponseCache
from .client import N8nApiClient, RequestOutcome


__all__ = [
    # Schemas
    "Credential",
    "Execution",
    "ExecutionListParams",
    "ExecutionStatus",
    "HealthCheckResponse",
    "PageParams",
    "PaginatedPage",
    "Tag",
    "WebhookRequest",
    "Workflow",
    "WorkflowListParams",
    "WorkflowNode",
    "WorkflowSettings",
    # Exceptions
    "InvalidResponseError",
    "N8nApiError",
    "N8nConnectionError",
    "N8nRequestError",
    "N8nTimeoutError",
    "N8nTransportError",
    # Client
    "ResponseCache",
    "N8nApiClient",
    "RequestOutcome",
]
