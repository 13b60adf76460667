"""Execution tools and the direct webhook trigger."""

import json

import structlog

from n8n_manager.errors import ErrorKind, McpToolError
from n8n_manager.gateway import Execution, ExecutionListParams, N8nApiError

from .registry import ToolContext, ToolDefinition
from .schemas import GetExecutionParams, IdParams, ListExecutionsParams, TriggerWebhookParams

logger = structlog.get_logger(__name__)

CATEGORY = "Execution Management"

WEBHOOK_NOT_FOUND_MESSAGE = (
    "Webhook not found. Please ensure:\n"
    "1. The workflow has a Webhook trigger node\n"
    "2. The workflow is active\n"
    "3. The webhook URL is correct\n"
    "4. The HTTP method matches the webhook configuration"
)


def _workflow_label(execution: Execution) -> str:
    return execution.workflowName or execution.workflowId or "Unknown"


def _timestamp(value) -> str:
    return value.isoformat() if value is not None else "Unknown"


async def trigger_webhook(params: TriggerWebhookParams, ctx: ToolContext) -> str:
    """Call a workflow's webhook URL.

    A 404 from the webhook is reported as NotFound with configuration
    guidance instead of the raw response.
    """
    try:
        response = await ctx.client.trigger_webhook(params)
    except N8nApiError as exc:
        if exc.status_code == 404:
            raise McpToolError(
                ErrorKind.NOT_FOUND,
                WEBHOOK_NOT_FOUND_MESSAGE,
                data={"webhookUrl": params.webhookUrl, "httpMethod": params.httpMethod},
            ) from exc
        raise

    return f"Webhook triggered successfully!\nResponse: {json.dumps(response, indent=2, default=str)}"


async def get_execution(params: GetExecutionParams, ctx: ToolContext) -> str:
    execution = await ctx.client.get_execution(params.id, include_data=params.includeData)
    lines = [
        f"Execution ID: {execution.id}",
        f"Workflow: {_workflow_label(execution)}",
        f"Status: {execution.status or 'unknown'}",
        f"Mode: {execution.mode or 'unknown'}",
        f"Started: {_timestamp(execution.startedAt)}",
        f"Stopped: {_timestamp(execution.stoppedAt) if execution.stoppedAt else 'Still running'}",
        f"Finished: {'Yes' if execution.finished else 'No'}",
    ]
    if execution.retryOf:
        lines.append(f"Retry of: {execution.retryOf}")
    if params.includeData and execution.data:
        lines.append("")
        lines.append("Execution Data:")
        lines.append(json.dumps(execution.data, indent=2, default=str))
    return "\n".join(lines)


async def list_executions(params: ListExecutionsParams, ctx: ToolContext) -> str:
    page = await ctx.client.list_executions(ExecutionListParams.model_validate(params.model_dump()))

    lines = [f"Found {len(page.data)} executions"]
    if page.nextCursor:
        lines.append(f"More results available. Next cursor: {page.nextCursor}")
    lines.append("")
    lines.append("Executions:")
    for execution in page.data:
        line = (
            f"- ID: {execution.id} | Workflow: {_workflow_label(execution)}"
            f" | Status: {execution.status or 'unknown'}"
            f" | Started: {_timestamp(execution.startedAt)}"
        )
        if execution.duration_seconds is not None:
            line += f" | Duration: {execution.duration_seconds:.2f}s"
        lines.append(line)
    return "\n".join(lines)


async def delete_execution(params: IdParams, ctx: ToolContext) -> str:
    await ctx.client.delete_execution(params.id)
    return f"Successfully deleted execution with ID: {params.id}"


EXECUTION_TOOLS = [
    ToolDefinition(
        name="trigger_webhook",
        description=(
            "Trigger a workflow through its webhook URL (the workflow needs an active Webhook trigger node). "
            "Workflows cannot be executed directly through the n8n API."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "webhookUrl": {"type": "string", "description": "Full webhook URL from the n8n workflow"},
                "httpMethod": {
                    "type": "string",
                    "enum": ["GET", "POST", "PUT", "DELETE"],
                    "default": "POST",
                    "description": "HTTP method to use",
                },
                "data": {"type": "object", "description": "JSON body sent to the webhook"},
                "headers": {"type": "object", "description": "Additional HTTP headers"},
                "waitForResponse": {
                    "type": "boolean",
                    "description": "Wait for the workflow's response (60s timeout, otherwise 5s)",
                    "default": True,
                },
            },
            "required": ["webhookUrl"],
        },
        params_model=TriggerWebhookParams,
        handler=trigger_webhook,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="get_execution",
        description="Get details of a specific execution",
        input_schema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Execution ID"},
                "includeData": {"type": "boolean", "description": "Include execution data", "default": False},
            },
            "required": ["id"],
        },
        params_model=GetExecutionParams,
        handler=get_execution,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="list_executions",
        description=(
            "List workflow executions with optional filters (cursor-based pagination). "
            "Running executions cannot be filtered or stopped."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "limit": {"type": "integer", "default": 100, "minimum": 1, "maximum": 100},
                "cursor": {"type": "string", "description": "Pagination cursor from a previous response"},
                "workflowId": {"type": "string", "description": "Filter by workflow ID"},
                "projectId": {"type": "string", "description": "Filter by project (Enterprise only)"},
                "status": {
                    "type": "string",
                    "enum": ["success", "error", "waiting"],
                    "description": "Filter by execution status",
                },
                "includeData": {"type": "boolean", "description": "Include full execution data", "default": False},
            },
        },
        params_model=ListExecutionsParams,
        handler=list_executions,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="delete_execution",
        description="Delete an execution record",
        input_schema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Execution ID to delete"},
            },
            "required": ["id"],
        },
        params_model=IdParams,
        handler=delete_execution,
        category=CATEGORY,
    ),
]
