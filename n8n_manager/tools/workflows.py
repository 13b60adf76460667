"""Workflow management tools."""

import json
from typing import Any

import structlog

from n8n_manager.gateway import N8nRequestError, Workflow, WorkflowListParams, WorkflowSettings

from .registry import ToolContext, ToolDefinition
from .schemas import CreateWorkflowParams, IdParams, ListWorkflowsParams, NoParams, UpdateWorkflowParams

logger = structlog.get_logger(__name__)

CATEGORY = "Workflow Management"

_SETTINGS_SCHEMA: dict[str, Any] = {
    "type": "object",
    "description": "Workflow settings (required by the n8n API)",
    "properties": {
        "executionOrder": {"type": "string", "enum": ["v0", "v1"], "default": "v1"},
        "timezone": {"type": "string"},
        "saveDataErrorExecution": {"type": "string", "enum": ["all", "none"], "default": "all"},
        "saveDataSuccessExecution": {"type": "string", "enum": ["all", "none"], "default": "all"},
        "saveManualExecutions": {"type": "boolean", "default": True},
        "saveExecutionProgress": {"type": "boolean", "default": True},
        "executionTimeout": {"type": "integer"},
        "errorWorkflow": {"type": "string"},
    },
}

_NODE_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string"},
        "name": {"type": "string"},
        "type": {"type": "string"},
        "typeVersion": {"type": "number"},
        "position": {"type": "array", "items": {"type": "number"}, "minItems": 2, "maxItems": 2},
        "parameters": {"type": "object"},
        "credentials": {"type": "object"},
        "disabled": {"type": "boolean"},
        "notes": {"type": "string"},
    },
    "required": ["id", "name", "type", "typeVersion", "position"],
}

_ID_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "Workflow ID"},
    },
    "required": ["id"],
}


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def _tags_text(workflow: Workflow) -> str:
    return ", ".join(workflow.tag_names) or "None"


def _updated_text(workflow: Workflow) -> str:
    return f'Updated workflow "{workflow.name}" (ID: {workflow.id})\nActive: {_yes_no(workflow.active)}'


async def create_workflow(params: CreateWorkflowParams, ctx: ToolContext) -> str:
    workflow = await ctx.client.create_workflow(params.model_dump(mode="json", exclude_none=True))
    return (
        f'Created workflow "{workflow.name}" with ID: {workflow.id}\n'
        f"Active: {_yes_no(workflow.active)}\n"
        f"Nodes: {len(workflow.nodes)}\n"
        f"Tags: {_tags_text(workflow)}"
    )


async def get_workflow(params: IdParams, ctx: ToolContext) -> str:
    workflow = await ctx.client.get_workflow(params.id)
    return (
        f"Workflow: {workflow.name} (ID: {workflow.id})\n"
        f"Active: {_yes_no(workflow.active)}\n"
        f"Nodes: {len(workflow.nodes)}\n"
        f"Created: {workflow.createdAt or 'Unknown'}\n"
        f"Updated: {workflow.updatedAt or 'Unknown'}\n"
        f"Tags: {_tags_text(workflow)}\n"
        f"Settings: {json.dumps(workflow.settings or {}, indent=2)}"
    )


async def update_workflow(params: UpdateWorkflowParams, ctx: ToolContext) -> str:
    """Update a workflow, merging partial changes over the stored record.

    When nodes or connections are missing the current workflow is fetched
    and the caller's fields are laid over it. If that fetch fails only the
    caller-supplied fields are sent.
    """
    changes = params.changes()
    if params.is_full_replace:
        workflow = await ctx.client.update_workflow(params.id, changes)
        return _updated_text(workflow)

    try:
        existing = await ctx.client.get_workflow(params.id)
    except N8nRequestError as exc:
        logger.warning("update_merge_fetch_failed", workflow_id=params.id, error=exc.message)
        changes.setdefault("settings", WorkflowSettings().model_dump(mode="json", exclude_none=True))
        workflow = await ctx.client.update_workflow(params.id, changes)
        return _updated_text(workflow)

    merged = existing.model_dump(mode="json", exclude_none=True)
    merged.update(changes)
    workflow = await ctx.client.update_workflow(params.id, merged)
    return _updated_text(workflow)


async def delete_workflow(params: IdParams, ctx: ToolContext) -> str:
    await ctx.client.delete_workflow(params.id)
    return f"Successfully deleted workflow with ID: {params.id}"


async def list_workflows(params: ListWorkflowsParams, ctx: ToolContext) -> str:
    query = WorkflowListParams.model_validate(params.model_dump(exclude={"instance"}))
    page = await ctx.client.list_workflows(query)

    lines = [f"Found {len(page.data)} workflows"]
    if page.nextCursor:
        lines.append(f"More results available. Next cursor: {page.nextCursor}")
    lines.append("")
    lines.append("Workflows:")
    for workflow in page.data:
        line = f"- {workflow.name} (ID: {workflow.id}) - {'Active' if workflow.active else 'Inactive'}"
        if workflow.tag_names:
            line += f" [{', '.join(workflow.tag_names)}]"
        lines.append(line)
    return "\n".join(lines)


async def activate_workflow(params: IdParams, ctx: ToolContext) -> str:
    workflow = await ctx.client.activate_workflow(params.id)
    return f'Activated workflow "{workflow.name}" (ID: {workflow.id})\nActive: {_yes_no(workflow.active)}'


async def deactivate_workflow(params: IdParams, ctx: ToolContext) -> str:
    workflow = await ctx.client.deactivate_workflow(params.id)
    return f'Deactivated workflow "{workflow.name}" (ID: {workflow.id})\nActive: {_yes_no(workflow.active)}'


async def export_workflow(params: IdParams, ctx: ToolContext) -> str:
    workflow = await ctx.client.export_workflow(params.id)
    return json.dumps(workflow.model_dump(mode="json", exclude_none=True), indent=2)


async def export_all_workflows(params: NoParams, ctx: ToolContext) -> str:
    workflows = await ctx.client.export_all_workflows()
    records = [workflow.model_dump(mode="json", exclude_none=True) for workflow in workflows]
    return f"Exported {len(records)} workflows\n{json.dumps(records, indent=2)}"


WORKFLOW_TOOLS = [
    ToolDefinition(
        name="create_workflow",
        description=(
            "Create a new n8n workflow with nodes and connections. Workflows are created inactive.\n"
            "Do not pass 'tags' or 'active'; they are read-only on create.\n"
            'Example node: {"id": "node_1", "name": "Manual", "type": "n8n-nodes-base.manualTrigger", '
            '"position": [250, 300], "parameters": {}, "typeVersion": 1}\n'
            'Example connection: {"Manual": {"main": [[{"node": "Code", "type": "main", "index": 0}]]}}'
        ),
        input_schema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Workflow name"},
                "nodes": {"type": "array", "description": "Workflow nodes", "items": _NODE_SCHEMA},
                "connections": {"type": "object", "description": "Node connection mappings"},
                "settings": _SETTINGS_SCHEMA,
            },
            "required": ["name", "nodes", "connections"],
        },
        params_model=CreateWorkflowParams,
        handler=create_workflow,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="get_workflow",
        description="Retrieve a workflow by ID",
        input_schema=_ID_SCHEMA,
        params_model=IdParams,
        handler=get_workflow,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="update_workflow",
        description=(
            "Update an existing workflow. Fields that are left out keep their current values; "
            "when nodes or connections are omitted the stored workflow is fetched and merged first."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Workflow ID"},
                "name": {"type": "string", "description": "Updated workflow name"},
                "nodes": {"type": "array", "description": "Updated nodes", "items": _NODE_SCHEMA},
                "connections": {"type": "object", "description": "Updated connections"},
                "active": {"type": "boolean", "description": "Activation status"},
                "settings": _SETTINGS_SCHEMA,
            },
            "required": ["id"],
        },
        params_model=UpdateWorkflowParams,
        handler=update_workflow,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="delete_workflow",
        description="Delete a workflow permanently",
        input_schema=_ID_SCHEMA,
        params_model=IdParams,
        handler=delete_workflow,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="list_workflows",
        description=(
            "List workflows with optional filters (cursor-based pagination).\n"
            "To get the next page pass the cursor from the previous response. "
            "Omit the cursor for the first page."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "description": "Number of results",
                    "default": 100,
                    "minimum": 1,
                    "maximum": 100,
                },
                "cursor": {"type": "string", "description": "Pagination cursor from a previous response"},
                "active": {"type": "boolean", "description": "Filter by active status"},
                "tags": {"type": "array", "items": {"type": "string"}, "description": "Filter by tag names"},
                "projectId": {"type": "string", "description": "Filter by project (Enterprise only)"},
                "excludePinnedData": {
                    "type": "boolean",
                    "description": "Exclude pinned node data",
                    "default": True,
                },
                "instance": {"type": "string", "description": "n8n instance name (multi-instance setups)"},
            },
        },
        params_model=ListWorkflowsParams,
        handler=list_workflows,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="activate_workflow",
        description="Activate a workflow so its triggers start listening",
        input_schema=_ID_SCHEMA,
        params_model=IdParams,
        handler=activate_workflow,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="deactivate_workflow",
        description="Deactivate a workflow",
        input_schema=_ID_SCHEMA,
        params_model=IdParams,
        handler=deactivate_workflow,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="export_workflow",
        description="Export a workflow as JSON. Node credentials are left out.",
        input_schema=_ID_SCHEMA,
        params_model=IdParams,
        handler=export_workflow,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="export_all_workflows",
        description="Export every workflow on the instance as a JSON array, walking all pages",
        input_schema={"type": "object", "properties": {}},
        params_model=NoParams,
        handler=export_all_workflows,
        category=CATEGORY,
    ),
]
