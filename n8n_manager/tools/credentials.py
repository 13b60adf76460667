"""Credential tools. Secret ``data`` payloads are never rendered."""

from n8n_manager.gateway import PageParams

from .registry import ToolContext, ToolDefinition
from .schemas import IdParams, ListCredentialsParams

CATEGORY = "Credential Management"


async def list_credentials(params: ListCredentialsParams, ctx: ToolContext) -> str:
    page = await ctx.client.list_credentials(
        PageParams(limit=params.limit, cursor=params.cursor, type=params.type)
    )

    lines = [f"Found {len(page.data)} credentials"]
    if page.nextCursor:
        lines.append(f"More results available. Next cursor: {page.nextCursor}")
    lines.append("")
    lines.append("Credentials:")
    lines.extend(f"- {credential.name} (ID: {credential.id}) - {credential.type}" for credential in page.data)
    return "\n".join(lines)


async def delete_credential(params: IdParams, ctx: ToolContext) -> str:
    await ctx.client.delete_credential(params.id)
    return f"Successfully deleted credential with ID: {params.id}"


CREDENTIAL_TOOLS = [
    ToolDefinition(
        name="list_credentials",
        description="List stored credentials by name and type. Secret values are never returned.",
        input_schema={
            "type": "object",
            "properties": {
                "limit": {"type": "integer", "default": 100, "minimum": 1, "maximum": 100},
                "cursor": {"type": "string", "description": "Pagination cursor from a previous response"},
                "type": {"type": "string", "description": "Filter by credential type, e.g. githubApi"},
            },
        },
        params_model=ListCredentialsParams,
        handler=list_credentials,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="delete_credential",
        description="Delete a stored credential",
        input_schema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Credential ID to delete"},
            },
            "required": ["id"],
        },
        params_model=IdParams,
        handler=delete_credential,
        category=CATEGORY,
    ),
]
