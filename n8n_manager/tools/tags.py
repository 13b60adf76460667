"""Tag tools."""

from n8n_manager.gateway import PageParams

from .registry import ToolContext, ToolDefinition
from .schemas import CreateTagParams, IdParams, PageArgs, UpdateTagParams

CATEGORY = "Tag Management"


async def list_tags(params: PageArgs, ctx: ToolContext) -> str:
    page = await ctx.client.list_tags(PageParams(limit=params.limit, cursor=params.cursor))

    lines = [f"Found {len(page.data)} tags"]
    if page.nextCursor:
        lines.append(f"More results available. Next cursor: {page.nextCursor}")
    lines.append("")
    lines.append("Tags:")
    lines.extend(f"- {tag.name} (ID: {tag.id})" for tag in page.data)
    return "\n".join(lines)


async def create_tag(params: CreateTagParams, ctx: ToolContext) -> str:
    tag = await ctx.client.create_tag(params.name)
    return f'Created tag "{tag.name}" with ID: {tag.id}'


async def update_tag(params: UpdateTagParams, ctx: ToolContext) -> str:
    tag = await ctx.client.update_tag(params.id, params.name)
    return f'Renamed tag {tag.id} to "{tag.name}"'


async def delete_tag(params: IdParams, ctx: ToolContext) -> str:
    await ctx.client.delete_tag(params.id)
    return f"Successfully deleted tag with ID: {params.id}"


TAG_TOOLS = [
    ToolDefinition(
        name="list_tags",
        description="List workflow tags (cursor-based pagination)",
        input_schema={
            "type": "object",
            "properties": {
                "limit": {"type": "integer", "default": 100, "minimum": 1, "maximum": 100},
                "cursor": {"type": "string", "description": "Pagination cursor from a previous response"},
            },
        },
        params_model=PageArgs,
        handler=list_tags,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="create_tag",
        description="Create a workflow tag",
        input_schema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Tag name"},
            },
            "required": ["name"],
        },
        params_model=CreateTagParams,
        handler=create_tag,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="update_tag",
        description="Rename a workflow tag",
        input_schema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Tag ID"},
                "name": {"type": "string", "description": "New tag name"},
            },
            "required": ["id", "name"],
        },
        params_model=UpdateTagParams,
        handler=update_tag,
        category=CATEGORY,
    ),
    ToolDefinition(
        name="delete_tag",
        description="Delete a workflow tag",
        input_schema={
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "Tag ID to delete"},
            },
            "required": ["id"],
        },
        params_model=IdParams,
        handler=delete_tag,
        category=CATEGORY,
    ),
]
