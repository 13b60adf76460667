"""Self-describing catalogue of the registered tools."""

import json
from itertools import groupby

from .registry import ToolContext, ToolDefinition
from .schemas import NoParams

CATEGORY = "System Tools"

USAGE_NOTES = (
    "Workflows are created **inactive**; use `activate_workflow` to turn them on",
    "The `tags` and `active` fields are read-only when creating a workflow",
    "For webhook triggers the HTTP method must match the webhook node configuration",
    "List operations use cursor-based pagination: omit the cursor for the first page "
    "and pass `nextCursor` back unchanged for the next one",
)


def _render_tool(definition: ToolDefinition) -> list[str]:
    lines = [f"### {definition.name}", definition.description, ""]
    properties = definition.input_schema.get("properties") or {}
    if not properties:
        return lines

    required = set(definition.input_schema.get("required") or ())
    lines.append("**Parameters:**")
    for key, spec in properties.items():
        mark = "required" if key in required else "optional"
        lines.append(f"- `{key}` ({mark}): {spec.get('description') or spec.get('type', 'any')}")
        if "default" in spec:
            lines.append(f"  - Default: {json.dumps(spec['default'])}")
        if "enum" in spec:
            lines.append(f"  - Options: {', '.join(spec['enum'])}")
    lines.append("")
    return lines


async def list_available_tools(params: NoParams, ctx: ToolContext) -> str:
    lines = ["# Available n8n MCP Tools", ""]
    # groupby keeps registration order within and across categories
    for category, definitions in groupby(ctx.registry, key=lambda d: d.category):
        lines.append(f"## {category}")
        lines.append("")
        for definition in definitions:
            lines.extend(_render_tool(definition))

    lines.append("## Important Notes")
    lines.append("")
    lines.extend(f"- {note}" for note in USAGE_NOTES)
    return "\n".join(lines)


INFO_TOOLS = [
    ToolDefinition(
        name="list_available_tools",
        description=(
            "List every available n8n tool grouped by category, with descriptions and parameters. "
            "Use this to see which operations this server supports."
        ),
        input_schema={"type": "object", "properties": {}},
        params_model=NoParams,
        handler=list_available_tools,
        category=CATEGORY,
    ),
]
