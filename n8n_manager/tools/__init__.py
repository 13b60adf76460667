"""Tools module - the static dispatch table exposed over MCP."""

from .registry import ToolContext, ToolDefinition, ToolRegistry
from .workflows import WORKFLOW_TOOLS
from .executions import EXECUTION_TOOLS
from .tags import TAG_TOOLS
from .credentials import CREDENTIAL_TOOLS
from .health import HEALTH_TOOLS
from .info import INFO_TOOLS


def build_tool_registry() -> ToolRegistry:
    """Create the registry holding every tool, in catalogue order."""
    return ToolRegistry(
        [
            *WORKFLOW_TOOLS,
            *EXECUTION_TOOLS,
            *TAG_TOOLS,
            *CREDENTIAL_TOOLS,
            *HEALTH_TOOLS,
            *INFO_TOOLS,
        ]
    )


__all__ = [
    # Registry
    "ToolContext",
    "ToolDefinition",
    "ToolRegistry",
    "build_tool_registry",
    # Definitions
    "WORKFLOW_TOOLS",
    "EXECUTION_TOOLS",
    "TAG_TOOLS",
    "CREDENTIAL_TOOLS",
    "HEALTH_TOOLS",
    "INFO_TOOLS",
]
