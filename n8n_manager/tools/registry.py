"""Static tool dispatch table."""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Iterator, Mapping

import structlog
from pydantic import BaseModel, ValidationError

from n8n_manager.config import Settings
from n8n_manager.errors import ErrorKind, McpToolError, ToolNotFoundError, format_validation_error
from n8n_manager.gateway import N8nApiClient
from n8n_manager.mcp_transport.schemas import MCPTool, MCPToolCallResult

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ToolContext:
    """Collaborators handed to every tool handler.

    Attributes:
        client: n8n API gateway.
        settings: Read-only application settings.
        registry: The dispatch table the handler was invoked from.
    """

    client: N8nApiClient
    settings: Settings
    registry: "ToolRegistry"


ToolHandler = Callable[[Any, ToolContext], Awaitable[str]]


@dataclass(frozen=True)
class ToolDefinition:
    """One registered tool.

    Attributes:
        name: Tool name exposed to the host.
        description: Description exposed to the host.
        input_schema: JSON schema advertised in tools/list.
        params_model: Pydantic model the raw arguments are validated into.
        handler: Coroutine rendering the text result.
        category: Heading used by the tool catalogue.
    """

    name: str
    description: str
    input_schema: dict[str, Any]
    params_model: type[BaseModel]
    handler: ToolHandler
    category: str

    def to_mcp_tool(self) -> MCPTool:
        return MCPTool(name=self.name, description=self.description, inputSchema=self.input_schema)

    def validate(self, arguments: Mapping[str, Any] | None) -> BaseModel:
        """Validate raw arguments, reporting every invalid field at once.

        Raises:
            McpToolError: InvalidParams listing each failing field.
        """
        try:
            return self.params_model.model_validate(dict(arguments or {}))
        except ValidationError as exc:
            raise McpToolError(ErrorKind.INVALID_PARAMS, format_validation_error(exc)) from exc


class ToolRegistry:
    """Name-keyed mapping from tool name to definition."""

    def __init__(self, definitions: Iterable[ToolDefinition]):
        self._tools: dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.name in self._tools:
                raise ValueError(f"duplicate tool name: {definition.name}")
            self._tools[definition.name] = definition

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def get(self, name: str) -> ToolDefinition:
        """Look up a tool by name.

        Raises:
            ToolNotFoundError: If no tool has that name.
        """
        definition = self._tools.get(name)
        if definition is None:
            raise ToolNotFoundError(name)
        return definition

    def list_tools(self) -> list[MCPTool]:
        return [definition.to_mcp_tool() for definition in self._tools.values()]

    async def invoke(
        self,
        name: str,
        arguments: Mapping[str, Any] | None,
        context: ToolContext,
    ) -> MCPToolCallResult:
        """Validate arguments, run the handler and wrap its text.

        Failures propagate unchanged; they are classified by the caller.
        """
        definition = self.get(name)
        params = definition.validate(arguments)
        text = await definition.handler(params, context)
        return MCPToolCallResult.text(text)
