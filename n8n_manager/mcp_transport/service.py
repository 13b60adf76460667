"""Business logic for MCP protocol handlers."""

from typing import Any

import structlog
from pydantic import ValidationError

from n8n_manager import __version__
from n8n_manager.errors import classify_error, format_validation_error
from n8n_manager.ratelimit import RateLimiter, RateLimitExceededError
from n8n_manager.tools.registry import ToolContext, ToolRegistry

from .schemas import (
    MCPErrorCodes,
    MCPInitializeParams,
    MCPJSONRPCRequest,
    MCPJSONRPCResponse,
    MCPToolCallParams,
    MCPToolCallResult,
    MCPToolListResult,
)

logger = structlog.get_logger(__name__)

SERVER_NAME = "n8n-manager"
SUPPORTED_PROTOCOL_VERSIONS = ("2024-11-05", "2025-03-26", "2025-06-18")
RATE_LIMIT_KEY = "tools/call"


async def handle_initialize(params: MCPInitializeParams) -> dict[str, Any]:
    """Handle initialize request.

    The client's protocol version is echoed when supported, otherwise the
    oldest supported version is offered.

    Args:
        params: Initialize parameters from client.

    Returns:
        Server initialization response.
    """
    if params.protocolVersion in SUPPORTED_PROTOCOL_VERSIONS:
        protocol_version = params.protocolVersion
    else:
        protocol_version = SUPPORTED_PROTOCOL_VERSIONS[0]
    return {
        "protocolVersion": protocol_version,
        "capabilities": {
            "tools": {
                "listChanged": False
            }
        },
        "serverInfo": {
            "name": SERVER_NAME,
            "version": __version__
        }
    }


async def handle_tools_list(registry: ToolRegistry) -> MCPToolListResult:
    """Handle tools/list request. Has no side effects."""
    return MCPToolListResult(tools=registry.list_tools())


async def handle_tools_call(
    registry: ToolRegistry,
    context: ToolContext,
    rate_limiter: RateLimiter,
    name: str,
    arguments: dict[str, Any] | None,
) -> MCPToolCallResult:
    """Handle tools/call request.

    Every failure, including an unknown tool name or an exhausted rate
    limit, is classified and returned as an error result; nothing raised
    by a handler propagates past this function.

    Args:
        registry: Tool dispatch table.
        context: Collaborators passed to the handler.
        rate_limiter: Local request budget.
        name: Tool name to invoke.
        arguments: Raw tool arguments.

    Returns:
        Exactly one tool result, success or error.
    """
    log = logger.bind(tool_name=name)
    try:
        rate = rate_limiter.check(RATE_LIMIT_KEY)
        if not rate.allowed:
            raise RateLimitExceededError(
                limit=rate.limit,
                window_seconds=rate_limiter.config.window_seconds,
                retry_after=rate.retry_after,
            )
        log.info("tool_call")
        result = await registry.invoke(name, arguments, context)
    except Exception as exc:
        envelope = classify_error(exc, context.settings.update_methods)
        log.warning("tool_call_failed", kind=envelope.kind.value)
        return MCPToolCallResult.error(envelope.message)

    log.info("tool_call_succeeded")
    return result


class McpRequestHandler:
    """Routes parsed JSON-RPC requests to the protocol handlers.

    Returns None for notifications, which never get a reply.
    """

    def __init__(self, registry: ToolRegistry, context: ToolContext, rate_limiter: RateLimiter):
        self.registry = registry
        self.context = context
        self.rate_limiter = rate_limiter

    async def handle(self, request: MCPJSONRPCRequest) -> MCPJSONRPCResponse | None:
        method = request.method
        params = request.params or {}

        if request.is_notification or method.startswith("notifications/"):
            logger.debug("notification_received", method=method)
            return None

        if method == "initialize":
            try:
                init_params = MCPInitializeParams(**params)
            except ValidationError as exc:
                return self._invalid_params(request, exc)
            logger.info("client_initialized", client_info=init_params.clientInfo,
                        protocol_version=init_params.protocolVersion)
            return MCPJSONRPCResponse.success(request.id, await handle_initialize(init_params))

        if method == "ping":
            return MCPJSONRPCResponse.success(request.id, {})

        if method == "tools/list":
            result = await handle_tools_list(self.registry)
            return MCPJSONRPCResponse.success(request.id, result.model_dump())

        if method == "tools/call":
            try:
                call_params = MCPToolCallParams(**params)
            except ValidationError as exc:
                return self._invalid_params(request, exc)
            result = await handle_tools_call(
                self.registry,
                self.context,
                self.rate_limiter,
                call_params.name,
                call_params.arguments,
            )
            return MCPJSONRPCResponse.success(request.id, result.model_dump())

        return MCPJSONRPCResponse.error_response(
            request.id, MCPErrorCodes.METHOD_NOT_FOUND, f"Method not found: {method}"
        )

    @staticmethod
    def _invalid_params(request: MCPJSONRPCRequest, exc: ValidationError) -> MCPJSONRPCResponse:
        return MCPJSONRPCResponse.error_response(
            request.id, MCPErrorCodes.INVALID_PARAMS, format_validation_error(exc)
        )
