"""Tests for MCP protocol handling and the stdio transport."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from n8n_manager import __version__
from n8n_manager.mcp_transport import MCPInitializeParams, MCPJSONRPCRequest, MCPJSONRPCResponse
from n8n_manager.mcp_transport.service import (
    SERVER_NAME,
    McpRequestHandler,
    handle_initialize,
    handle_tools_call,
    handle_tools_list,
)
from n8n_manager.mcp_transport.stdio import StdioTransport
from n8n_manager.ratelimit import RateLimitConfig, RateLimiter
from n8n_manager.tools import ToolContext, ToolDefinition, ToolRegistry, build_tool_registry
from n8n_manager.tools.schemas import NoParams

from conftest import FakeStream


def _context(client, settings, registry: ToolRegistry) -> ToolContext:
    return ToolContext(client=client, settings=settings, registry=registry)


def _failing_registry(message: str) -> ToolRegistry:
    async def explode(params, ctx):
        raise RuntimeError(message)

    return ToolRegistry([ToolDefinition("explode", "Always fails", {"type": "object"}, NoParams, explode, "Test")])


@pytest.fixture
def registry() -> ToolRegistry:
    return build_tool_registry()


@pytest.fixture
def request_handler(client, settings, registry) -> McpRequestHandler:
    return McpRequestHandler(registry, _context(client, settings, registry), RateLimiter())


class TestInitialize:
    """Tests for handle_initialize."""

    @pytest.mark.asyncio
    async def test_supported_version_echoed(self):
        """Test a supported client version is returned unchanged."""
        result = await handle_initialize(MCPInitializeParams(protocolVersion="2025-03-26"))

        assert result["protocolVersion"] == "2025-03-26"
        assert result["serverInfo"] == {"name": SERVER_NAME, "version": __version__}
        assert result["capabilities"]["tools"] == {"listChanged": False}

    @pytest.mark.asyncio
    async def test_unknown_version_gets_oldest_supported(self):
        """Test an unsupported version is answered with the baseline version."""
        result = await handle_initialize(MCPInitializeParams(protocolVersion="1999-01-01"))

        assert result["protocolVersion"] == "2024-11-05"


class TestToolsList:
    """Tests for handle_tools_list."""

    @pytest.mark.asyncio
    async def test_lists_registry_in_order(self, registry):
        """Test tools are listed in registration order."""
        result = await handle_tools_list(registry)

        assert [tool.name for tool in result.tools] == [definition.name for definition in registry]
        assert result.tools[0].name == "create_workflow"


class TestToolsCall:
    """Tests for handle_tools_call."""

    @pytest.mark.asyncio
    async def test_success_result(self, client, settings, registry):
        """Test a successful call returns a single text block."""
        result = await handle_tools_call(
            registry, _context(client, settings, registry), RateLimiter(), "list_available_tools", {}
        )

        assert result.isError is False
        assert result.content[0].text.startswith("# Available n8n MCP Tools")

    @pytest.mark.asyncio
    async def test_unknown_tool_is_error_result(self, client, settings, registry):
        """Test an unknown tool name becomes an error result, not an exception."""
        result = await handle_tools_call(registry, _context(client, settings, registry), RateLimiter(), "nope", {})

        assert result.isError is True
        assert result.content[0].text == "Error: Tool not found: nope"

    @pytest.mark.asyncio
    async def test_invalid_arguments_are_error_result(self, client, settings, registry, fake_n8n):
        """Test invalid arguments are reported without calling n8n."""
        result = await handle_tools_call(
            registry, _context(client, settings, registry), RateLimiter(), "get_workflow", {}
        )

        assert result.isError is True
        assert "id: " in result.content[0].text
        assert fake_n8n.requests == []

    @pytest.mark.asyncio
    async def test_remote_failure_is_classified(self, client, settings, registry, fake_n8n):
        """Test a remote 404 comes back as an error result with the remote message."""
        result = await handle_tools_call(
            registry, _context(client, settings, registry), RateLimiter(), "get_workflow", {"id": "42"}
        )

        assert result.isError is True
        assert result.content[0].text == "Error: Workflow not found"

    @pytest.mark.asyncio
    async def test_rate_limit_exceeded(self, client, settings, registry, fake_n8n):
        """Test calls beyond the local budget fail without reaching n8n."""
        limiter = RateLimiter(RateLimitConfig(max_requests=1, window_seconds=60), clock=MagicMock(return_value=0.0))
        context = _context(client, settings, registry)

        first = await handle_tools_call(registry, context, limiter, "list_workflows", {})
        second = await handle_tools_call(registry, context, limiter, "list_workflows", {"limit": 5})

        assert first.isError is False
        assert second.isError is True
        assert second.content[0].text.startswith("Error: Rate limit exceeded (1 requests per 60s)")
        assert len(fake_n8n.requests) == 1

    @pytest.mark.asyncio
    async def test_handler_exception_message_is_redacted(self, client, settings):
        """Test secrets in unexpected failures never reach the host."""
        registry = _failing_registry("upstream said Authorization: Bearer abc.def.ghi")

        result = await handle_tools_call(registry, _context(client, settings, registry), RateLimiter(), "explode", {})

        assert result.isError is True
        assert "abc.def.ghi" not in result.content[0].text
        assert "[REDACTED]" in result.content[0].text


class TestMcpRequestHandler:
    """Tests for JSON-RPC method routing."""

    @pytest.mark.asyncio
    async def test_initialize(self, request_handler):
        """Test initialize with default parameters."""
        response = await request_handler.handle(MCPJSONRPCRequest(id=1, method="initialize"))

        assert response.id == 1
        assert response.result["protocolVersion"] == "2024-11-05"

    @pytest.mark.asyncio
    async def test_ping(self, request_handler):
        """Test ping answers an empty result."""
        response = await request_handler.handle(MCPJSONRPCRequest(id="p", method="ping"))

        assert response.to_wire() == {"jsonrpc": "2.0", "id": "p", "result": {}}

    @pytest.mark.asyncio
    async def test_tools_list(self, request_handler):
        """Test tools/list returns every descriptor."""
        response = await request_handler.handle(MCPJSONRPCRequest(id=2, method="tools/list"))

        assert len(response.result["tools"]) == 21

    @pytest.mark.asyncio
    async def test_tool_error_stays_a_result(self, request_handler):
        """Test a failing tool is a successful JSON-RPC response carrying isError."""
        response = await request_handler.handle(
            MCPJSONRPCRequest(id=3, method="tools/call", params={"name": "nope"})
        )

        assert response.error is None
        assert response.result["isError"] is True

    @pytest.mark.asyncio
    async def test_malformed_call_params(self, request_handler):
        """Test tools/call without a name is an invalid-params protocol error."""
        response = await request_handler.handle(MCPJSONRPCRequest(id=4, method="tools/call", params={}))

        assert response.error.code == -32602
        assert "name: " in response.error.message

    @pytest.mark.asyncio
    async def test_unknown_method(self, request_handler):
        """Test unknown methods are reported as method not found."""
        response = await request_handler.handle(MCPJSONRPCRequest(id=5, method="resources/list"))

        assert response.error.code == -32601
        assert response.error.message == "Method not found: resources/list"

    @pytest.mark.asyncio
    async def test_notifications_get_no_reply(self, request_handler):
        """Test notifications are accepted silently."""
        assert await request_handler.handle(MCPJSONRPCRequest(method="notifications/initialized")) is None
        assert await request_handler.handle(MCPJSONRPCRequest(method="tools/list")) is None


class TestStdioTransport:
    """Tests for StdioTransport framing."""

    @staticmethod
    def _transport(handler, *lines: str) -> tuple[StdioTransport, FakeStream]:
        stdout = FakeStream()
        return StdioTransport(handler, stdin=FakeStream(list(lines)), stdout=stdout), stdout

    @pytest.mark.asyncio
    async def test_parse_error(self):
        """Test a line that is not JSON gets a parse error with a null id."""
        transport, stdout = self._transport(AsyncMock(), "{not json")

        await transport.serve()

        assert stdout.frames() == [
            {"jsonrpc": "2.0", "id": None, "error": {"code": -32700, "message": "Parse error"}}
        ]

    @pytest.mark.asyncio
    async def test_invalid_request_keeps_id(self):
        """Test a request without a method is invalid and echoes its id."""
        transport, stdout = self._transport(AsyncMock(), '{"jsonrpc": "2.0", "id": 7}', "[1, 2]")

        await transport.serve()

        frames = stdout.frames()
        assert [frame["error"]["code"] for frame in frames] == [-32600, -32600]
        assert [frame["id"] for frame in frames] == [7, None]

    @pytest.mark.asyncio
    async def test_one_frame_per_line(self, request_handler):
        """Test each reply is one compact line and blank input lines are skipped."""
        transport, stdout = self._transport(
            request_handler.handle,
            '{"jsonrpc": "2.0", "id": 1, "method": "ping"}',
            "   ",
            '{"jsonrpc": "2.0", "method": "notifications/initialized"}',
            '{"jsonrpc": "2.0", "id": 2, "method": "ping"}',
        )

        await transport.serve()

        assert len(stdout.written) == 2
        for frame in stdout.written:
            assert frame.endswith("\n")
            assert "\n" not in frame[:-1]
        assert stdout.flushes == 2

    @pytest.mark.asyncio
    async def test_handler_crash_becomes_internal_error(self):
        """Test an exception escaping the handler is answered with -32603."""
        handler = AsyncMock(side_effect=RuntimeError("boom"))
        transport, stdout = self._transport(handler, '{"jsonrpc": "2.0", "id": 9, "method": "ping"}')

        await transport.serve()

        assert stdout.frames() == [
            {"jsonrpc": "2.0", "id": 9, "error": {"code": -32603, "message": "Internal error: RuntimeError"}}
        ]

    @pytest.mark.asyncio
    async def test_tool_calls_do_not_block_other_requests(self):
        """Test a pending tool call does not hold up a later ping, and is drained at end of input."""
        released = asyncio.Event()

        async def handler(request):
            if request.method == "tools/call":
                await released.wait()
            else:
                released.set()
            return MCPJSONRPCResponse.success(request.id, {"method": request.method})

        transport, stdout = self._transport(
            handler,
            '{"jsonrpc": "2.0", "id": "slow", "method": "tools/call", "params": {"name": "x"}}',
            '{"jsonrpc": "2.0", "id": "fast", "method": "ping"}',
        )

        await transport.serve()

        assert [frame["id"] for frame in stdout.frames()] == ["fast", "slow"]
