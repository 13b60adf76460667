"""MCP transport module - JSON-RPC schemas, handlers and the stdio loop.

Handlers live in ``service`` and the loop in ``stdio``; they are imported
from there directly since tool modules depend on these schemas.
"""

from .schemas import (
    MCPContent,
    MCPErrorCodes,
    MCPInitializeParams,
    MCPJSONRPCRequest,
    MCPJSONRPCResponse,
    MCPTool,
    MCPToolCallParams,
    MCPToolCallResult,
    MCPToolListResult,
)


__all__ = [
    "MCPContent",
    "MCPErrorCodes",
    "MCPInitializeParams",
    "MCPJSONRPCRequest",
    "MCPJSONRPCResponse",
    "MCPTool",
    "MCPToolCallParams",
    "MCPToolCallResult",
    "MCPToolListResult",
]
