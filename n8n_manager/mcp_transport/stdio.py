"""Newline-delimited JSON-RPC transport over stdin/stdout."""

import asyncio
import json
import sys
from typing import Any, Awaitable, Callable

import anyio
import structlog
from anyio import AsyncFile
from pydantic import ValidationError

from .schemas import MCPErrorCodes, MCPJSONRPCRequest, MCPJSONRPCResponse

logger = structlog.get_logger(__name__)

RequestHandler = Callable[[MCPJSONRPCRequest], Awaitable[MCPJSONRPCResponse | None]]


class StdioTransport:
    """Reads one JSON-RPC message per line and writes one reply per line.

    tools/call requests run in their own task so a slow remote call does not
    hold up other requests; every other method is answered inline. Writes
    are serialized so frames never interleave. On end of input the
    transport waits for in-flight calls before returning.
    """

    def __init__(
        self,
        handler: RequestHandler,
        stdin: AsyncFile | None = None,
        stdout: AsyncFile | None = None,
    ):
        self.handler = handler
        self._stdin = stdin
        self._stdout = stdout
        self._write_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task] = set()

    async def serve(self) -> None:
        """Process messages until stdin reaches end of file."""
        stdin = self._stdin or anyio.wrap_file(sys.stdin)
        if self._stdout is None:
            self._stdout = anyio.wrap_file(sys.stdout)

        logger.info("stdio_transport_started")
        while True:
            line = await stdin.readline()
            if not line:
                break
            if isinstance(line, bytes):
                line = line.decode("utf-8")
            if not line.strip():
                continue
            await self._handle_line(line)

        if self._tasks:
            logger.info("stdio_transport_draining", pending=len(self._tasks))
            await asyncio.gather(*self._tasks)
        logger.info("stdio_transport_closed")

    async def _handle_line(self, line: str) -> None:
        try:
            message = json.loads(line)
        except json.JSONDecodeError as exc:
            logger.warning("parse_error", error=str(exc))
            await self._send(MCPJSONRPCResponse.error_response(None, MCPErrorCodes.PARSE_ERROR, "Parse error"))
            return

        if not isinstance(message, dict):
            await self._send(
                MCPJSONRPCResponse.error_response(None, MCPErrorCodes.INVALID_REQUEST, "Invalid Request")
            )
            return

        try:
            request = MCPJSONRPCRequest(**message)
        except ValidationError:
            request_id = message.get("id")
            if not isinstance(request_id, (str, int)):
                request_id = None
            await self._send(
                MCPJSONRPCResponse.error_response(request_id, MCPErrorCodes.INVALID_REQUEST, "Invalid Request")
            )
            return

        if request.method == "tools/call" and not request.is_notification:
            task = asyncio.create_task(self._dispatch(request))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        else:
            await self._dispatch(request)

    async def _dispatch(self, request: MCPJSONRPCRequest) -> None:
        try:
            response = await self.handler(request)
        except Exception as exc:
            logger.exception("request_failed", method=request.method)
            if request.is_notification:
                return
            response = MCPJSONRPCResponse.error_response(
                request.id, MCPErrorCodes.INTERNAL_ERROR, f"Internal error: {type(exc).__name__}"
            )
        if response is not None:
            await self._send(response)

    async def _send(self, response: MCPJSONRPCResponse) -> None:
        await self.write_message(response.to_wire())

    async def write_message(self, payload: dict[str, Any]) -> None:
        frame = json.dumps(payload, separators=(",", ":"), default=str) + "\n"
        async with self._write_lock:
            await self._stdout.write(frame)
            await self._stdout.flush()
