"""Wires the gateway, dispatch table and stdio transport into one process."""

import asyncio
import signal
from typing import Any

import structlog
from anyio import AsyncFile

from n8n_manager.config import Settings
from n8n_manager.gateway import N8nApiClient
from n8n_manager.mcp_transport.service import McpRequestHandler
from n8n_manager.mcp_transport.stdio import StdioTransport
from n8n_manager.ratelimit import RateLimitConfig, RateLimiter
from n8n_manager.tools import ToolContext, ToolRegistry, build_tool_registry

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1


class N8nMcpServer:
    """The adapter process: one client, one registry, one transport.

    Attributes:
        settings: Read-only application settings.
        client: n8n API gateway, closed when the server stops.
        registry: Tool dispatch table.
    """

    def __init__(
        self,
        settings: Settings,
        client: N8nApiClient | None = None,
        registry: ToolRegistry | None = None,
        stdin: AsyncFile | None = None,
        stdout: AsyncFile | None = None,
    ):
        self.settings = settings
        self.client = client or N8nApiClient.from_settings(settings)
        self.registry = registry or build_tool_registry()
        self.rate_limiter = RateLimiter(RateLimitConfig.from_settings(settings))
        context = ToolContext(client=self.client, settings=settings, registry=self.registry)
        self.handler = McpRequestHandler(self.registry, context, self.rate_limiter)
        self.transport = StdioTransport(self.handler.handle, stdin=stdin, stdout=stdout)
        self._stop = asyncio.Event()
        self._exit_code = EXIT_OK

    async def startup_check(self) -> bool:
        """Check connectivity once at start. An unhealthy instance is logged, not fatal."""
        health = await self.client.health_check()
        if health.status == "ok":
            logger.info("n8n_connection_ok", api_url=self.settings.api_base_url)
            return True
        logger.warning("n8n_connection_failed", api_url=self.settings.api_base_url, error=health.error)
        return False

    def stop(self, exit_code: int = EXIT_OK) -> None:
        """Ask the running server to shut down with ``exit_code``."""
        self._exit_code = max(self._exit_code, exit_code)
        self._stop.set()

    def _on_signal(self, signame: str) -> None:
        logger.info("shutdown_signal", signal=signame)
        self.stop(EXIT_OK)

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        logger.error(
            "uncaught_async_failure",
            message=context.get("message"),
            exc_info=context.get("exception"),
        )
        self.stop(EXIT_FAILURE)

    def _install_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        loop.set_exception_handler(self._on_loop_exception)
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self._on_signal, sig.name)
            except (NotImplementedError, RuntimeError):
                # no signal support on this loop (e.g. Windows or a non-main thread)
                logger.debug("signal_handler_unavailable", signal=sig.name)

    async def run(self) -> int:
        """Serve until stdin closes, a signal arrives or the loop reports a failure.

        Returns:
            Process exit code: 0 on a normal stop, 1 on an uncaught failure.
        """
        loop = asyncio.get_running_loop()
        self._install_handlers(loop)
        logger.info("server_starting", config=self.settings.snapshot(), tools=len(self.registry))

        try:
            await self.startup_check()
            serve_task = asyncio.create_task(self.transport.serve())
            stop_task = asyncio.create_task(self._stop.wait())
            await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)

            if not serve_task.done():
                serve_task.cancel()
            else:
                stop_task.cancel()
            try:
                await serve_task
            except asyncio.CancelledError:
                pass
            except Exception:
                logger.exception("transport_failed")
                self._exit_code = EXIT_FAILURE
        finally:
            await self.client.aclose()

        logger.info("server_stopped", exit_code=self._exit_code)
        return self._exit_code


async def run_server(settings: Settings, **kwargs: Any) -> int:
    """Build and run the server, returning its exit code."""
    server = N8nMcpServer(settings, **kwargs)
    return await server.run()
