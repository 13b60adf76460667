"""Connectivity diagnostics."""

import time

import structlog

from .registry import ToolContext, ToolDefinition
from .schemas import HealthCheckParams

logger = structlog.get_logger(__name__)

CATEGORY = "System Tools"

CONNECTION_HINTS = (
    "Check that the n8n instance is running",
    "Verify N8N_API_URL is correct",
    "Ensure the API key is valid and has the required permissions",
    "Check network connectivity",
)


async def health_check(params: HealthCheckParams, ctx: ToolContext) -> str:
    """Check the instance and report status, latency and active configuration."""
    logger.info("health_check", instance=params.instance)

    started = time.perf_counter()
    health = await ctx.client.health_check()
    elapsed_ms = (time.perf_counter() - started) * 1000

    healthy = health.status == "ok"
    lines = [
        "n8n Health Check Results:",
        f"Status: {'Healthy' if healthy else 'Unhealthy'}",
        f"API URL: {ctx.settings.api_base_url}",
        f"Response Time: {elapsed_ms:.0f}ms",
        f"Timestamp: {health.timestamp}",
    ]
    if params.instance:
        lines.append(f"Instance Name: {params.instance}")
    if health.error:
        lines.append(f"Error: {health.error}")

    lines.append("")
    lines.append("Configuration:")
    for key, value in ctx.settings.snapshot().items():
        lines.append(f"- {key.replace('_', ' ').capitalize()}: {value}")

    if not healthy:
        lines.append("")
        lines.append("Connection Issues Detected:")
        lines.extend(f"- {hint}" for hint in CONNECTION_HINTS)
    return "\n".join(lines)


HEALTH_TOOLS = [
    ToolDefinition(
        name="health_check",
        description=(
            "Check n8n instance health and API connectivity. Returns the health status, API URL, "
            "response time and active configuration. Useful before other operations when debugging "
            "connection issues."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "instance": {"type": "string", "description": "Instance name (multi-instance setups)"},
            },
        },
        params_model=HealthCheckParams,
        handler=health_check,
        category=CATEGORY,
    ),
]
