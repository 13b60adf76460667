"""Process entry point for the n8n MCP server."""

import asyncio
import sys

import structlog
from pydantic import ValidationError

from n8n_manager.config import Settings, load_settings
from n8n_manager.log_config import configure_logging, is_mcp_mode
from n8n_manager.server import EXIT_FAILURE, run_server

logger = structlog.get_logger(__name__)


def _report_invalid_settings(exc: ValidationError) -> None:
    print("Invalid configuration:", file=sys.stderr)
    for error in exc.errors():
        name = ".".join(str(part) for part in error.get("loc", ())) or "settings"
        print(f"  {name}: {error.get('msg', 'invalid value')}", file=sys.stderr)


def main(argv: list[str] | None = None) -> None:
    """Load settings, configure logging and serve MCP over stdio.

    Exits 1 when the environment is invalid or the server fails, 0 otherwise.
    """
    argv = sys.argv if argv is None else argv
    try:
        settings: Settings = load_settings()
    except ValidationError as exc:
        _report_invalid_settings(exc)
        sys.exit(EXIT_FAILURE)

    configure_logging(settings, mcp_mode=is_mcp_mode(settings, argv))

    try:
        exit_code = asyncio.run(run_server(settings))
    except KeyboardInterrupt:
        exit_code = 0
    except Exception:
        logger.exception("server_crashed")
        exit_code = EXIT_FAILURE
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
