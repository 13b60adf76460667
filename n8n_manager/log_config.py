"""structlog configuration for the stdio MCP server.

stdout carries protocol frames, so log output goes to a rotating file and,
outside protocol mode, to stderr.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler

import structlog

from n8n_manager.config import Settings

LOG_FILE_NAME = "n8n-manager.log"
LOG_FILE_MAX_BYTES = 5 * 1024 * 1024
LOG_FILE_BACKUPS = 5

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def is_mcp_mode(settings: Settings, argv: list[str] | None = None) -> bool:
    """Whether the process is attached to an MCP host over stdio."""
    argv = sys.argv if argv is None else argv
    if settings.MCP_MODE == "stdio" or "--mcp" in argv:
        return True
    return not sys.stdout.isatty()


def configure_logging(settings: Settings, mcp_mode: bool | None = None) -> None:
    """Route structlog through stdlib logging with file and console sinks.

    Args:
        settings: Application settings.
        mcp_mode: Override protocol-mode detection.
    """
    if mcp_mode is None:
        mcp_mode = is_mcp_mode(settings)
    level = _LEVELS[settings.LOG_LEVEL]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    if settings.APP_ENV == "development" and not mcp_mode:
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
    )

    handlers: list[logging.Handler] = []
    settings.LOG_DIR.mkdir(parents=True, exist_ok=True)
    file_handler = RotatingFileHandler(
        settings.LOG_DIR / LOG_FILE_NAME,
        maxBytes=LOG_FILE_MAX_BYTES,
        backupCount=LOG_FILE_BACKUPS,
        encoding="utf-8",
    )
    handlers.append(file_handler)
    if not mcp_mode:
        handlers.append(logging.StreamHandler(sys.stderr))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    # per-request lines come from our own api_request events
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
