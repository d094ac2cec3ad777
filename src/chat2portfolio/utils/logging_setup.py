"""Dual-format logging (JSON + plain text) using structlog, with per-request context."""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import structlog

from chat2portfolio.config import Settings, settings as default_settings

# Third-party loggers that only add noise at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "multipart", "uvicorn.access")

# Server loggers re-routed through our handlers instead of uvicorn's own
SERVER_LOGGERS = ("uvicorn", "uvicorn.error")

SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.stdlib.PositionalArgumentsFormatter(),
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
    structlog.processors.format_exc_info,
    structlog.processors.UnicodeDecoder(),
]


def _handler(handler: logging.Handler, renderer: Any) -> logging.Handler:
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=SHARED_PROCESSORS)
    )
    return handler


def _file_handler(directory: Path, filename: str, renderer: Any) -> logging.Handler:
    directory.mkdir(parents=True, exist_ok=True)
    return _handler(logging.FileHandler(directory / filename, encoding="utf-8"), renderer)


def setup_logging(settings: Optional[Settings] = None) -> structlog.stdlib.BoundLogger:
    """
    Configure console logging plus JSON and/or plain-text log files.

    Files go to ``log_dir/json`` and ``log_dir/text``, one pair per process
    start. uvicorn's own loggers are routed through the same handlers so
    server and request logs end up in one place.

    Args:
        settings: Settings to read log_dir/log_level/log_format from (default: module singleton)
    """
    settings = settings or default_settings
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name in SERVER_LOGGERS:
        server_logger = logging.getLogger(name)
        server_logger.handlers.clear()
        server_logger.propagate = True

    structlog.configure(
        processors=SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handlers = [_handler(logging.StreamHandler(sys.stdout), structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))]

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    if settings.log_format in ("json", "both"):
        handlers.append(
            _file_handler(settings.log_dir / "json", f"chat2portfolio_{timestamp}.json", structlog.processors.JSONRenderer())
        )
    if settings.log_format in ("text", "both"):
        handlers.append(
            _file_handler(
                settings.log_dir / "text", f"chat2portfolio_{timestamp}.log", structlog.dev.ConsoleRenderer(colors=False)
            )
        )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    for handler in handlers:
        root_logger.addHandler(handler)

    return structlog.get_logger()


def bind_request_context(operation: str, **values: Any) -> None:
    """Start a fresh log context for one inbound request."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(operation=operation, **values)
