"""Structured logging configuration.

Every log line is rendered by structlog, including records emitted through
the standard library by uvicorn and httpx. Poll cycles bind ``source`` and
``poll_id`` as context variables so adapter, fetcher and pipeline events of
one cycle can be correlated without threading the ids through every call.
"""

from __future__ import annotations

import logging
import sys
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any

import structlog

if TYPE_CHECKING:
    from structlog.types import Processor

from vonatinfo_api.config import get_settings

_HTTP_CLIENT_LOGGERS = ("httpx", "httpcore")


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging() -> None:
    """Route stdlib and structlog output through one ProcessorFormatter."""
    settings = get_settings()
    log_format = settings.log_format or (
        "console" if settings.environment == "development" else "json"
    )

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == "json":
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared_processors,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(log_format),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.log_level.upper())

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    # One request line per upstream call drowns the poll cycle events
    client_level = logging.DEBUG if settings.debug else logging.WARNING
    for name in _HTTP_CLIENT_LOGGERS:
        logging.getLogger(name).setLevel(client_level)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.stdlib.get_logger(name)


def bind_request_context(**kwargs: Any) -> None:
    """Bind context variables for the current request."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_request_context() -> None:
    """Clear context variables after request completion."""
    structlog.contextvars.clear_contextvars()


def poll_context(source: str, poll_id: str) -> AbstractContextManager[Any]:
    """Bind ``source`` and ``poll_id`` for the duration of one poll cycle."""
    return structlog.contextvars.bound_contextvars(source=source, poll_id=poll_id)
