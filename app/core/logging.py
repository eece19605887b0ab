"""Structured logging with structlog.

Every event carries the HTTP request id (set by ``RequestIdMiddleware``) and,
while a seeder pipeline is running, the manifest run id, so a single seeding
run can be followed across store, writer and verify events.
"""

import logging
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

from app.core.config import get_settings

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)
run_id_ctx: ContextVar[str | None] = ContextVar("run_id", default=None)

# Chatty third-party loggers routed through stdlib logging.
QUIET_LOGGERS = ("sqlalchemy.engine", "asyncio", "uvicorn.access")


def add_correlation_ids(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    """Attach request_id and run_id when bound in the current context."""
    for key, ctx in (("request_id", request_id_ctx), ("run_id", run_id_ctx)):
        value = ctx.get()
        if value:
            event_dict[key] = value
    return event_dict


@contextmanager
def bind_run_id(run_id: str) -> Iterator[str]:
    """Bind a seeder run id for the duration of the block."""
    token = run_id_ctx.set(run_id)
    try:
        yield run_id
    finally:
        run_id_ctx.reset(token)


def configure_logging() -> None:
    """Configure structlog and the stdlib root level from settings."""
    settings = get_settings()
    level = getattr(logging, settings.log_level)

    processors: list[structlog.types.Processor] = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_correlation_ids,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.log_format == "json":
        processors.append(structlog.processors.JSONRenderer(sort_keys=True))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=settings.is_development))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(level=level, format="%(levelname)s %(name)s %(message)s")
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.typing.FilteringBoundLogger:
    """Get a structlog logger.

    Args:
        name: Logger name, usually ``__name__``.

    Returns:
        Logger whose events include the bound correlation ids.
    """
    logger: structlog.typing.FilteringBoundLogger = structlog.get_logger(name)
    return logger
