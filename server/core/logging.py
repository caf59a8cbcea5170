"""Structured logging configuration.

Log lines emitted while a request is being handled carry the request path
and the authenticated user id, bound by AuthMiddleware through structlog
contextvars.
"""

import sys
import logging
from pathlib import Path
from typing import List, Optional

import structlog
from structlog.typing import Processor

from core.config import Settings


def _handlers(settings: Settings, level: int) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_path = Path(settings.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))
    for handler in handlers:
        handler.setLevel(level)
    return handlers


def _renderer(settings: Settings) -> List[Processor]:
    if settings.log_format == "json":
        return [structlog.processors.TimeStamper(fmt="iso"), structlog.processors.JSONRenderer()]
    return [
        structlog.processors.TimeStamper(fmt="%H:%M:%S"),
        structlog.dev.ConsoleRenderer(
            colors=False,
            pad_event=35,
            exception_formatter=structlog.dev.plain_traceback
        ),
    ]


def configure_logging(settings: Settings) -> None:
    """Route stdlib and structlog output through the same handlers."""
    level = getattr(logging, settings.log_level)
    logging.basicConfig(level=level, handlers=_handlers(settings, level), format="%(message)s", force=True)

    renderer = _renderer(settings)
    processors: List[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        *renderer,
    ]

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


def bind_request_context(**values) -> None:
    """Attach values to every log line of the current request."""
    structlog.contextvars.bind_contextvars(**values)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()


def log_execution_time(logger: structlog.BoundLogger, operation: str,
                       start_time: float, end_time: float, **kwargs) -> None:
    """Log how long a computation took, in seconds."""
    logger.info(
        "Operation completed",
        operation=operation,
        execution_time_seconds=round(end_time - start_time, 4),
        **kwargs
    )


def log_cache_operation(logger: structlog.BoundLogger, operation: str,
                        key: str, hit: Optional[bool] = None, **kwargs) -> None:
    """Debug event for a cache read, write or eviction."""
    event = {"operation": operation, "cache_key": key, **kwargs}
    if hit is not None:
        event["cache_hit"] = hit
    logger.debug("Cache operation", **event)
