"""Structured logging for the MatriMatch matching core."""

import logging
import sys
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from matrimatch.config import settings

# Library loggers that flood match runs with per-query records.
NOISY_LOGGERS = ("sqlalchemy.engine", "redis")


def _add_service(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    event_dict.setdefault("service", settings.APP_NAME)
    event_dict.setdefault("environment", settings.ENVIRONMENT)
    return event_dict


def configure_logging() -> None:
    """
    Route stdlib and structlog records through one processor chain.

    Every record carries the service name and environment, plus whatever a
    running match job bound with `job_context`. Development gets the console
    renderer; any other environment emits one JSON object per line.
    """
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", level=log_level, stream=sys.stdout)

    library_level = logging.DEBUG if settings.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        _add_service,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]
    if settings.ENVIRONMENT.lower() == "development":
        processors.append(structlog.dev.ConsoleRenderer())
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named `name` with `initial_values` bound."""
    return structlog.get_logger(name).bind(**initial_values)  # type: ignore


@contextmanager
def job_context(**values: Any) -> Iterator[None]:
    """
    Bind `values` to every record logged by the current thread inside the block.

    Match jobs run on pool threads, so the bound values are unbound on exit to
    keep them from leaking into the next job picked up by the same thread.
    """
    structlog.contextvars.bind_contextvars(**values)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*values)


def log_error(
    logger: structlog.stdlib.BoundLogger,
    error: Exception,
    message: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Log `error` at error level with its type, message and traceback.

    Args:
        logger (structlog.stdlib.BoundLogger): Logger to write to.
        error (Exception): The failure being reported.
        message (Optional[str]): Event text, "An error occurred" when omitted.
        extra (Optional[Dict[str, Any]]): Additional fields; the dict itself is not modified.
    """
    context: Dict[str, Any] = {
        **(extra or {}),
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    details = getattr(error, "details", None)
    if details:
        context["error_details"] = details

    logger.error(message or "An error occurred", exc_info=error, **context)
