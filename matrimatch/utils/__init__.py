"""Utils package for the MatriMatch matching core."""

from matrimatch.utils.cache import ScoreCache, create_redis_client
from matrimatch.utils.database import Database, get_session, init_database, session_scope
from matrimatch.utils.errors import (
    ConfigurationError,
    DatabaseError,
    MatchingError,
    MatrimatchError,
    NotFoundError,
)
from matrimatch.utils.logging import configure_logging, get_logger, job_context, log_error
from matrimatch.utils.monitoring import init_sentry

__all__ = [
    "ConfigurationError",
    "Database",
    "DatabaseError",
    "MatchingError",
    "MatrimatchError",
    "NotFoundError",
    "ScoreCache",
    "configure_logging",
    "create_redis_client",
    "get_logger",
    "get_session",
    "init_database",
    "init_sentry",
    "job_context",
    "log_error",
    "session_scope",
]
