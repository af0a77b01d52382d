"""Sentry initialization for the MatriMatch matching core."""

import sentry_sdk
from sentry_sdk.integrations.redis import RedisIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from matrimatch.config import settings
from matrimatch.utils.logging import get_logger

logger = get_logger(__name__)


def init_sentry() -> bool:
    """
    Initialize Sentry error reporting and tracing.

    Does nothing when `SENTRY_DSN` is not configured; spans opened by the
    services are then no-ops.

    Returns:
        bool: True if Sentry was initialized.
    """
    if not settings.SENTRY_DSN:
        logger.debug("Sentry DSN not configured, skipping initialization")
        return False

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENVIRONMENT,
        traces_sample_rate=1.0 if settings.ENVIRONMENT == "development" else 0.1,
        integrations=[
            SqlalchemyIntegration(),
            RedisIntegration(),
        ],
    )
    logger.info("Sentry initialized", environment=settings.ENVIRONMENT)
    return True
