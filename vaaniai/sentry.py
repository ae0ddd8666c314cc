"""
Sentry error monitoring.

Initialised once at startup when SENTRY_DSN is set. Expected client errors
(4xx) are filtered out before sending.
"""

import logging

import sentry_sdk
from fastapi import HTTPException
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.httpx import HttpxIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from .config import settings
from .exceptions import VaaniError

logger = logging.getLogger(__name__)


def init_sentry(app_version: str | None = None) -> bool:
    """
    Initialize Sentry error monitoring for the backend.

    Returns:
        True if Sentry was initialized, False otherwise
    """
    if not settings.sentry_dsn:
        logger.debug("Sentry DSN not configured, skipping initialization")
        return False

    environment = settings.environment
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=environment,
        release=app_version,
        # Sample 10% of transactions in production, all of them elsewhere
        traces_sample_rate=0.1 if environment == "production" else 1.0,
        send_default_pii=False,
        attach_stacktrace=True,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
            HttpxIntegration(),
        ],
        ignore_errors=["ConnectionRefusedError", "ConnectionResetError"],
        before_send=_before_send,
    )

    logger.info(f"Sentry initialized (environment: {environment})")
    return True


def _before_send(event, hint):
    """Drop events for expected 4xx errors."""
    if "exc_info" in hint:
        _, exc_value, _ = hint["exc_info"]
        if isinstance(exc_value, (HTTPException, VaaniError)) and 400 <= exc_value.status_code < 500:
            return None
    return event
