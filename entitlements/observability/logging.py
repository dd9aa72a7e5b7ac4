"""
Structured Logging with Structlog.

Provides JSON-formatted logs with service context for batch runs and
restore flows.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import EventDict, Processor

from entitlements.config import settings

TOKEN_PREFIX_LENGTH = 8


def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Add service-level context to all log entries."""
    event_dict["service"] = settings.service_name
    event_dict["version"] = settings.service_version
    return event_dict


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """
    Configure structured logging with structlog.

    Logs are formatted as JSON for machine parsing with the following structure:
    {
        "event": "subscriber_migrated",
        "level": "info",
        "timestamp": "2026-01-08T12:00:00.123456Z",
        "logger": "entitlements.services.migration",
        "service": "entitlement-migration",
        "version": "0.1.0",
        "user_id": "uid-123",
        ...additional context
    }
    """
    level = (level or settings.log_level).upper()
    log_format = log_format or settings.log_format

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level),
        force=True,
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_app_context,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if level == "DEBUG":
        processors.append(structlog.processors.ExceptionRenderer())
    else:
        processors.append(structlog.processors.format_exc_info)

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Usage:
        logger = get_logger(__name__)
        logger.info("subscriber_migrated", user_id=user_id, attempts=2)
    """
    return structlog.get_logger(name)  # type: ignore[no-any-return]


def redact_token(purchase_token: str) -> str:
    """Purchase tokens are bearer-like secrets; only a short prefix is ever logged."""
    return purchase_token[:TOKEN_PREFIX_LENGTH]


class log_context:
    """
    Context manager for adding structured logging context.

    Usage:
        with log_context(user_id="uid-456"):
            logger.info("importing_receipt")
            # All logs within this context will include user_id
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs

    def __enter__(self) -> None:
        """Enter context - bind context variables."""
        structlog.contextvars.bind_contextvars(**self.context)

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit context - clear context variables."""
        structlog.contextvars.unbind_contextvars(*self.context.keys())
