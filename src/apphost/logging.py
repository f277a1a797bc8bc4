"""
Logging configuration.

Provides a single entry point for configuring structured logging.
Configuration is read from environment variables:

- APPHOST_LOG_LEVEL: DEBUG | INFO | WARNING | ERROR (default: INFO)
- APPHOST_LOG_FORMAT: json | console (default: console)

Usage:
    from apphost.logging import configure_logging, get_logger

    configure_logging()
    log = get_logger(__name__)
    log.info("resource.healthy", resource="cache")
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any, Literal

import structlog
from structlog.types import Processor

# Track if logging has been configured
_configured = False


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    force: bool = False,
) -> None:
    """
    Configure structured logging for the app host.

    Should be called once at process startup (CLI entry or ``main()``).
    Subsequent calls are no-ops unless force=True.

    Args:
        level: Log level (overrides APPHOST_LOG_LEVEL env var)
        format: Output format (overrides APPHOST_LOG_FORMAT env var)
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    log_level = (level or os.environ.get("APPHOST_LOG_LEVEL", "INFO")).upper()
    log_format = (format or os.environ.get("APPHOST_LOG_FORMAT", "console")).lower()

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        # UTC ISO-8601 timestamps
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
        force=True,
    )
    logging.getLogger("apphost").setLevel(getattr(logging, log_level))

    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger bound to ``name`` (typically ``__name__``)."""
    return structlog.get_logger(name)
