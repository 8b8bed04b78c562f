"""
Structured logging for the session host.
"""

import logging
import sys
from typing import Optional

import structlog

from slate.slate_resolver import ResolverLogLevel

# Resolver severity -> logger method. structlog has no trace level, so trace
# messages go out at debug with `trace=True` attached.
LOG_LEVEL_MAP = {
    ResolverLogLevel.CRITICAL: "critical",
    ResolverLogLevel.ERROR: "error",
    ResolverLogLevel.WARNING: "warning",
    ResolverLogLevel.TRACE: "trace",
    ResolverLogLevel.DEBUG: "debug",
}
DEFAULT_LOG_METHOD = "info"


def map_log_level(level) -> str:
    return LOG_LEVEL_MAP.get(level, DEFAULT_LOG_METHOD)


def emit(logger, level, message: str, exc: Optional[BaseException] = None, **kw) -> None:
    """Sends one resolver diagnostic to `logger` at the mapped severity."""
    method = map_log_level(level)
    if exc is not None:
        kw["exc_info"] = exc
    if method == "trace":
        logger.debug(message, trace=True, **kw)
        return
    getattr(logger, method)(message, **kw)


def setup_logging(log_level: str = "WARNING", log_format: str = "console", stream=None) -> None:
    """Configures structlog over the stdlib logging module."""
    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stderr,
        level=getattr(logging, log_level.upper(), logging.WARNING),
        force=True,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
