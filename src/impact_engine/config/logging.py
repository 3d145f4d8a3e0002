"""Structured logging setup.

Log records are written to stderr so that command output on stdout stays
machine-readable.
"""

import logging
import sys

import structlog


def configure_logging(level: str = "WARNING", json: bool = False) -> None:
    """Configure structlog and the stdlib root logger once per process."""
    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.WARNING

    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=log_level, force=True)

    renderer = (
        structlog.processors.JSONRenderer()
        if json
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structured logger bound to *name*."""
    return structlog.get_logger(name)
