"""Structured logging setup.

Call ``configure_logging`` once from a script entry point; library modules
just use ``structlog.get_logger(__name__)``.
"""

import logging
import sys

import structlog
from structlog.stdlib import LoggerFactory, add_logger_name


def configure_logging(log_level: str = "INFO", log_format: str = "console") -> None:
    """Configure structlog on top of the standard library logger.

    ``log_format`` is ``console`` for humans or ``json`` for machine-readable
    experiment logs.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level.upper()),
    )

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        add_logger_name,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(app="trecfuse")


def get_logger(name: str) -> structlog.BoundLogger:
    return structlog.get_logger(name)
