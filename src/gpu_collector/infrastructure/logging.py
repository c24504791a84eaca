"""Structured logging configuration."""

from __future__ import annotations

import logging
import sys

import structlog
from structlog.types import Processor


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
) -> structlog.stdlib.BoundLogger:
    """
    Set up structured logging with structlog.

    Domain services log through stdlib ``logging``; the handler installed
    here writes those records to stdout alongside structlog events.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format ('json' or 'console')

    Returns:
        The collector's root bound logger
    """
    log_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s", stream=sys.stdout, level=log_level)

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    return get_logger("gpu_collector")


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger for the application and infrastructure layers."""
    return structlog.get_logger(name)
