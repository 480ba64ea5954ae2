"""Structured logging configuration using structlog.

Call configure_logging() (or setup_logging()) once at host start-up before any log calls.
"""

from __future__ import annotations

import logging

import structlog

from decisioning.config.settings import LoggingSettings, get_settings


def setup_logging(*, json_output: bool = True, log_level: str = "INFO") -> None:
    """Configure structlog for the decisioning core.

    Args:
        json_output: If True, render logs as JSON. If False, use dev-friendly console output.
        log_level: Minimum log level to emit (DEBUG, INFO, WARNING, ERROR).
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json_output:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[*shared_processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(log_level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(settings: LoggingSettings | None = None) -> None:
    """Apply LoggingSettings, loading them from the environment when omitted."""
    if settings is None:
        settings = get_settings().logging
    setup_logging(json_output=settings.json_output, log_level=settings.level)
