"""
Centralized structured logging configuration.
Import and call `setup_logging()` once at application startup.
"""

import logging

import structlog


def setup_logging(level: int | str = logging.INFO, json_output: bool = False) -> None:
    """
    Configure structlog for the entire application.

    Args:
        level: Minimum log level, as a number (10=DEBUG, 20=INFO, 30=WARNING)
               or a name ("DEBUG", "INFO", ...).
        json_output: If True, emit machine-readable JSON logs (for production).
                     If False, emit human-readable colored console logs.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if json_output:
        shared_processors.append(structlog.processors.JSONRenderer())
    else:
        shared_processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=shared_processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )
