"""
Structured Logging Configuration using structlog

Configures structlog for the validation engine and any host application that
embeds it. Modules obtain their loggers with ``structlog.get_logger`` using a
dotted name (``business.validators``, ``config.settings``) and log key/value
pairs; this module decides how those events are rendered.

Log events never carry raw field values. Validation failures are logged with
the entity name, the mutation mode and the failing field paths only.

Environment variables:
    LOG_LEVEL: Minimum level passed to the standard library root logger
    LOG_FORMAT: ``json`` for aggregation pipelines, ``console`` for development
    COLORED_CONSOLE_OUTPUT: Colorize the console renderer
"""

import logging
import logging.config
import os
from typing import Any, List, Optional

import structlog


class LoggingConfig:
    """Logging configuration read from the environment at import time."""

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')  # json, console
    COLORED_CONSOLE_OUTPUT = os.getenv('COLORED_CONSOLE_OUTPUT', 'false').lower() == 'true'
    APPLICATION_NAME = os.getenv('APP_NAME', 'clubhub')


def build_processors(log_format: Optional[str] = None) -> List[Any]:
    """
    Return the structlog processor chain ending in the configured renderer.

    Args:
        log_format: Overrides ``LOG_FORMAT`` when given
    """
    log_format = (log_format or LoggingConfig.LOG_FORMAT).lower()

    processors: List[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == 'console':
        processors.append(structlog.dev.ConsoleRenderer(colors=LoggingConfig.COLORED_CONSOLE_OUTPUT))
    else:
        # Default to JSON for log aggregation
        processors.append(structlog.processors.JSONRenderer())

    return processors


def setup_structured_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
) -> structlog.stdlib.BoundLogger:
    """
    Configure structlog and the standard library root logger.

    Args:
        log_level: Overrides ``LOG_LEVEL`` when given
        log_format: Overrides ``LOG_FORMAT`` when given

    Returns:
        Logger bound to the application name
    """
    level = (log_level or LoggingConfig.LOG_LEVEL).upper()

    structlog.configure(
        processors=build_processors(log_format),
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'plain': {'format': '%(message)s'},
        },
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'formatter': 'plain',
                'stream': 'ext://sys.stdout',
            },
        },
        'root': {
            'handlers': ['console'],
            'level': level,
        },
    })

    logger = structlog.get_logger(LoggingConfig.APPLICATION_NAME)
    logger.info("Structured logging initialized",
                log_level=level,
                log_format=(log_format or LoggingConfig.LOG_FORMAT))
    return logger


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger for ``name``."""
    return structlog.get_logger(name)
