"""
Structured Logging Setup

Every module logs through structlog with snake_case event names and
key/value context, e.g. ``logger.info("refresh_completed", splits=4)``.
configure_logging() installs the shared processor chain once per process.
"""

import logging
import sys
from typing import Optional

import structlog

from splitledger.config.settings import get_settings


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        level: Log level name; defaults to AppSettings.log_level
        json_logs: JSON renderer if True, console renderer if False;
                   defaults to AppSettings.json_logs
    """
    app_settings = get_settings().app
    level = (level or app_settings.log_level).upper()
    json_logs = app_settings.json_logs if json_logs is None else json_logs

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level, logging.INFO),
        force=True,
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
