"""structlog configuration.

Learn: Modules just call structlog.get_logger() and log dotted event
names with key/value context (e.g. logger.info("relay.bound",
pending=3)). This module decides how those entries are rendered:
colored console output in development, one JSON object per line
everywhere else. Context bound via structlog.contextvars (request_id)
is merged into every entry.

structlog hands the rendered line to the stdlib logging tree, so
uvicorn's own loggers and ours share one level and one output stream.
"""

import logging
import sys
from typing import Optional

import structlog

from playground.config import settings


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> None:
    """Configure structlog and the stdlib root logger."""
    level_name = (level or settings.log_level).upper()
    log_level = logging.getLevelName(level_name)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    if json_logs is None:
        json_logs = settings.log_json or settings.environment != "development"

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    logging.getLogger().setLevel(log_level)
