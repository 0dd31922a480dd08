"""Logging setup for the stdlib loggers and the structlog HTTP adapters."""

import logging
import os
from typing import Optional

import structlog

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: Optional[str] = None) -> int:
    """
    Configure logging from LOG_LEVEL (default INFO).

    Returns:
        The numeric level applied
    """
    name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    numeric = getattr(logging, name, None)
    if not isinstance(numeric, int):
        numeric = logging.INFO

    logging.basicConfig(level=numeric, format=LOG_FORMAT)
    logging.getLogger("mealchat").setLevel(numeric)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
    )
    return numeric
