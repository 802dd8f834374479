"""structlog configuration."""

import logging
from typing import Optional

import structlog

from mealchat.infrastructure.config import get_log_level


def configure_logging(level: Optional[str] = None, json: bool = False) -> None:
    """
    Install the structlog processor chain.

    Args:
        level: Minimum level name ("DEBUG", "INFO", ...), defaults to MEALCHAT_LOG_LEVEL
        json: Render JSON lines instead of the console format

    Example:
        >>> configure_logging("DEBUG")
        >>> structlog.get_logger(__name__).debug("Cache hit", key="fi:maito")
    """
    level = level or get_log_level()
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    renderer = structlog.processors.JSONRenderer() if json else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=False,
    )
