"""Logging setup and structured event helper."""

import logging
from typing import Any

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Install the root handler once at startup."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)


def log_event(
    logger: logging.Logger,
    message: str,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Log `message` with key/value context under the `structured` extra."""
    logger.log(level, message, extra={"structured": fields})
