"""
Logging configuration.

Provides a structured console formatter, logger setup driven by the
``LOG_LEVEL`` environment variable, and an observer that forwards engine
events to a logger.
"""

import logging
import os
import sys
from datetime import datetime
from typing import Optional


class StructuredFormatter(logging.Formatter):
    """
    Format: [TIMESTAMP] [LEVEL] [MODULE:FUNCTION:LINE] MESSAGE
    """

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime(
            "%Y-%m-%d %H:%M:%S.%f"
        )[:-3]
        location = f"{record.module}:{record.funcName}:{record.lineno}"
        msg = f"[{timestamp}] [{record.levelname:8s}] [{location}] {record.getMessage()}"
        if record.exc_info:
            msg += f"\n{self.formatException(record.exc_info)}"
        return msg


def setup_logger(name: str = "cart_tax", level: Optional[str] = None) -> logging.Logger:
    """
    Set up a logger with structured output on stderr.

    Args:
        name: Logger name, ``cart_tax`` covers every engine module
        level: DEBUG, INFO, WARNING or ERROR. Defaults to $LOG_LEVEL or WARNING
    """
    logger = logging.getLogger(name)

    if level is None:
        level = os.getenv("LOG_LEVEL", "WARNING")
    log_level = getattr(logging, level.upper(), logging.WARNING)
    logger.setLevel(log_level)

    # Avoid duplicate handlers
    if logger.handlers:
        for existing in logger.handlers:
            existing.setLevel(log_level)
        return logger

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    handler.setFormatter(StructuredFormatter())
    logger.addHandler(handler)
    logger.propagate = False
    return logger


class LogObserver:
    """Observer that writes each engine event to a logger."""

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        level: int = logging.DEBUG,
    ) -> None:
        self.logger = logger or logging.getLogger("cart_tax.events")
        self.level = level

    def __call__(self, event: str, payload: dict) -> None:
        if not self.logger.isEnabledFor(self.level):
            return
        details = " ".join(f"{k}={v}" for k, v in payload.items())
        self.logger.log(self.level, "%s %s", event, details)


log_observer = LogObserver()
