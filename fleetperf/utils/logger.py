"""Structured JSON logging configuration."""

import logging
import sys
from typing import IO, Optional

from pythonjsonlogger import jsonlogger

LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(host)s %(message)s'


class HostFieldFilter(logging.Filter):
    """Give every record a `host` field; fleet-wide records carry null."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, 'host'):
            record.host = None
        return True


def setup_logger(
    name: str = "fleetperf",
    level: str = "INFO",
    stream: Optional[IO[str]] = None
) -> logging.Logger:
    """
    Configure structured JSON logging.

    Records are written to stderr by default, leaving stdout to the
    workload being measured. Per-host records pass `extra={"host": ...}`.

    Args:
        name: Logger name
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        stream: Output stream, defaults to sys.stderr

    Returns:
        logging.Logger: Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(getattr(logging, level.upper()))

    # Remove existing handlers to avoid duplicates
    logger.handlers = []

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(HostFieldFilter())
    handler.setFormatter(jsonlogger.JsonFormatter(LOG_FORMAT, timestamp=True))
    logger.addHandler(handler)

    logger.propagate = False

    return logger
