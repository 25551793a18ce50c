"""Centralized logging configuration for the document intelligence pipeline.

Every handler installed here carries a redacting filter so that SSNs,
account numbers and license numbers never reach log output in full.
"""

import logging
import sys

from docintel.parsing.field_parsers import redact_identifiers


class RedactingFilter(logging.Filter):
    """Mask identifier-shaped digit runs in rendered log messages."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = redact_identifiers(message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a consistent format.

    Calling this more than once is a no-op for handler installation; only
    the level is updated.

    Args:
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    handler.addFilter(RedactingFilter())
    root.addHandler(handler)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger.

    Args:
        name: Logger name, typically ``__name__`` of the calling module.

    Returns:
        A configured logger instance.
    """
    return logging.getLogger(name)
