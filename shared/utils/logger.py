"""
Logging setup shared by the service modules.

Every module logger writes to stdout, and optionally to LOG_FILE.
Generated secrets must never end up in a log line, so each handler
masks crypt-format hashes before a record is emitted.
"""

import logging
import re
import sys
from pathlib import Path

from .config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# $6$rounds=5000$salt$hash and $y$j9T$salt$hash
CRYPT_HASH_PATTERN = re.compile(r"\$(?:6|y)\$[^\s'\",}]+")


class RedactSecrets(logging.Filter):
    """Replace crypt hashes in a record's message with a fixed marker."""

    marker = "[REDACTED]"

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = CRYPT_HASH_PATTERN.sub(self.marker, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def _handler(handler: logging.Handler) -> logging.Handler:
    handler.setLevel(settings.LOG_LEVEL)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(RedactSecrets())
    return handler


def setup_logger(name: str) -> logging.Logger:
    """
    Return a module logger, configuring its handlers on first use.

    Args:
        name: Logger name (usually __name__ of the module)
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        logger.setLevel(settings.LOG_LEVEL)
        logger.addHandler(_handler(logging.StreamHandler(sys.stdout)))

        if settings.LOG_FILE:
            log_path = Path(settings.LOG_FILE)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            logger.addHandler(_handler(logging.FileHandler(log_path)))

    return logger


def log_error(logger: logging.Logger, error: Exception, context: str = "") -> None:
    """
    Log an unexpected error, with the traceback in debug mode.

    Args:
        logger: Logger instance
        error: Exception that occurred
        context: Where it occurred, e.g. "GET /api/v1/template/cloud-init"
    """
    prefix = f"{context}: " if context else ""
    logger.error(f"{prefix}{type(error).__name__}: {error}")

    if settings.DEBUG:
        logger.error("Traceback:", exc_info=error)
