"""Logging configuration with secret redaction."""

import logging
import re
from typing import ClassVar


class SecretRedactingFilter(logging.Filter):
    """Filter that redacts API tokens from log messages."""

    # Patterns that should be redacted
    SECRET_PATTERNS: ClassVar[list[tuple[re.Pattern[str], str]]] = [
        # Generic Bearer tokens
        (re.compile(r"Bearer\s+[a-zA-Z0-9_\-\.]+"), "Bearer [REDACTED]"),
        # Authorization headers
        (re.compile(r"(Authorization:\s*)[^\s,\]]+", re.IGNORECASE), r"\1[REDACTED]"),
        # Tokens in key=value format, including the token query parameter
        (re.compile(r"(\btoken[=:]\s*)[^\s,\]&]+", re.IGNORECASE), r"\1[REDACTED]"),
        # API keys
        (re.compile(r"(api[_-]?key[=:]\s*)[^\s,\]&]+", re.IGNORECASE), r"\1[REDACTED]"),
    ]

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter and redact secrets from log record."""
        record.msg = self._redact(str(record.msg))
        if record.args:
            record.args = tuple(
                self._redact(str(arg)) if isinstance(arg, str) else arg for arg in record.args
            )
        return True

    def _redact(self, text: str) -> str:
        """Redact secrets from text."""
        for pattern, replacement in self.SECRET_PATTERNS:
            text = pattern.sub(replacement, text)
        return text


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application.

    Safe to call more than once: the level is updated and each root handler
    carries a single redaction filter.

    Args:
        verbose: Enable debug level logging.
    """
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers:
        if not any(isinstance(f, SecretRedactingFilter) for f in handler.filters):
            handler.addFilter(SecretRedactingFilter())

    # Set library loggers to WARNING to reduce noise
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("filelock").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the given name.

    Args:
        name: Logger name, typically __name__ of the calling module.

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(name)
