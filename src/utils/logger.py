"""Centralized logging setup for the document OCR service.

All modules log through named stdlib loggers; the root handler is
installed once by the CLI or server entry point.
"""

import logging
import sys

_NOISY_LOGGERS = ("httpx", "httpcore", "multipart")


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a standard format.

    Unknown level names fall back to INFO. HTTP client libraries are held
    at WARNING so that each OCR request does not produce a log line.

    Args:
        level: Logging level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()

    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Return the named logger for a module (``__name__``)."""
    return logging.getLogger(name)
