"""
Logging utilities for consistent logging setup across the application.
"""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(logger: logging.Logger, log_level: int) -> None:
    """
    Set up a logger with a StreamHandler and standard formatter.

    Args:
        logger: The logger instance to configure
        log_level: The logging level to set
    """
    logger.setLevel(log_level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setLevel(log_level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)


def hex_id(value: bytes | None, length: int = 16) -> str:
    """Render an identifier for log lines, truncated to ``length`` hex digits.

    Only for session ids and key ids. Key bytes are never passed here.
    """
    if not value:
        return "-"
    text = value.hex()
    return text if len(text) <= length else f"{text[:length]}..."
