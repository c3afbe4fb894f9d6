"""
Logging configuration and utilities.

This module provides:
- Centralized logger creation
- Consistent log formatting across modules
- URL redaction so query strings never reach the logs
"""

from __future__ import annotations

import logging
import os
from urllib.parse import urlsplit, urlunsplit




# ==== LOGGER FACTORY ==== #

def get_logger(name: str) -> logging.Logger:
    """
    Get or create logger with standardized formatting.

    Args:
        name: Logger name (typically __name__ from calling module)

    Returns:
        Configured logging.Logger instance

    Format:
        YYYY-MM-DD HH:MM:SS,mmm LEVEL module.name message

    Example:
        logger = get_logger(__name__)
        logger.info("Search started")
        # Output: 2025-11-15 10:30:45,123 INFO stealth_search.pipelines.orchestrator Search started

    Note:
        Logger is configured only on first call for each name. The level
        comes from LOG_LEVEL (default INFO).
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(os.getenv("LOG_LEVEL", "INFO").upper())

    return logger




# ==== REDACTION ==== #

def safe_url(url: str) -> str:
    """
    Strip query string, fragment and credentials from a URL for logging.

    Example:
        safe_url("https://user:pw@www.google.com/search?q=secret")
        -> "https://www.google.com/search"
    """
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<invalid url>"

    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"

    return urlunsplit((parts.scheme, host, parts.path, "", ""))
