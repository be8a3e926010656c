"""Observability module for storyloom.

Provides structured logging.
"""

from storyloom.observability.logging import (
    close_file_logging,
    configure_logging,
    get_logger,
)

__all__ = [
    "close_file_logging",
    "configure_logging",
    "get_logger",
]
