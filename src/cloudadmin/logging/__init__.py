"""
Structured logging module.

Provides JSON and console logging with application/service context propagation.
"""

from cloudadmin.logging.context import (
    clear_log_context,
    get_log_context,
    log_context,
    set_log_context,
)
from cloudadmin.logging.formatters import ConsoleFormatter, JSONFormatter
from cloudadmin.logging.setup import get_logger, setup_logging
from cloudadmin.logging.utilities import log_exception, log_with_context

__all__ = [
    # Setup
    "setup_logging",
    "get_logger",
    # Formatters
    "JSONFormatter",
    "ConsoleFormatter",
    # Context
    "set_log_context",
    "get_log_context",
    "clear_log_context",
    "log_context",
    # Utilities
    "log_with_context",
    "log_exception",
]
