"""Logging infrastructure: configuration, formatters, lazy and operation logging."""

from __future__ import annotations

from .config import configure_logging, reset_logging_state, setup_logging
from .formatters import JSONFormatter
from .lazy import LazyLoggerAdapter, get_lazy_logger
from .operations import OperationContext, log_db_operation, log_operation, operation_context

__all__ = [
    "JSONFormatter",
    "LazyLoggerAdapter",
    "OperationContext",
    "configure_logging",
    "get_lazy_logger",
    "log_db_operation",
    "log_operation",
    "operation_context",
    "reset_logging_state",
    "setup_logging",
]
