"""Logging module with structured formatters, credential masking, and context management."""

from .context import ContextFilter, LogContext, log_context, log_subject_context
from .filters import CredentialFilter, DefaultContextFilter
from .formatters import DevFormatter, JSONFormatter
from .setup import configure_logging, get_logger, setup_logging

__all__ = [
    "setup_logging",
    "configure_logging",
    "get_logger",
    "log_context",
    "log_subject_context",
    "JSONFormatter",
    "DevFormatter",
    "CredentialFilter",
    "DefaultContextFilter",
    "LogContext",
    "ContextFilter",
]
