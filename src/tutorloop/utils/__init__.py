"""Logging, console output and error handling helpers."""

from .error_handler import CollaboratorTimeout, ErrorHandler, call_with_timeout
from .logging import ComponentLogger, get_logger, setup_logging, turn_log_context

__all__ = [
    "CollaboratorTimeout",
    "ErrorHandler",
    "call_with_timeout",
    "ComponentLogger",
    "get_logger",
    "setup_logging",
    "turn_log_context",
]
