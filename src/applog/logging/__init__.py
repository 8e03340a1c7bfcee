"""
Two-sink logging for desktop applications.

- file: rotating ``app_<YYYY-MM-DD>_<index>.log`` files, INFO and above,
  detailed format
- console: standard error, WARNING and above, simplified format

Library: structlog front end, stdlib ``logging`` bridged in.
"""

from .core import (
    DEGRADED_LOG_DIRECTORY,
    LogDirectoryProvider,
    LoggingContext,
    LoggingState,
    configure_logging,
    flush_logs,
    get_context,
    get_log_directory,
    get_logger,
    shutdown_logging,
)
from .exceptions import (
    DirectoryUnavailable,
    FileOpenFailure,
    LoggingError,
    RotationFailure,
    WriteFailure,
)
from .types import ErrorInfo, LogEvent, Severity

__all__ = [
    "DEGRADED_LOG_DIRECTORY",
    "DirectoryUnavailable",
    "ErrorInfo",
    "FileOpenFailure",
    "LogDirectoryProvider",
    "LogEvent",
    "LoggingContext",
    "LoggingError",
    "LoggingState",
    "RotationFailure",
    "Severity",
    "WriteFailure",
    "configure_logging",
    "flush_logs",
    "get_context",
    "get_log_directory",
    "get_logger",
    "shutdown_logging",
]
