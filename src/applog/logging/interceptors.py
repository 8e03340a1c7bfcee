"""
Interceptors for capturing standard library and third-party logs.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Iterable

from .types import ErrorInfo, LogEvent, Severity

if TYPE_CHECKING:
    from .core import LoggingContext


def severity_for_level(levelno: int) -> Severity | None:
    """Map a stdlib level to a severity; ``None`` for records below INFO."""
    if levelno >= logging.ERROR:
        return Severity.SEVERE
    if levelno >= logging.WARNING:
        return Severity.WARNING
    if levelno >= logging.INFO:
        return Severity.INFO
    return None


class RedirectStdLibHandler(logging.Handler):
    """
    Redirect standard library logging records into a logging context.
    This ensures third-party logs pass through the same two sinks.
    """

    def __init__(self, context: LoggingContext, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.context = context

    def emit(self, record: logging.LogRecord) -> None:
        try:
            severity = severity_for_level(record.levelno)
            if severity is None:
                return

            error = None
            if record.exc_info and record.exc_info[1] is not None:
                error = ErrorInfo.from_exception(record.exc_info[1])

            self.context.log(
                LogEvent(
                    timestamp=datetime.fromtimestamp(record.created),
                    severity=severity,
                    thread_name=record.threadName or "",
                    component=record.name or "stdlib",
                    message=record.getMessage(),
                    error=error,
                )
            )
        except Exception:
            self.handleError(record)


def intercept_loggers(names: Iterable[str]) -> None:
    """Strip handlers from the named loggers (and their children) so records propagate to root."""
    roots = tuple(names)
    if not roots:
        return

    for logger_name in roots:
        lg = logging.getLogger(logger_name)
        lg.handlers = []
        lg.propagate = True

    # Catch child loggers that were created with their own handlers
    logger_dict = logging.Logger.manager.loggerDict
    for name, logger in list(logger_dict.items()):
        if isinstance(logger, logging.PlaceHolder):
            continue
        if any(name == root or name.startswith(f"{root}.") for root in roots):
            logger.handlers = []
            logger.propagate = True
