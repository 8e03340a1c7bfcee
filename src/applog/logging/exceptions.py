"""
Logging failure taxonomy.

None of these escape to the application: sinks and the context catch them,
record them, and report each kind once.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional


class LoggingError(Exception):
    """Root of all logging infrastructure failures."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details = details or {}


class DirectoryUnavailable(LoggingError):
    """The log directory could not be resolved, created or written to."""

    def __init__(self, *, directory: str | Path | None, reason: str) -> None:
        message = f"Log directory '{directory}' is unavailable: {reason}"
        details = {"directory": str(directory) if directory is not None else None, "reason": reason}
        super().__init__(message, code="DIRECTORY_UNAVAILABLE", details=details)


class FileOpenFailure(LoggingError):
    """A log file could not be opened for appending."""

    def __init__(self, *, path: str | Path, reason: str) -> None:
        message = f"Cannot open log file '{path}': {reason}"
        super().__init__(message, code="FILE_OPEN_FAILURE", details={"path": str(path), "reason": reason})


class WriteFailure(LoggingError):
    """Appending to, flushing or closing the open log file failed."""

    def __init__(self, *, path: str | Path | None, reason: str) -> None:
        message = f"Cannot write log file '{path}': {reason}"
        details = {"path": str(path) if path is not None else None, "reason": reason}
        super().__init__(message, code="WRITE_FAILURE", details=details)


class RotationFailure(LoggingError):
    """An evicted log file could not be deleted during rollover."""

    def __init__(self, *, path: str | Path, reason: str) -> None:
        message = f"Cannot delete rotated log file '{path}': {reason}"
        super().__init__(message, code="ROTATION_FAILURE", details={"path": str(path), "reason": reason})
