"""
Log line formatters.

Both formatters are pure: the same event always renders to the same text.
"""

from __future__ import annotations

from datetime import datetime

from .types import ErrorInfo, LogEvent

# =============================================================================
# Detailed Formatter (file sink)
# =============================================================================


class DetailedFormatter:
    """Renders ``{timestamp} {level<7} [{thread<15}] {component} - {message}``.

    An attached error adds an ``Exception:`` line followed by indented stack
    frames and ``Caused by:`` blocks, cut off after ``frame_limit`` lines.
    """

    TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
    LEVEL_WIDTH = 7
    THREAD_WIDTH = 15
    INDENT = "    "
    DEFAULT_FRAME_LIMIT = 10

    def __init__(self, frame_limit: int = DEFAULT_FRAME_LIMIT) -> None:
        if frame_limit < 0:
            raise ValueError("frame_limit must be >= 0")
        self.frame_limit = frame_limit

    @classmethod
    def format_timestamp(cls, timestamp: datetime) -> str:
        """Local wall-clock time with millisecond precision."""
        if timestamp.tzinfo is not None:
            timestamp = timestamp.astimezone()
        return f"{timestamp.strftime(cls.TIMESTAMP_FORMAT)}.{timestamp.microsecond // 1000:03d}"

    def format(self, event: LogEvent) -> str:
        line = (
            f"{self.format_timestamp(event.timestamp)} "
            f"{event.severity.name:<{self.LEVEL_WIDTH}} "
            f"[{event.thread_name:<{self.THREAD_WIDTH}}] "
            f"{event.component} - {event.message}"
        )
        if event.error is None:
            return line
        return "\n".join([line, *self.format_error(event.error)])

    def format_error(self, error: ErrorInfo) -> list[str]:
        detail: list[str] = []
        for index, item in enumerate(error.chain()):
            if index > 0:
                detail.append(f"{self.INDENT}Caused by: {item.type_name}: {item.message}")
            detail.extend(f"{self.INDENT}{frame}" for frame in item.frames)

        if len(detail) > self.frame_limit:
            hidden = len(detail) - self.frame_limit
            detail = detail[: self.frame_limit] + [f"{self.INDENT}... {hidden} more lines"]

        return [f"Exception: {error.type_name}: {error.message}", *detail]


# =============================================================================
# Simplified Formatter (console sink)
# =============================================================================


class SimpleFormatter:
    """Renders ``{level} {component}: {message}``."""

    @staticmethod
    def format(event: LogEvent) -> str:
        return f"{event.severity.name} {event.component}: {event.message}"
