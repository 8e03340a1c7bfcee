"""
Log event data model.
"""

from __future__ import annotations

import threading
import traceback
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from functools import total_ordering


@total_ordering
class Severity(Enum):
    """Ordered log severity. INFO < WARNING < SEVERE."""

    INFO = 800
    WARNING = 900
    SEVERE = 1000

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.value < other.value

    @classmethod
    def from_method_name(cls, method_name: str) -> Severity:
        """Map a logger method name (``info``, ``warn``, ``error`` ...) to a severity."""
        name = method_name.lower()
        if name in {"warn", "warning"}:
            return cls.WARNING
        if name in {"severe", "error", "exception", "critical", "fatal"}:
            return cls.SEVERE
        return cls.INFO


@dataclass(frozen=True)
class ErrorInfo:
    """Snapshot of an exception and its cause chain."""

    type_name: str
    message: str
    frames: tuple[str, ...] = ()
    cause: ErrorInfo | None = None

    @classmethod
    def from_exception(cls, exc: BaseException) -> ErrorInfo:
        chain: list[BaseException] = []
        seen: set[int] = set()
        current: BaseException | None = exc
        while current is not None and id(current) not in seen:
            seen.add(id(current))
            chain.append(current)
            if current.__cause__ is not None:
                current = current.__cause__
            elif not current.__suppress_context__:
                current = current.__context__
            else:
                current = None

        # chain always holds exc itself; build it up from the root cause.
        *outer, root = chain
        info = cls(type_name=type(root).__name__, message=str(root), frames=_format_frames(root))
        for item in reversed(outer):
            info = cls(
                type_name=type(item).__name__,
                message=str(item),
                frames=_format_frames(item),
                cause=info,
            )
        return info

    def chain(self) -> list[ErrorInfo]:
        """Return this error followed by its causes, outermost first."""
        items: list[ErrorInfo] = []
        current: ErrorInfo | None = self
        while current is not None:
            items.append(current)
            current = current.cause
        return items


def _format_frames(exc: BaseException) -> tuple[str, ...]:
    return tuple(
        f'File "{frame.filename}", line {frame.lineno}, in {frame.name}'
        for frame in traceback.extract_tb(exc.__traceback__)
    )


@dataclass(frozen=True)
class LogEvent:
    """A single log record as seen by the sinks."""

    timestamp: datetime
    severity: Severity
    thread_name: str
    component: str
    message: str
    error: ErrorInfo | None = None

    @classmethod
    def create(
        cls,
        severity: Severity,
        component: str,
        message: str,
        *,
        error: BaseException | ErrorInfo | None = None,
    ) -> LogEvent:
        """Build an event stamped with the current local time and thread."""
        if isinstance(error, BaseException):
            error = ErrorInfo.from_exception(error)
        return cls(
            timestamp=datetime.now(),
            severity=severity,
            thread_name=threading.current_thread().name,
            component=component,
            message=message,
            error=error,
        )

    @property
    def date_key(self) -> date:
        """Local calendar day used as the rotation key."""
        if self.timestamp.tzinfo is not None:
            return self.timestamp.astimezone().date()
        return self.timestamp.date()
