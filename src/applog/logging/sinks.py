"""
Log sink abstractions and the two concrete sinks.
"""

from __future__ import annotations

import os
import sys
import threading
from abc import ABC, abstractmethod
from datetime import date
from pathlib import Path
from typing import BinaryIO, Callable, Iterator, Optional, TextIO

from .exceptions import (
    DirectoryUnavailable,
    FileOpenFailure,
    LoggingError,
    RotationFailure,
    WriteFailure,
)
from .formatters import DetailedFormatter, SimpleFormatter
from .rotation import RotationDecision, RotationPolicy
from .types import LogEvent, Severity

FailureReporter = Callable[[LoggingError], None]


# =============================================================================
# Sink Abstraction
# =============================================================================


class BaseSink(ABC):
    """Abstract base class for log sinks."""

    threshold: Severity = Severity.INFO

    def accepts(self, event: LogEvent) -> bool:
        return event.severity >= self.threshold

    @abstractmethod
    def emit(self, event: LogEvent) -> None:
        """Emit a log event to the sink."""
        ...

    @abstractmethod
    def flush(self) -> None:
        """Push buffered output to its destination."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the sink and release resources."""
        ...


# =============================================================================
# Console Sink
# =============================================================================


class ConsoleSink(BaseSink):
    """Best-effort sink writing simplified lines to the error stream.

    Args:
        stream: Output stream. When omitted, ``sys.stderr`` is looked up on
            every write so redirection after construction is honoured.
    """

    threshold = Severity.WARNING

    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream
        self._lock = threading.Lock()

    @property
    def stream(self) -> Optional[TextIO]:
        """Target stream; ``None`` when the process has no console (pythonw, frozen GUI builds)."""
        return self._stream or sys.stderr

    def emit(self, event: LogEvent) -> None:
        if not self.accepts(event):
            return
        output = SimpleFormatter.format(event)
        with self._lock:
            stream = self.stream
            if stream is None:
                return
            try:
                stream.write(output + "\n")
                stream.flush()
            except (OSError, ValueError):
                pass  # console output is best effort

    def flush(self) -> None:
        with self._lock:
            stream = self.stream
            if stream is None:
                return
            try:
                stream.flush()
            except (OSError, ValueError):
                pass

    def close(self) -> None:
        self.flush()


# =============================================================================
# File Sink
# =============================================================================


class FileSink(BaseSink):
    """Rotating file sink writing detailed lines to ``<prefix>_<date>_<index>.log``.

    Exactly one file is open at a time. The rotation decision and the write
    that follows it happen under one lock. Open or write failures make the
    sink unusable; each failure kind is handed to ``reporter`` only once.

    Raises:
        DirectoryUnavailable: ``directory`` is missing or not writable.
        FileOpenFailure: today's log file cannot be opened.
    """

    threshold = Severity.INFO

    def __init__(
        self,
        directory: str | Path,
        *,
        policy: RotationPolicy | None = None,
        formatter: DetailedFormatter | None = None,
        reporter: FailureReporter | None = None,
        today: date | None = None,
    ):
        self._directory = Path(directory)
        self._policy = policy or RotationPolicy()
        self._formatter = formatter or DetailedFormatter()
        self._reporter = reporter
        self._lock = threading.Lock()
        self._reported: set[str] = set()

        self._file: BinaryIO | None = None
        self._path: Path | None = None
        self._date: date | None = None
        self._index = 0
        self._size = 0
        self._usable = True
        self._closed = False

        self._check_directory()
        day = today or date.today()
        self._open(day, max(self._existing_indices(day), default=0))

    # -- introspection ---------------------------------------------------

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def current_date(self) -> date | None:
        return self._date

    @property
    def index(self) -> int:
        return self._index

    @property
    def size(self) -> int:
        return self._size

    @property
    def usable(self) -> bool:
        return self._usable and not self._closed

    @property
    def reported_failures(self) -> frozenset[str]:
        return frozenset(self._reported)

    # -- sink API --------------------------------------------------------

    def emit(self, event: LogEvent) -> None:
        if not self.accepts(event):
            return
        data = (self._formatter.format(event) + "\n").encode("utf-8", errors="replace")
        day = event.date_key

        with self._lock:
            if not self.usable:
                return
            try:
                decision = self._policy.decide(self._date, day, self._index, self._size, len(data))
                if decision is RotationDecision.ROTATE_NEW_DAY:
                    # Same as startup: the day's newest file, index 0 when fresh.
                    self._rotate(day, max(self._existing_indices(day), default=0))
                    decision = self._policy.decide(self._date, day, self._index, self._size, len(data))
                if decision is RotationDecision.ROTATE_SAME_DAY:
                    self._rotate(self._date, self._policy.next_index(decision, self._index))
                self._write(data)
            except LoggingError as exc:
                self._usable = False
                self._report(exc)

    def flush(self) -> None:
        with self._lock:
            if self._file is None:
                return
            try:
                self._file.flush()
                os.fsync(self._file.fileno())
            except OSError as exc:
                self._report(WriteFailure(path=self._path, reason=str(exc)))

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._close_current()

    # -- internals (lock held) -------------------------------------------

    def _check_directory(self) -> None:
        if not self._directory.is_dir():
            raise DirectoryUnavailable(directory=self._directory, reason="not a directory")
        if not os.access(self._directory, os.W_OK | os.X_OK):
            raise DirectoryUnavailable(directory=self._directory, reason="not writable")

    def _existing_indices(self, day: date) -> Iterator[int]:
        try:
            entries = list(self._directory.iterdir())
        except OSError:
            return
        for entry in entries:
            parsed = self._policy.parse_file_name(entry.name)
            if parsed is not None and parsed[0] == day:
                yield parsed[1]

    def _open(self, day: date, index: int) -> None:
        path = self._directory / self._policy.file_name(day, index)
        try:
            handle = open(path, "ab")
            size = os.fstat(handle.fileno()).st_size
        except OSError as exc:
            raise FileOpenFailure(path=path, reason=str(exc)) from exc
        self._file, self._path = handle, path
        self._date, self._index, self._size = day, index, size

    def _rotate(self, day: date, index: int) -> None:
        self._close_current()
        for stale in self._policy.indices_to_evict(self._existing_indices(day), index):
            stale_path = self._directory / self._policy.file_name(day, stale)
            try:
                stale_path.unlink()
            except FileNotFoundError:
                pass
            except OSError as exc:
                # Non-fatal: the new file is still opened and written.
                self._report(RotationFailure(path=stale_path, reason=str(exc)))
        self._open(day, index)

    def _write(self, data: bytes) -> None:
        if self._file is None:
            raise WriteFailure(path=self._path, reason="no open log file")
        try:
            self._file.write(data)
            self._file.flush()
        except OSError as exc:
            raise WriteFailure(path=self._path, reason=str(exc)) from exc
        self._size += len(data)

    def _close_current(self) -> None:
        handle, self._file = self._file, None
        if handle is None:
            return
        try:
            handle.close()
        except OSError as exc:
            self._report(WriteFailure(path=self._path, reason=str(exc)))

    def _report(self, exc: LoggingError) -> None:
        if exc.code in self._reported:
            return
        self._reported.add(exc.code)
        if self._reporter is not None:
            self._reporter(exc)
