"""
Core logging context and process-wide initialization.
"""

from __future__ import annotations

import logging
import sys
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TextIO, Union

import structlog
from structlog.typing import EventDict, WrappedLogger

from applog.config import LoggingSettings
from applog.config import settings as app_settings

from .exceptions import DirectoryUnavailable, LoggingError, RotationFailure
from .formatters import DetailedFormatter
from .rotation import RotationPolicy
from .sinks import BaseSink, ConsoleSink, FileSink
from .types import ErrorInfo, LogEvent, Severity

LogDirectoryProvider = Callable[[], Union[str, Path]]

DEGRADED_LOG_DIRECTORY = ""
INTERNAL_COMPONENT = "applog.logging"


class LoggingState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    DEGRADED = "degraded"


# =============================================================================
# Structlog Processors
# =============================================================================


def add_logger_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add logger name to log event."""
    event_dict["logger"] = event_dict.pop("_name", "root")
    return event_dict


def add_severity(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["severity"] = Severity.from_method_name(method_name)
    return event_dict


def add_timestamp(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Add local wall-clock timestamp to log event."""
    event_dict["timestamp"] = datetime.now()
    return event_dict


def add_thread_name(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    event_dict["thread"] = threading.current_thread().name
    return event_dict


def add_error_info(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace ``exc_info`` with an :class:`ErrorInfo` snapshot."""
    exc_info = event_dict.pop("exc_info", None)
    if exc_info is True:
        exc = sys.exc_info()[1]
    elif isinstance(exc_info, tuple):
        exc = exc_info[1]
    elif isinstance(exc_info, BaseException):
        exc = exc_info
    else:
        exc = None
    if exc is not None:
        event_dict["_error"] = ErrorInfo.from_exception(exc)
    return event_dict


_EVENT_KEYS = {"event", "logger", "severity", "timestamp", "thread", "_error"}


def build_event(event_dict: EventDict) -> LogEvent:
    """Turn a processed event dict into a :class:`LogEvent`.

    Keys bound on the logger are appended to the message as ``key=value``.
    """
    message = str(event_dict.get("event", ""))
    extras = [f"{k}={v}" for k, v in event_dict.items() if k not in _EVENT_KEYS]
    if extras:
        message = f"{message} " + " ".join(extras)
    return LogEvent(
        timestamp=event_dict.get("timestamp") or datetime.now(),
        severity=event_dict.get("severity", Severity.INFO),
        thread_name=event_dict.get("thread") or threading.current_thread().name,
        component=str(event_dict.get("logger", "root")),
        message=message,
        error=event_dict.get("_error"),
    )


class SeverityBoundLogger(structlog.BoundLoggerBase):
    """Bound logger exposing the three severities."""

    def info(self, event: Optional[str] = None, **kw: Any) -> Any:
        return self._proxy_to_logger("info", event, **kw)

    def warning(self, event: Optional[str] = None, **kw: Any) -> Any:
        return self._proxy_to_logger("warning", event, **kw)

    warn = warning

    def severe(self, event: Optional[str] = None, **kw: Any) -> Any:
        return self._proxy_to_logger("severe", event, **kw)

    error = severe

    def exception(self, event: Optional[str] = None, **kw: Any) -> Any:
        kw.setdefault("exc_info", True)
        return self._proxy_to_logger("severe", event, **kw)


class _NopLogger:
    """Wrapped logger that discards the renderer's empty output."""

    def msg(self, message: str) -> None:
        pass

    info = warning = severe = msg


# =============================================================================
# Logging Context
# =============================================================================


class LoggingContext:
    """Two-sink logging facade: rotating file (>= INFO) and console (>= WARNING).

    Build one per process (``configure_logging`` does this) or one per test.
    ``initialize`` never raises; when the file sink cannot be built the context
    runs console-only in ``DEGRADED`` state until initialized again.

    Args:
        settings: Rotation and formatting settings.
        directory_provider: Zero-argument callable returning the log directory.
            Defaults to ``settings.directory`` or the platform logs directory.
        console_stream: Console output stream (default: ``sys.stderr``).
        app_name: Application name for the platform logs directory.
    """

    def __init__(
        self,
        settings: LoggingSettings | None = None,
        *,
        directory_provider: LogDirectoryProvider | None = None,
        console_stream: TextIO | None = None,
        app_name: str | None = None,
    ):
        self._settings = settings or LoggingSettings()
        self._directory_provider = directory_provider or _default_directory_provider(self._settings, app_name)
        self._policy = RotationPolicy(
            max_bytes=self._settings.max_bytes,
            max_files=self._settings.max_files,
            file_prefix=self._settings.file_prefix,
        )
        self._formatter = DetailedFormatter(frame_limit=self._settings.frame_limit)
        self._console = ConsoleSink(stream=console_stream)
        self._file_sink: FileSink | None = None
        self._state = LoggingState.UNINITIALIZED
        self._init_lock = threading.Lock()
        self._log_directory = DEGRADED_LOG_DIRECTORY
        self._last_failure: LoggingError | None = None
        self._sink_errors: dict[str, BaseException] = {}

    # -- state -----------------------------------------------------------

    @property
    def state(self) -> LoggingState:
        """Observed state; a file sink that disabled itself after startup reads as ``DEGRADED``."""
        state, sink = self._state, self._file_sink
        if state is LoggingState.READY and (sink is None or not sink.usable):
            return LoggingState.DEGRADED
        return state

    @property
    def is_degraded(self) -> bool:
        return self.state is LoggingState.DEGRADED

    @property
    def log_directory(self) -> str:
        """Directory in use, or ``""`` when degraded or not initialized."""
        if self.state is not LoggingState.READY:
            return DEGRADED_LOG_DIRECTORY
        return self._log_directory

    @property
    def last_failure(self) -> LoggingError | None:
        return self._last_failure

    @property
    def sink_errors(self) -> dict[str, BaseException]:
        return dict(self._sink_errors)

    @property
    def console_sink(self) -> ConsoleSink:
        return self._console

    @property
    def file_sink(self) -> FileSink | None:
        return self._file_sink

    # -- lifecycle -------------------------------------------------------

    def initialize(self) -> LoggingState:
        """Build the file sink; fall back to console-only on failure."""
        with self._init_lock:
            if self._state is LoggingState.READY and self._file_sink is not None and self._file_sink.usable:
                return self._state

            self._state = LoggingState.INITIALIZING
            previous, self._file_sink = self._file_sink, None
            if previous is not None:
                previous.close()

            try:
                directory = self._resolve_directory()
                sink = FileSink(
                    directory,
                    policy=self._policy,
                    formatter=self._formatter,
                    reporter=self._report_failure,
                )
            except LoggingError as exc:
                self._last_failure = exc
                self._log_directory = DEGRADED_LOG_DIRECTORY
                self._state = LoggingState.DEGRADED
                self._console.emit(
                    LogEvent.create(
                        Severity.WARNING,
                        INTERNAL_COMPONENT,
                        f"File logging unavailable, continuing with console output only ({exc})",
                    )
                )
                return self._state

            self._file_sink = sink
            self._log_directory = str(sink.directory)
            self._state = LoggingState.READY
            return self._state

    def close(self) -> None:
        """Flush and release the log file; the context returns to ``UNINITIALIZED``."""
        with self._init_lock:
            sink, self._file_sink = self._file_sink, None
            if sink is not None:
                sink.flush()
                sink.close()
            self._console.flush()
            self._log_directory = DEGRADED_LOG_DIRECTORY
            self._state = LoggingState.UNINITIALIZED

    # -- logging ---------------------------------------------------------

    def log(self, event: LogEvent) -> None:
        """Deliver ``event`` to every sink whose threshold it meets."""
        self._deliver(self._console, event)
        file_sink = self._file_sink
        if file_sink is not None:
            self._deliver(file_sink, event)

    def info(self, component: str, message: str) -> None:
        self.log(LogEvent.create(Severity.INFO, component, message))

    def warning(self, component: str, message: str, *, exc_info: BaseException | None = None) -> None:
        self.log(LogEvent.create(Severity.WARNING, component, message, error=exc_info))

    warn = warning

    def severe(self, component: str, message: str, *, exc_info: BaseException | None = None) -> None:
        self.log(LogEvent.create(Severity.SEVERE, component, message, error=exc_info))

    def flush(self) -> None:
        """Synchronously push console output and fsync the open log file."""
        self._console.flush()
        file_sink = self._file_sink
        if file_sink is not None:
            file_sink.flush()

    # -- structlog front end ---------------------------------------------

    def processors(self) -> list[Callable[..., Any]]:
        return [
            add_logger_name,
            add_severity,
            add_timestamp,
            add_thread_name,
            add_error_info,
            self._render,
        ]

    def get_logger(self, name: str | None = None) -> SeverityBoundLogger:
        """Get a structlog logger bound to this context."""
        return structlog.wrap_logger(
            _NopLogger(),
            processors=self.processors(),
            wrapper_class=SeverityBoundLogger,
            context_class=dict,
            cache_logger_on_first_use=False,
            _name=name or "root",
        )

    def install(self, intercept: Iterable[str] = ()) -> None:
        """Make this context the target of ``structlog.get_logger`` and stdlib logging."""
        from .interceptors import RedirectStdLibHandler, intercept_loggers

        structlog.configure(
            processors=self.processors(),
            wrapper_class=SeverityBoundLogger,
            context_class=dict,
            logger_factory=lambda *args: _NopLogger(),
            cache_logger_on_first_use=False,
        )

        root_logger = logging.getLogger()
        root_logger.handlers = []
        root_logger.setLevel(logging.INFO)
        root_logger.addHandler(RedirectStdLibHandler(self))

        intercept_loggers(intercept)

    # -- internals -------------------------------------------------------

    def _render(self, logger: WrappedLogger, method_name: str, event_dict: EventDict) -> str:
        """Dispatch to the sinks. Returns empty to suppress default output."""
        self.log(build_event(event_dict))
        return ""

    def _deliver(self, sink: BaseSink, event: LogEvent) -> None:
        if not sink.accepts(event):
            return
        try:
            sink.emit(event)
        except Exception as exc:  # a failing sink must not reach the caller
            self._sink_errors.setdefault(type(sink).__name__, exc)

    def _resolve_directory(self) -> Path:
        try:
            directory = self._directory_provider()
        except Exception as exc:
            raise DirectoryUnavailable(directory=None, reason=str(exc)) from exc
        if not directory:
            raise DirectoryUnavailable(directory=None, reason="no log directory resolved")
        return Path(directory)

    def _report_failure(self, exc: LoggingError) -> None:
        self._last_failure = exc
        severity = Severity.WARNING if isinstance(exc, RotationFailure) else Severity.SEVERE
        self._console.emit(LogEvent.create(severity, f"{INTERNAL_COMPONENT}.FileSink", str(exc)))


def _default_directory_provider(settings: LoggingSettings, app_name: str | None) -> LogDirectoryProvider:
    if settings.directory:
        configured = Path(settings.directory)

        def configured_directory() -> Path:
            configured.mkdir(parents=True, exist_ok=True)
            return configured

        return configured_directory

    from applog.appdata import AppDataManager

    return AppDataManager(app_name or app_settings.app.name).logs_directory


# =============================================================================
# Process-wide Configuration
# =============================================================================

_installed: LoggingContext | None = None
_install_lock = threading.Lock()


def configure_logging(
    settings: LoggingSettings | None = None,
    *,
    directory_provider: LogDirectoryProvider | None = None,
    app_name: str | None = None,
    intercept: Iterable[str] = (),
) -> LoggingContext:
    """
    Configure process-wide logging once and return the installed context.

    Later calls return the same context (retrying file logging if it is
    degraded) and ignore their arguments.

    Args:
        settings: Logging settings (default: ``applog.config.settings.logging``)
        directory_provider: Callable returning the log directory
        app_name: Application name for the platform logs directory
        intercept: Stdlib logger names whose own handlers are removed so their
            records reach the sinks
    """
    global _installed

    with _install_lock:
        if _installed is None:
            context = LoggingContext(
                settings or app_settings.logging,
                directory_provider=directory_provider,
                app_name=app_name,
            )
            context.install(intercept)
            _installed = context
        _installed.initialize()
        return _installed


def shutdown_logging() -> None:
    """Close the installed context and restore structlog and stdlib defaults."""
    global _installed
    from .interceptors import RedirectStdLibHandler

    with _install_lock:
        context, _installed = _installed, None
        if context is None:
            return
        context.close()
        structlog.reset_defaults()
        root_logger = logging.getLogger()
        root_logger.handlers = [h for h in root_logger.handlers if not isinstance(h, RedirectStdLibHandler)]


def get_context() -> LoggingContext | None:
    return _installed


def get_logger(name: str | None = None) -> SeverityBoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(_name=name or "root")


def flush_logs() -> None:
    context = _installed
    if context is not None:
        context.flush()


def get_log_directory() -> str:
    context = _installed
    if context is None:
        return DEGRADED_LOG_DIRECTORY
    return context.log_directory
