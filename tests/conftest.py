import io
import typing as t
from pathlib import Path

import pytest

from applog.config import LoggingSettings
from applog.logging import LoggingContext, shutdown_logging


@pytest.fixture(autouse=True)
def isolate_process_logging(monkeypatch):
    """
    Keeps environment-driven settings and the process-wide context out of
    every test.
    """
    for key in ("APPLOG_LOG_DIRECTORY", "APPLOG_LOG_MAX_BYTES", "APPLOG_LOG_MAX_FILES", "APPLOG_APP_NAME"):
        monkeypatch.delenv(key, raising=False)
    yield
    shutdown_logging()


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "logs"
    directory.mkdir()
    return directory


@pytest.fixture
def console() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def make_context(log_dir: Path, console: io.StringIO) -> t.Callable[..., LoggingContext]:
    """Factory for isolated contexts writing into ``log_dir`` and ``console``."""

    def _make(provider: t.Optional[t.Callable[[], t.Any]] = None, **settings: t.Any) -> LoggingContext:
        return LoggingContext(
            LoggingSettings(**settings),
            directory_provider=provider or (lambda: log_dir),
            console_stream=console,
        )

    return _make
