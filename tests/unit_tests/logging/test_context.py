"""
LoggingContext tests: fan-out, degraded mode, re-initialization and the
process-wide helpers.
"""

from __future__ import annotations

import io
import logging
import threading
import typing as t
from datetime import date
from pathlib import Path

import pytest

from applog.config import LoggingSettings
from applog.logging import (
    DEGRADED_LOG_DIRECTORY,
    DirectoryUnavailable,
    LoggingContext,
    LoggingState,
    configure_logging,
    flush_logs,
    get_context,
    get_log_directory,
    get_logger,
    shutdown_logging,
)


def _today_file(log_dir: Path, index: int = 0) -> Path:
    return log_dir / f"app_{date.today().isoformat()}_{index}.log"


class _BrokenFile:
    def write(self, data: bytes) -> int:
        raise OSError("disk full")

    def flush(self) -> None:
        pass

    def fileno(self) -> int:
        raise OSError("no descriptor")

    def close(self) -> None:
        pass


class TestInitialization:
    """State machine"""

    def test_ready_after_initialize(self, make_context, log_dir: Path) -> None:
        context = make_context()
        assert context.state is LoggingState.UNINITIALIZED
        assert context.log_directory == DEGRADED_LOG_DIRECTORY

        assert context.initialize() is LoggingState.READY
        assert context.log_directory == str(log_dir)
        assert not context.is_degraded
        assert context.file_sink is not None
        assert context.file_sink.path == _today_file(log_dir)
        context.close()

    def test_initialize_is_idempotent(self, make_context, log_dir: Path) -> None:
        context = make_context()
        context.initialize()
        sink = context.file_sink

        context.initialize()
        context.initialize()

        assert context.file_sink is sink
        assert list(log_dir.iterdir()) == [_today_file(log_dir)]
        context.close()

    def test_settings_directory_is_created(self, tmp_path: Path, console: io.StringIO) -> None:
        target = tmp_path / "nested" / "logs"
        context = LoggingContext(LoggingSettings(directory=str(target)), console_stream=console)

        assert context.initialize() is LoggingState.READY
        assert context.log_directory == str(target)
        assert target.is_dir()
        context.close()

    def test_close_returns_to_uninitialized(self, make_context) -> None:
        context = make_context()
        context.initialize()
        sink = context.file_sink

        context.close()

        assert context.state is LoggingState.UNINITIALIZED
        assert context.file_sink is None
        assert context.log_directory == DEGRADED_LOG_DIRECTORY
        assert sink is not None and not sink.usable


class TestDegradedMode:
    """Console-only fallback"""

    def test_missing_directory_degrades(self, make_context, tmp_path: Path, console: io.StringIO) -> None:
        context = make_context(lambda: tmp_path / "missing")

        assert context.initialize() is LoggingState.DEGRADED
        context.severe("MyClass", "x")

        assert context.is_degraded
        assert context.log_directory == DEGRADED_LOG_DIRECTORY
        lines = console.getvalue().splitlines()
        assert len(lines) == 2
        assert lines[0].startswith("WARNING applog.logging: File logging unavailable")
        assert lines[1] == "SEVERE MyClass: x"
        assert isinstance(context.last_failure, DirectoryUnavailable)

    def test_failing_provider_degrades(self, make_context, console: io.StringIO) -> None:
        def provider() -> str:
            raise PermissionError("no home directory")

        context = make_context(provider)
        context.initialize()
        context.info("MyClass", "ignored")

        assert context.is_degraded
        assert "no home directory" in console.getvalue()
        assert console.getvalue().count("\n") == 1

    def test_empty_directory_degrades(self, make_context) -> None:
        context = make_context(lambda: "")
        assert context.initialize() is LoggingState.DEGRADED

    def test_reinitialize_recovers(self, make_context, tmp_path: Path) -> None:
        target = tmp_path / "late"
        context = make_context(lambda: target)
        context.initialize()
        assert context.is_degraded

        context.initialize()
        assert context.is_degraded

        target.mkdir()
        assert context.initialize() is LoggingState.READY
        assert context.log_directory == str(target)
        context.close()

    def test_missing_stderr_degrades_quietly(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("sys.stderr", None)
        context = LoggingContext(LoggingSettings(), directory_provider=lambda: tmp_path / "missing")

        assert context.initialize() is LoggingState.DEGRADED
        context.severe("MyClass", "x")
        context.flush()
        context.close()


class TestFanOut:
    """Per-sink thresholds"""

    def test_info_goes_to_file_only(self, make_context, log_dir: Path, console: io.StringIO) -> None:
        context = make_context()
        context.initialize()
        context.info("MyClass", "started")
        context.close()

        assert console.getvalue() == ""
        assert _today_file(log_dir).read_text(encoding="utf-8").endswith("MyClass - started\n")

    def test_warning_and_severe_reach_both_sinks(self, make_context, log_dir: Path, console: io.StringIO) -> None:
        context = make_context()
        context.initialize()
        context.warn("MyClass", "careful")
        context.severe("MyClass", "broken", exc_info=ValueError("bad"))
        context.close()

        assert console.getvalue() == "WARNING MyClass: careful\nSEVERE MyClass: broken\n"
        content = _today_file(log_dir).read_text(encoding="utf-8")
        assert " WARNING [MainThread     ] MyClass - careful\n" in content
        assert " SEVERE  [MainThread     ] MyClass - broken\nException: ValueError: bad\n" in content

    def test_events_before_initialize_skip_the_file(self, make_context, log_dir: Path, console: io.StringIO) -> None:
        context = make_context()
        context.warning("MyClass", "early")

        assert console.getvalue() == "WARNING MyClass: early\n"
        assert list(log_dir.iterdir()) == []

    def test_file_failure_does_not_block_console(self, make_context, console: io.StringIO) -> None:
        context = make_context()
        context.initialize()
        context.file_sink._file.close()
        context.file_sink._file = _BrokenFile()

        context.severe("MyClass", "boom")
        context.severe("MyClass", "again")

        lines = console.getvalue().splitlines()
        assert lines.count("SEVERE MyClass: boom") == 1
        assert lines.count("SEVERE MyClass: again") == 1
        reports = [line for line in lines if line.startswith("SEVERE applog.logging.FileSink:")]
        assert len(reports) == 1
        assert "disk full" in reports[0]
        assert context.last_failure is not None and context.last_failure.code == "WRITE_FAILURE"
        assert context.state is LoggingState.DEGRADED
        assert context.is_degraded
        assert context.log_directory == DEGRADED_LOG_DIRECTORY

    def test_unusable_file_sink_is_rebuilt(self, make_context, log_dir: Path) -> None:
        context = make_context()
        context.initialize()
        broken = context.file_sink
        broken._file.close()
        broken._file = _BrokenFile()
        context.info("MyClass", "lost")
        assert context.is_degraded

        assert context.initialize() is LoggingState.READY
        assert context.file_sink is not broken
        context.info("MyClass", "kept")
        context.close()

        assert "MyClass - kept" in _today_file(log_dir).read_text(encoding="utf-8")

    def test_unexpected_sink_error_is_contained(
        self, make_context, console: io.StringIO, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        context = make_context()
        context.initialize()

        def explode(event: t.Any) -> None:
            raise RuntimeError("formatter bug")

        monkeypatch.setattr(context.file_sink, "emit", explode)
        context.severe("MyClass", "still shown")

        assert console.getvalue() == "SEVERE MyClass: still shown\n"
        assert isinstance(context.sink_errors["FileSink"], RuntimeError)
        context.close()

    def test_flush_makes_lines_visible(self, make_context, log_dir: Path) -> None:
        context = make_context()
        context.initialize()
        context.info("MyClass", "durable")
        context.flush()

        assert "MyClass - durable" in _today_file(log_dir).read_text(encoding="utf-8")
        context.close()


class TestStructlogFrontEnd:
    """Bound loggers built from a context"""

    def test_bound_logger_levels(self, make_context, log_dir: Path, console: io.StringIO) -> None:
        context = make_context()
        context.initialize()
        log = context.get_logger("MyClass")

        log.info("hi", user="bob")
        log.warn("w")
        log.warning("w2")
        log.severe("s")
        context.close()

        assert console.getvalue() == "WARNING MyClass: w\nWARNING MyClass: w2\nSEVERE MyClass: s\n"
        lines = _today_file(log_dir).read_text(encoding="utf-8").splitlines()
        assert lines[0].endswith(" INFO    [MainThread     ] MyClass - hi user=bob")
        assert len(lines) == 4

    def test_bound_values_are_flattened(self, make_context, log_dir: Path) -> None:
        context = make_context()
        context.initialize()
        context.get_logger("MyClass").bind(request=7).info("done")
        context.close()

        assert _today_file(log_dir).read_text(encoding="utf-8").endswith("MyClass - done request=7\n")

    def test_exception_captures_active_error(self, make_context, log_dir: Path, console: io.StringIO) -> None:
        context = make_context()
        context.initialize()
        log = context.get_logger("MyClass")

        try:
            raise ValueError("bad input")
        except ValueError:
            log.exception("failed")
        context.close()

        assert console.getvalue() == "SEVERE MyClass: failed\n"
        lines = _today_file(log_dir).read_text(encoding="utf-8").splitlines()
        assert lines[0].endswith("MyClass - failed")
        assert lines[1] == "Exception: ValueError: bad input"
        assert lines[2].startswith('    File "') and "test_exception_captures_active_error" in lines[2]

    def test_unnamed_logger_uses_root(self, make_context, console: io.StringIO) -> None:
        context = make_context()
        context.get_logger().severe("x")
        assert console.getvalue() == "SEVERE root: x\n"


class TestConcurrency:
    """Initialization racing with log calls"""

    def test_initialize_while_logging(self, make_context, log_dir: Path) -> None:
        context = make_context(max_bytes=2000)
        errors: list[BaseException] = []
        start = threading.Event()

        def writer(n: int) -> None:
            start.wait()
            try:
                for i in range(200):
                    context.info(f"Worker{n}", f"line {i}")
            except BaseException as exc:  # pragma: no cover - failure path
                errors.append(exc)

        workers = [threading.Thread(target=writer, args=(n,)) for n in range(4)]
        for worker in workers:
            worker.start()
        start.set()
        for _ in range(5):
            context.initialize()
        for worker in workers:
            worker.join()
        context.close()

        assert errors == []
        assert context.sink_errors == {}
        for path in log_dir.iterdir():
            assert path.stat().st_size <= 2000


class TestProcessWide:
    """configure_logging and friends"""

    def test_configure_installs_once(self, log_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        first = configure_logging(directory_provider=lambda: log_dir)
        second = configure_logging(directory_provider=lambda: Path("/nonexistent"))

        assert first is second
        assert get_context() is first
        assert get_log_directory() == str(log_dir)

        get_logger("MyClass").severe("x")
        flush_logs()

        assert capsys.readouterr().err == "SEVERE MyClass: x\n"
        assert _today_file(log_dir).read_text(encoding="utf-8").endswith("MyClass - x\n")

    def test_stdlib_records_are_routed(self, log_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(directory_provider=lambda: log_dir)

        logging.getLogger("thirdparty.net").warning("retry %s", 3)
        logging.getLogger("thirdparty.net").info("connected")
        logging.getLogger("thirdparty.net").debug("dropped")
        flush_logs()

        assert capsys.readouterr().err == "WARNING thirdparty.net: retry 3\n"
        content = _today_file(log_dir).read_text(encoding="utf-8")
        assert "thirdparty.net - retry 3" in content
        assert "thirdparty.net - connected" in content
        assert "dropped" not in content

    def test_degraded_process_logging(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(directory_provider=lambda: tmp_path / "missing")

        get_logger("MyClass").severe("x")

        err = capsys.readouterr().err.splitlines()
        assert err[-1] == "SEVERE MyClass: x"
        assert get_log_directory() == DEGRADED_LOG_DIRECTORY

    def test_shutdown_resets(self, log_dir: Path) -> None:
        context = configure_logging(directory_provider=lambda: log_dir)
        shutdown_logging()

        assert get_context() is None
        assert get_log_directory() == DEGRADED_LOG_DIRECTORY
        assert context.state is LoggingState.UNINITIALIZED
        flush_logs()
