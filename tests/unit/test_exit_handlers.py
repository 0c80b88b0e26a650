"""Tests for platform exit-handler registration."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from unittest.mock import MagicMock, patch

import pytest

from consolewarden.errors import HandlerUnavailable
from consolewarden.exitcodes import Platform
from consolewarden.shutdown.handlers import (
    ConsoleCloseHandler,
    FaultHandler,
    ProcessExitHandler,
    SignalHandler,
    default_handlers,
    install_exit_handlers,
)


class _Unavailable:
    name = "missing-native"

    def setup(self, on_terminate):
        raise HandlerUnavailable("native library not found")


class _Recording:
    name = "recording"

    def __init__(self) -> None:
        self.callback = None

    def setup(self, on_terminate):
        self.callback = on_terminate


def test_unavailable_handler_is_logged_not_raised(caplog: pytest.LogCaptureFixture):
    recording = _Recording()
    on_terminate = MagicMock()

    with caplog.at_level(logging.WARNING, logger="consolewarden.shutdown.handlers"):
        installed = install_exit_handlers(on_terminate, [_Unavailable(), recording])

    assert installed == ["recording"]
    assert recording.callback is on_terminate
    assert "missing-native" in caplog.text
    on_terminate.assert_not_called()


def test_default_handlers_per_platform():
    linux = [type(h) for h in default_handlers(Platform.LINUX)]
    windows = [type(h) for h in default_handlers(Platform.WINDOWS)]

    assert linux == [ProcessExitHandler, FaultHandler, SignalHandler]
    assert windows == [ProcessExitHandler, FaultHandler, ConsoleCloseHandler]


@patch("consolewarden.shutdown.handlers.atexit.register")
def test_process_exit_handler_registers_atexit(mock_register: MagicMock):
    on_terminate = MagicMock()
    ProcessExitHandler().setup(on_terminate)
    mock_register.assert_called_once_with(on_terminate, 0)


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
@patch("consolewarden.shutdown.handlers.signal.signal")
def test_signal_handler_routes_signals(mock_signal: MagicMock):
    on_terminate = MagicMock()
    SignalHandler().setup(on_terminate)

    installed = {c.args[0] for c in mock_signal.call_args_list}
    assert {signal.SIGTERM, signal.SIGINT, signal.SIGHUP} <= installed

    handler = mock_signal.call_args_list[0].args[1]
    handler(signal.SIGTERM, None)
    on_terminate.assert_called_once_with(0)


def test_signal_handler_off_main_thread_is_unavailable():
    errors: list[BaseException] = []

    def setup() -> None:
        try:
            SignalHandler().setup(MagicMock())
        except HandlerUnavailable as exc:
            errors.append(exc)

    t = threading.Thread(target=setup)
    t.start()
    t.join()

    assert len(errors) == 1


@pytest.mark.skipif(sys.platform == "win32", reason="console API exists on Windows")
def test_console_close_handler_unavailable_off_windows():
    with pytest.raises(HandlerUnavailable):
        ConsoleCloseHandler().setup(MagicMock())


def test_fault_handler_terminates_on_unhandled_exception(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(threading, "excepthook", threading.excepthook)
    on_terminate = MagicMock()

    FaultHandler().setup(on_terminate)
    try:
        raise RuntimeError("boom")
    except RuntimeError as exc:
        sys.excepthook(type(exc), exc, exc.__traceback__)

    on_terminate.assert_called_once_with(1)


def test_fault_handler_catches_thread_exceptions(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(threading, "excepthook", threading.excepthook)
    on_terminate = MagicMock()
    FaultHandler().setup(on_terminate)

    def crash() -> None:
        raise ValueError("worker died")

    t = threading.Thread(target=crash)
    t.start()
    t.join()

    on_terminate.assert_called_once_with(1)


def test_fault_handler_ignores_thread_system_exit(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(threading, "excepthook", threading.excepthook)
    on_terminate = MagicMock()
    FaultHandler().setup(on_terminate)

    t = threading.Thread(target=sys.exit)
    t.start()
    t.join()

    on_terminate.assert_not_called()
