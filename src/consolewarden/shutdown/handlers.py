"""Platform termination hooks that route into the ExitCoordinator.

Each handler registers ``on_terminate(code)`` with one OS or runtime
facility. A facility that does not exist here raises
HandlerUnavailable from ``setup()``; ``install_exit_handlers`` turns
that into a logged warning so the supervisor keeps running with less
shutdown coverage.
"""

from __future__ import annotations

import atexit
import logging
import signal
import sys
import threading
from collections.abc import Callable
from types import TracebackType
from typing import Any, Protocol

from consolewarden.errors import HandlerUnavailable
from consolewarden.exitcodes import ExitReason, Platform, exit_code

logger = logging.getLogger(__name__)

OnTerminate = Callable[[int], None]


class ExitHandler(Protocol):
    """Registers a termination callback with one platform facility."""

    name: str

    def setup(self, on_terminate: OnTerminate) -> None:
        """Register *on_terminate*. Raises HandlerUnavailable if unsupported."""
        ...


class ProcessExitHandler:
    """Normal interpreter exit (atexit)."""

    name = "process-exit"

    def setup(self, on_terminate: OnTerminate) -> None:
        atexit.register(on_terminate, 0)


class FaultHandler:
    """Unhandled exceptions on the main thread or any worker thread."""

    name = "unhandled-fault"

    def __init__(self) -> None:
        self._on_terminate: OnTerminate | None = None

    def setup(self, on_terminate: OnTerminate) -> None:
        self._on_terminate = on_terminate
        sys.excepthook = self._excepthook
        threading.excepthook = self._thread_excepthook

    def _excepthook(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        logger.critical("Unhandled exception", exc_info=(exc_type, exc, tb))
        self._terminate()

    def _thread_excepthook(self, args: threading.ExceptHookArgs) -> None:
        if args.exc_type is SystemExit:
            return
        name = args.thread.name if args.thread is not None else "?"
        logger.critical(
            "Unhandled exception in thread %s",
            name,
            exc_info=(args.exc_type, args.exc_value, args.exc_traceback),  # type: ignore[arg-type]
        )
        self._terminate()

    def _terminate(self) -> None:
        if self._on_terminate is not None:
            self._on_terminate(exit_code(ExitReason.FAULT))


# Console control events from wincon.h
CTRL_C_EVENT = 0
CTRL_BREAK_EVENT = 1
CTRL_CLOSE_EVENT = 2
CTRL_LOGOFF_EVENT = 5
CTRL_SHUTDOWN_EVENT = 6


class ConsoleCloseHandler:
    """Windows console control events (window close, Ctrl+C, logoff, shutdown)."""

    name = "console-close"

    def __init__(self) -> None:
        self._routine: Any = None

    def setup(self, on_terminate: OnTerminate) -> None:
        try:
            import ctypes
            from ctypes import wintypes

            kernel32 = ctypes.windll.kernel32  # type: ignore[attr-defined]
            routine_type = ctypes.WINFUNCTYPE(wintypes.BOOL, wintypes.DWORD)  # type: ignore[attr-defined]
        except (ImportError, AttributeError, OSError) as exc:
            raise HandlerUnavailable(f"SetConsoleCtrlHandler unavailable: {exc}") from exc

        def _routine(event: int) -> bool:
            logger.info("Console control event %d", event)
            on_terminate(0)
            return True

        # Must stay referenced for as long as Windows may call it
        self._routine = routine_type(_routine)
        if not kernel32.SetConsoleCtrlHandler(self._routine, True):
            raise HandlerUnavailable(
                f"SetConsoleCtrlHandler failed: {ctypes.GetLastError()}"  # type: ignore[attr-defined]
            )


class SignalHandler:
    """POSIX termination signals, including SIGHUP from a closed terminal."""

    name = "signals"

    _SIGNAL_NAMES = ("SIGTERM", "SIGINT", "SIGHUP", "SIGQUIT")

    def setup(self, on_terminate: OnTerminate) -> None:
        signals = [
            getattr(signal, n) for n in self._SIGNAL_NAMES if hasattr(signal, n)
        ]
        if not signals:
            raise HandlerUnavailable("No termination signals on this platform")

        def _signal_handler(signum: int, frame: object) -> None:
            logger.info("Received %s", signal.Signals(signum).name)
            on_terminate(0)

        for signum in signals:
            try:
                signal.signal(signum, _signal_handler)
            except (ValueError, OSError) as exc:
                # ValueError: not called from the main thread
                raise HandlerUnavailable(f"Cannot install {signum!r}: {exc}") from exc


def default_handlers(platform: Platform) -> list[ExitHandler]:
    """Handlers that apply on *platform*."""
    handlers: list[ExitHandler] = [ProcessExitHandler(), FaultHandler()]
    if platform is Platform.WINDOWS:
        handlers.append(ConsoleCloseHandler())
    else:
        handlers.append(SignalHandler())
    return handlers


def install_exit_handlers(
    on_terminate: OnTerminate,
    handlers: list[ExitHandler],
) -> list[str]:
    """Set up every handler, skipping unavailable ones. Returns installed names."""
    installed: list[str] = []
    for handler in handlers:
        try:
            handler.setup(on_terminate)
        except HandlerUnavailable as exc:
            logger.warning(
                "Exit handler '%s' unavailable, shutdown coverage reduced: %s",
                handler.name,
                exc,
            )
            continue
        installed.append(handler.name)
        logger.debug("Exit handler '%s' installed", handler.name)
    return installed
