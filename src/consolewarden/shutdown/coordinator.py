"""Process-wide exit coordinator — the one place the supervisor exits from."""

from __future__ import annotations

import contextlib
import enum
import logging
import os
import sys
import threading
from collections.abc import Callable, Iterator

import click

logger = logging.getLogger(__name__)


class ExitState(enum.Enum):
    """Lifecycle of the supervisor process itself."""

    ACTIVE = "active"
    CLOSING = "closing"


def _hard_exit(code: int) -> None:
    for stream in (sys.stdout, sys.stderr):
        try:
            stream.flush()
        except (OSError, ValueError):
            pass
    os._exit(code)


def _pause_for_key() -> None:
    click.pause(info="Press any key to close...")


class ExitCoordinator:
    """Funnels every termination trigger into one shutdown body.

    Triggers arrive from the main thread, the operator-input thread,
    signal handlers, atexit, and exception hooks. The first one moves
    the state to CLOSING and runs, in order: teardown (stop relay, kill
    the server), optional key-press wait, process exit. Every later
    trigger sees CLOSING and returns.

    The lock is re-entrant so a signal handler interrupting the main
    thread inside the shutdown body returns instead of deadlocking.
    """

    def __init__(
        self,
        exit_func: Callable[[int], object] = _hard_exit,
        wait_for_key: Callable[[], object] = _pause_for_key,
    ) -> None:
        self._exit_func = exit_func
        self._wait_for_key = wait_for_key
        self._teardown: Callable[[], None] | None = None
        self._state = ExitState.ACTIVE
        self._lock = threading.RLock()

    @property
    def state(self) -> ExitState:
        return self._state

    @property
    def closing(self) -> bool:
        return self._state is ExitState.CLOSING

    def bind(self, teardown: Callable[[], None]) -> None:
        """Register the callable that releases the relay and the server process."""
        self._teardown = teardown

    @contextlib.contextmanager
    def holding(self) -> Iterator[bool]:
        """Keep shutdown from starting inside the block.

        Yields True while ACTIVE. A trigger arriving meanwhile waits for the
        block to finish, so its teardown sees whatever the block created.
        """
        with self._lock:
            yield self._state is ExitState.ACTIVE

    def exit(self, code: int = -1, wait_for_key: bool = False) -> None:
        """Tear everything down and exit with *code*, once per process lifetime."""
        with self._lock:
            if self._state is ExitState.CLOSING:
                logger.debug("Exit(%d) ignored, already closing", code)
                return
            self._state = ExitState.CLOSING
            logger.info("Shutting down with exit code %d", code)

            if self._teardown is not None:
                try:
                    self._teardown()
                except Exception:
                    logger.exception("Teardown failed during shutdown")

            if wait_for_key:
                try:
                    self._wait_for_key()
                except (OSError, EOFError, click.Abort):
                    logger.debug("Key-press wait interrupted")

            self._exit_func(code)


_coordinator: ExitCoordinator | None = None
_coordinator_lock = threading.Lock()


def get_coordinator() -> ExitCoordinator:
    """Return the process-wide ExitCoordinator, creating it on first use."""
    global _coordinator
    with _coordinator_lock:
        if _coordinator is None:
            _coordinator = ExitCoordinator()
        return _coordinator
