"""Launch, watch, and kill the dedicated server process."""

from __future__ import annotations

import logging
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import psutil

from consolewarden.errors import ExecutableNotFound, ProcessAlreadyRunning

logger = logging.getLogger(__name__)


def build_launch_args(
    client_port: int,
    relay_port: int,
    supervisor_pid: int,
    flags: Sequence[str] = (),
) -> list[str]:
    """Startup arguments telling the server its port, the relay port, and our PID."""
    return [
        *flags,
        f"-port{client_port}",
        f"-console{relay_port}",
        f"-id{supervisor_pid}",
    ]


class ProcessSupervisor:
    """Exclusive owner of at most one live server process.

    Nothing else may kill or wait on the child; other components go
    through ``is_running()``, ``wait()`` and ``terminate()``.
    """

    def __init__(self, kill_timeout: float = 5.0) -> None:
        self._kill_timeout = kill_timeout
        self._process: subprocess.Popen[bytes] | None = None
        self._executable: Path | None = None
        self._args: tuple[str, ...] = ()

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process is not None else None

    @property
    def executable(self) -> Path | None:
        return self._executable

    @property
    def args(self) -> tuple[str, ...]:
        return self._args

    @property
    def returncode(self) -> int | None:
        """Exit code of the last process, or None if running or never launched."""
        if self._process is None:
            return None
        return self._process.poll()

    @property
    def has_exited(self) -> bool:
        """True once a launched process is no longer running."""
        return self._process is not None and self._process.poll() is not None

    def is_running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def launch(self, executable: str | Path, args: Sequence[str]) -> int:
        """Start the server process detached from any console window."""
        path = Path(executable)
        if not path.is_file():
            raise ExecutableNotFound(path)
        if self._process is not None and self._process.poll() is None:
            raise ProcessAlreadyRunning(self._process.pid)

        kwargs: dict[str, Any] = {}
        if sys.platform == "win32":
            kwargs["creationflags"] = subprocess.CREATE_NO_WINDOW
        else:
            # Own process group: terminal Ctrl+C reaches only the supervisor
            kwargs["start_new_session"] = True

        self._process = subprocess.Popen(
            [str(path.absolute()), *args],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            **kwargs,
        )
        self._executable = path
        self._args = tuple(args)
        logger.info(
            "Launched %s (PID %d) with args %s", path, self._process.pid, " ".join(args)
        )
        return self._process.pid

    def wait(self, timeout: float | None = None) -> int | None:
        """Block until the process exits; returns its exit code, None if never launched."""
        if self._process is None:
            return None
        return self._process.wait(timeout=timeout)

    def terminate(self) -> None:
        """Forcefully kill the process and its descendants. No-op if not running."""
        proc = self._process
        if proc is None or proc.poll() is not None:
            return

        logger.warning("Killing server process %d", proc.pid)
        try:
            children = psutil.Process(proc.pid).children(recursive=True)
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            children = []
        for child in children:
            try:
                child.kill()
            except (psutil.NoSuchProcess, psutil.AccessDenied):
                continue

        try:
            proc.kill()
        except ProcessLookupError:
            logger.debug("Process %d already exited", proc.pid)

        try:
            proc.wait(timeout=self._kill_timeout)
        except subprocess.TimeoutExpired:
            logger.error("Process %d did not exit after kill", proc.pid)
        else:
            logger.info("Server process %d exited with code %s", proc.pid, proc.returncode)
