"""Shared test fixtures."""

from __future__ import annotations

import sys
import time
from collections.abc import Callable
from io import StringIO
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from consolewarden.config import WardenConfig
from consolewarden.console import OperatorConsole
from consolewarden.shutdown.coordinator import ExitCoordinator

# Stand-in server: connects to the relay port from its arguments, announces
# itself, then echoes every forwarded line back with tag A.
CHILD_SERVER = """
import socket, sys
relay = next(int(a[len("-console"):]) for a in sys.argv if a.startswith("-console"))
conn = socket.create_connection(("127.0.0.1", relay))
conn.sendall(b"7Server started\\n")
for line in conn.makefile("rb"):
    conn.sendall(b"A" + line)
"""

SLEEPER = "import time; time.sleep(60)"


def _wait_for(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


@pytest.fixture
def wait_for() -> Callable[..., bool]:
    """Poll a predicate until it holds or the timeout elapses."""
    return _wait_for


@pytest.fixture
def child_server_code() -> str:
    return CHILD_SERVER


@pytest.fixture
def output() -> StringIO:
    return StringIO()


@pytest.fixture
def console(output: StringIO) -> OperatorConsole:
    return OperatorConsole(Console(file=output, width=200, highlight=False))


@pytest.fixture
def coordinator() -> ExitCoordinator:
    return ExitCoordinator(exit_func=MagicMock(), wait_for_key=MagicMock())


@pytest.fixture
def config(tmp_path: Path) -> WardenConfig:
    return WardenConfig(
        config_dir=tmp_path / "config",
        executable=Path(sys.executable),
        child_flags=("-c", SLEEPER),
        port_poll_interval=0.01,
        bind_timeout=5.0,
        crash_dir=tmp_path,
    )
