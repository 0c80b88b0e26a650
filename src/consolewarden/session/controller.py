"""Session controller — runs one server process and its relay per session."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Callable

from consolewarden import __version__
from consolewarden.commands.service import CommandService
from consolewarden.config import WardenConfig
from consolewarden.console import OperatorConsole
from consolewarden.errors import (
    ExecutableNotFound,
    RelayError,
    ShuttingDown,
    WardenError,
)
from consolewarden.exitcodes import ExitReason, Platform, exit_code
from consolewarden.process.supervisor import ProcessSupervisor, build_launch_args
from consolewarden.relay.channel import RelayChannel
from consolewarden.relay.line import RelayLine
from consolewarden.session.models import Session, SessionOutcome, SessionState
from consolewarden.shutdown.coordinator import ExitCoordinator

logger = logging.getLogger(__name__)


class SessionController:
    """Owns the session lifecycle and the operator-input loop.

    Threading model:
    - operator-input thread: ``run_input_loop()``, blocking on stdin
    - relay-receive thread: ``_on_relay_line()`` via the channel callback
    - any thread: ``teardown()`` from the ExitCoordinator

    The relay and the process are reached only through their public
    operations; a new session retires the old pair before creating the
    new one.
    """

    def __init__(
        self,
        config: WardenConfig,
        console: OperatorConsole,
        coordinator: ExitCoordinator,
        platform: Platform,
        commands: CommandService | None = None,
    ) -> None:
        self._config = config
        self._console = console
        self._coordinator = coordinator
        self._platform = platform
        self._commands = commands if commands is not None else CommandService()
        self._process = ProcessSupervisor(kill_timeout=config.kill_timeout)
        self._relay: RelayChannel | None = None
        self._session: Session | None = None
        self._exit = False
        self._outcome = SessionOutcome.OPERATOR_EXIT

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def relay(self) -> RelayChannel | None:
        return self._relay

    @property
    def process(self) -> ProcessSupervisor:
        return self._process

    @property
    def commands(self) -> CommandService:
        return self._commands

    @property
    def client_port(self) -> int:
        """Operator-facing port of the current session (config default before any)."""
        if self._session is None:
            return self._config.default_port
        return self._session.client_port

    @property
    def exit_requested(self) -> bool:
        return self._exit

    def start_session(self, port: int) -> Session:
        """Retire the current session, then start a relay and a server on *port*."""
        if self._coordinator.closing:
            raise ShuttingDown()

        previous = self._session
        if previous is not None:
            previous.state = SessionState.ENDING
        if self._process.is_running():
            logger.info("Terminating previous server process %s", self._process.pid)
        self.teardown()
        if previous is not None:
            previous.end_time = time.time()

        self._console.banner()
        self._console.set_title(f"consolewarden v{__version__} on port {port}")
        self._console.success("Started new session.")
        self._console.info("Trying to start server...")

        session = Session(client_port=port, state=SessionState.STARTING)
        self._session = session

        relay = RelayChannel(on_receive=self._on_relay_line, host=self._config.relay_host)
        self._relay = relay
        relay.start()
        session.relay_port = relay.wait_until_bound(
            interval=self._config.port_poll_interval,
            timeout=self._config.bind_timeout,
        )

        executable = self._config.executable_for(self._platform)
        args = build_launch_args(
            port, session.relay_port, os.getpid(), self._config.child_flags
        )
        self._console.success(f"Executing: {executable}")
        with self._coordinator.holding() as active:
            if not active:
                session.state = SessionState.ENDING
                relay.stop()
                raise ShuttingDown()
            try:
                session.pid = self._process.launch(executable, args)
            except ExecutableNotFound as exc:
                logger.error("Cannot launch server: %s", exc)
                self._console.error("Failed - Executable file not found!")
                session.state = SessionState.ENDING
                self._exit = True
                self._coordinator.exit(
                    exit_code(ExitReason.FILE_NOT_FOUND, self._platform),
                    wait_for_key=True,
                )
                return session

        session.state = SessionState.RUNNING
        logger.info(
            "Session %s running: port %d, relay port %d, PID %d",
            session.id,
            port,
            session.relay_port,
            session.pid,
        )
        return session

    def teardown(self) -> None:
        """Stop the relay, then kill the server if it is still running."""
        relay = self._relay
        if relay is not None:
            relay.stop()
        if self._process.is_running():
            self._process.terminate()

    def run_input_loop(self, read_line: Callable[[], str] = input) -> SessionOutcome:
        """Read operator lines until ``exit`` or the server process is gone."""
        while not self._exit:
            try:
                line = read_line()
            except EOFError:
                self._wait_without_input()
                break
            self.handle_input(line)

        if self._session is not None:
            self._session.state = SessionState.ENDING
            self._session.end_time = time.time()
        return self._outcome

    def handle_input(self, line: str) -> None:
        """Process one operator line: exit, local command, or forward to the server."""
        tokens = line.split()
        if not tokens:
            return

        self._console.echo_input(line)

        name = tokens[0]
        if name.lower() == "exit":
            self._end(SessionOutcome.OPERATOR_EXIT)
            return

        if self._process.has_exited:
            self._console.error(
                "Failed to send command - the server process was terminated..."
            )
            self._end(SessionOutcome.SERVER_EXITED)
            return

        command = self._commands.get(name)
        if command is not None:
            try:
                command.execute(tokens[1:])
            except WardenError as exc:
                self._console.error(str(exc))
            return

        self._forward(line)

    def _forward(self, line: str) -> None:
        relay = self._relay
        if relay is None or not relay.connected:
            self._console.warning(
                "Failed to send command - connection to server process "
                "hasn't been established yet."
            )
            return
        try:
            relay.send(line)
        except RelayError as exc:
            logger.warning("Forward failed: %s", exc)
            self._console.warning(f"Failed to send command - {exc}")

    def _wait_without_input(self) -> None:
        session = self._session
        if session is None or session.pid is None:
            logger.info("Operator input closed with no server launched")
            return

        self._console.dim("Operator input closed, waiting for the server process to exit...")
        code = self._process.wait()
        self._console.error(f"Server process exited with code {code}")
        self._end(SessionOutcome.SERVER_EXITED)

    def _end(self, outcome: SessionOutcome) -> None:
        self._outcome = outcome
        self._exit = True

    def _on_relay_line(self, line: RelayLine) -> None:
        self._console.write_tagged(line.payload, line.tag)
