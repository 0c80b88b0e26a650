"""Top-level driver — platform checks, exit hooks, session, input thread, exit."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

import click

from consolewarden.commands.builtin import register_builtin_commands
from consolewarden.commands.service import CommandService
from consolewarden.config import WardenConfig, parse_port
from consolewarden.console import OperatorConsole
from consolewarden.crash import write_crash_dump
from consolewarden.errors import InvalidPort, ShuttingDown, UnsupportedPlatform
from consolewarden.exitcodes import ExitReason, Platform, detect_platform, exit_code
from consolewarden.session.controller import SessionController
from consolewarden.session.models import SessionOutcome
from consolewarden.shutdown.coordinator import ExitCoordinator, get_coordinator
from consolewarden.shutdown.handlers import (
    ExitHandler,
    default_handlers,
    install_exit_handlers,
)

logger = logging.getLogger(__name__)


class Warden:
    """Runs the supervisor from startup until the ExitCoordinator ends the process.

    Threading model:
    - Main thread: startup, then joins the input thread (signals land here)
    - Daemon thread ``operator-input``: SessionController.run_input_loop()
    """

    def __init__(
        self,
        config: WardenConfig,
        console: OperatorConsole | None = None,
        coordinator: ExitCoordinator | None = None,
        handlers: Callable[[Platform], list[ExitHandler]] = default_handlers,
        read_line: Callable[[], str] = input,
        platform_name: str | None = None,
    ) -> None:
        self._config = config
        self._console = console or OperatorConsole()
        self._coordinator = coordinator or get_coordinator()
        self._handlers = handlers
        self._read_line = read_line
        self._platform_name = platform_name
        self._controller: SessionController | None = None

    @property
    def controller(self) -> SessionController | None:
        return self._controller

    def run(self, port_argument: str | None = None) -> None:
        """Start the supervisor; every path ends in the ExitCoordinator."""
        try:
            self._run(port_argument)
        except Exception as exc:
            path = write_crash_dump(exc, self._config.crash_dir)
            self._console.error(f"Unexpected error, details written to {path}")
            self._coordinator.exit(exit_code(ExitReason.FAULT))

    def _run(self, port_argument: str | None) -> None:
        try:
            platform = detect_platform(self._platform_name)
        except UnsupportedPlatform as exc:
            logger.error("%s", exc)
            self._console.error("Failed - Unsupported platform!")
            self._coordinator.exit(exit_code(ExitReason.UNSUPPORTED_PLATFORM))
            return

        port = self._resolve_port(port_argument, platform)
        if port is None:
            return

        try:
            installed = install_exit_handlers(
                self._coordinator.exit, self._handlers(platform)
            )
            logger.debug("Exit handlers installed: %s", ", ".join(installed))
        except Exception as exc:
            logger.warning("Exit handler setup failed", exc_info=True)
            self._console.warning(
                f"Starting exit handlers threw {exc}. "
                "Server process will NOT be closed on console closing!"
            )

        commands = CommandService()
        controller = SessionController(
            self._config, self._console, self._coordinator, platform, commands
        )
        self._controller = controller
        self._coordinator.bind(controller.teardown)
        register_builtin_commands(commands, controller, self._console)

        try:
            controller.start_session(port)
        except ShuttingDown:
            logger.info("Exit triggered during startup, session not started")
            return
        if controller.exit_requested:
            return

        outcome = self._run_input_thread(controller)
        if outcome is SessionOutcome.OPERATOR_EXIT:
            self._coordinator.exit(exit_code(ExitReason.OPERATOR_EXIT))
        elif outcome is SessionOutcome.SERVER_EXITED:
            # Server died on its own, leave its output on screen
            self._coordinator.exit(
                exit_code(ExitReason.SERVER_EXITED), wait_for_key=True
            )
        else:
            self._coordinator.exit(exit_code(ExitReason.FAULT))

    def _resolve_port(self, port_argument: str | None, platform: Platform) -> int | None:
        if port_argument is None:
            self._console.success("You can pass port number as first startup argument.")
            self._console.blank()
            try:
                return click.prompt(
                    "Port number",
                    default=self._config.default_port,
                    type=click.IntRange(0, 65535),
                )
            except click.Abort:
                # No answer (closed stdin or Ctrl+C) counts as an empty one
                self._console.blank()
                return self._config.default_port

        try:
            return parse_port(port_argument)
        except InvalidPort as exc:
            logger.error("%s", exc)
            self._console.error("Failed - Invalid port!")
            self._coordinator.exit(exit_code(ExitReason.INVALID_PORT, platform))
            return None

    def _run_input_thread(self, controller: SessionController) -> SessionOutcome | None:
        result: list[SessionOutcome] = []
        failure: list[BaseException] = []

        def _reader() -> None:
            try:
                result.append(controller.run_input_loop(self._read_line))
            except BaseException as exc:
                failure.append(exc)

        reader = threading.Thread(target=_reader, name="operator-input", daemon=True)
        reader.start()
        reader.join()
        if failure:
            raise failure[0]
        return result[0] if result else None
