"""Built-in commands: restart, new, help, license."""

from __future__ import annotations

from typing import TYPE_CHECKING

from consolewarden import __version__
from consolewarden.commands.service import CommandService
from consolewarden.config import parse_port
from consolewarden.console import OperatorConsole
from consolewarden.errors import WardenError

if TYPE_CHECKING:
    from consolewarden.session.controller import SessionController

LICENSE_TEXT = """\
The MIT License (MIT)

Copyright (c) consolewarden contributors

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in all
copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
SOFTWARE."""


class RestartCommand:
    """Restart the server on the current port."""

    name = "restart"
    usage = "restart"
    description = "Restarts the server on the same port."

    def __init__(self, controller: SessionController) -> None:
        self._controller = controller

    def execute(self, arguments: list[str]) -> None:
        self._controller.start_session(self._controller.client_port)


class NewCommand:
    """Replace the current session with one on another port."""

    name = "new"
    usage = "new <port>"
    description = "Stops the server and starts a new session on the given port."

    def __init__(self, controller: SessionController) -> None:
        self._controller = controller

    def execute(self, arguments: list[str]) -> None:
        if len(arguments) != 1:
            raise WardenError(f"Usage: {self.usage}")
        self._controller.start_session(parse_port(arguments[0]))


class HelpCommand:
    name = "help"
    usage = "help"
    description = "Prints this list."

    def __init__(self, service: CommandService, console: OperatorConsole) -> None:
        self._service = service
        self._console = console

    def execute(self, arguments: list[str]) -> None:
        self._console.hint("---- Local commands ----")
        for command in self._service.commands:
            self._console.info(f"{command.usage} - {command.description}")
        self._console.info("exit - Stops the server and closes the supervisor.")
        self._console.dim("Anything else is sent to the server console.")


class LicenseCommand:
    name = "license"
    usage = "license"
    description = "Prints the license text."

    def __init__(self, console: OperatorConsole) -> None:
        self._console = console

    def execute(self, arguments: list[str]) -> None:
        self._console.hint(f"consolewarden v{__version__}")
        for line in LICENSE_TEXT.splitlines():
            self._console.info(line)


def register_builtin_commands(
    service: CommandService,
    controller: SessionController,
    console: OperatorConsole,
) -> None:
    service.register(RestartCommand(controller))
    service.register(NewCommand(controller))
    service.register(HelpCommand(service, console))
    service.register(LicenseCommand(console))
