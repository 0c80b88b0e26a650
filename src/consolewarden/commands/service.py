"""Case-insensitive name → command registry."""

from __future__ import annotations

from consolewarden.commands.base import Command


class CommandService:
    """Looks commands up by name, ignoring case."""

    def __init__(self) -> None:
        self._commands: dict[str, Command] = {}

    def register(self, command: Command) -> None:
        key = command.name.upper()
        if key in self._commands:
            raise ValueError(f"Command '{command.name}' is already registered")
        self._commands[key] = command

    def get(self, name: str) -> Command | None:
        return self._commands.get(name.upper())

    def __contains__(self, name: str) -> bool:
        return name.upper() in self._commands

    @property
    def commands(self) -> list[Command]:
        """Registered commands sorted by name."""
        return sorted(self._commands.values(), key=lambda c: c.name)
