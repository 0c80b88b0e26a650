"""Command protocol — local operator commands."""

from __future__ import annotations

from typing import Protocol


class Command(Protocol):
    """A named operator command."""

    name: str
    usage: str
    description: str

    def execute(self, arguments: list[str]) -> None:
        """Run the command with the tokens that followed its name."""
        ...
